"""
Comment API endpoints
Handles paginated comment listing with like aggregates, creation, edit and delete
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from sqlalchemy import func, select, literal
from sqlalchemy.exc import SQLAlchemyError
from pydantic import BaseModel
from typing import Optional

from core.database import get_db
from core.pagination import page_offset, paginate_result
from core.responses import api_response
from core.security import get_current_user, get_optional_user
from models.user import User
from models.video import Video
from models.comment import Comment
from models.engagement import Like

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================
# Request Models (Pydantic schemas)
# ============================================

class CommentRequest(BaseModel):
    """Comment create/edit payload"""
    content: Optional[str] = None


# ============================================
# Helpers
# ============================================

def _require_content(request: CommentRequest) -> str:
    content = (request.content or "").strip()
    if not content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Content is required"
        )
    return content


def _get_video_or_404(db: Session, video_id: int) -> Video:
    video = db.query(Video).filter(Video.id == video_id).first()
    if not video:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Video not found"
        )
    return video


def _get_owned_comment(db: Session, comment_id: int, user: User, action: str) -> Comment:
    comment = db.query(Comment).filter(Comment.id == comment_id).first()
    if not comment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Comment not found"
        )

    if comment.owner_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Only comment owner can {action} their comment"
        )
    return comment


def comment_listing_query(db: Session, video_id: int, viewer: Optional[User]):
    """
    Comments of one video joined with their owner, plus derived
    likes_count and is_liked columns, newest first
    """
    likes_count = (
        select(func.count(Like.id))
        .where(Like.comment_id == Comment.id)
        .correlate(Comment)
        .scalar_subquery()
    )

    if viewer is not None:
        is_liked = (
            select(func.count(Like.id))
            .where(Like.comment_id == Comment.id, Like.liked_by == viewer.id)
            .correlate(Comment)
            .scalar_subquery()
        )
    else:
        is_liked = literal(0)

    return (
        db.query(
            Comment,
            User,
            likes_count.label("likes_count"),
            is_liked.label("is_liked"),
        )
        .outerjoin(User, Comment.owner_id == User.id)
        .filter(Comment.video_id == video_id)
        .order_by(Comment.created_at.desc(), Comment.id.desc())
    )


# ============================================
# Comment Endpoints
# ============================================

@router.get("/{video_id}")
async def get_video_comments(
    video_id: int,
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(10, ge=1, le=100, description="Items per page"),
    current_user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db)
):
    """
    Get paginated comments of a video

    Each comment carries its owner's public profile, the number of likes
    and whether the requesting user liked it.
    """
    _get_video_or_404(db, video_id)

    total = db.query(func.count(Comment.id)).filter(Comment.video_id == video_id).scalar()

    rows = (
        comment_listing_query(db, video_id, current_user)
        .offset(page_offset(page, limit))
        .limit(limit)
        .all()
    )

    docs = [
        {
            "id": comment.id,
            "content": comment.content,
            "createdAt": comment.created_at.isoformat() if comment.created_at else None,
            "likesCount": likes_count or 0,
            "isLiked": bool(is_liked),
            "owner": owner.to_summary() if owner else None,
        }
        for comment, owner, likes_count, is_liked in rows
    ]

    return api_response(
        paginate_result(docs, total, page, limit),
        "Comments fetched successfully"
    )


@router.post("/{video_id}", status_code=status.HTTP_201_CREATED)
async def add_comment(
    video_id: int,
    request: CommentRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Add a comment to a video
    """
    content = _require_content(request)
    _get_video_or_404(db, video_id)

    comment = Comment(
        content=content,
        video_id=video_id,
        owner_id=current_user.id,
    )

    try:
        db.add(comment)
        db.commit()
        db.refresh(comment)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Failed to add comment on video {video_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to add comment please try again"
        )

    return api_response(comment.to_dict(), "Comment added successfully", status.HTTP_201_CREATED)


@router.patch("/c/{comment_id}")
async def update_comment(
    comment_id: int,
    request: CommentRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Edit a comment (owner only)
    """
    content = _require_content(request)
    comment = _get_owned_comment(db, comment_id, current_user, "edit")

    comment.content = content
    try:
        db.commit()
        db.refresh(comment)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Failed to edit comment {comment_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to edit comment please try again"
        )

    return api_response(comment.to_dict(), "Comment edited successfully")


@router.delete("/c/{comment_id}")
async def delete_comment(
    comment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Delete a comment and every like attached to it (owner only)
    """
    comment = _get_owned_comment(db, comment_id, current_user, "delete")

    try:
        db.query(Like).filter(Like.comment_id == comment.id).delete(synchronize_session=False)
        db.delete(comment)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Failed to delete comment {comment_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete comment please try again"
        )

    logger.info(f"🗑️ Comment {comment_id} deleted by user {current_user.id}")
    return api_response({"commentId": comment_id}, "Comment deleted successfully")
