"""
Engagement models - Likes and channel Subscriptions
"""
from sqlalchemy import Column, Integer, DateTime, ForeignKey
from sqlalchemy.sql import func

from .base import Base


class Like(Base):
    """
    A like on either a video or a comment
    """
    __tablename__ = "likes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    video_id = Column("video", Integer, ForeignKey("videos.id"), nullable=True, index=True)
    comment_id = Column("comment", Integer, ForeignKey("comments.id"), nullable=True, index=True)
    liked_by = Column("likedBy", Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column("createdAt", DateTime, default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Like(id={self.id}, comment_id={self.comment_id}, liked_by={self.liked_by})>"


class Subscription(Base):
    """
    subscriber follows channel; both sides are users
    """
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    subscriber_id = Column("subscriber", Integer, ForeignKey("users.id"), nullable=False, index=True)
    channel_id = Column("channel", Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column("createdAt", DateTime, default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Subscription(subscriber_id={self.subscriber_id}, channel_id={self.channel_id})>"
