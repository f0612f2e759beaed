"""
User API endpoints
Handles registration, login/logout, token rotation, profile updates,
channel profiles and watch history
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status, Form, File, UploadFile, Cookie
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import func, select, or_, literal
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from pydantic import BaseModel, EmailStr, Field, TypeAdapter, ValidationError
from jose import JWTError
from typing import Optional, Tuple

from core.config import settings
from core.database import get_db
from core.responses import api_response
from core.security import (
    ACCESS_TOKEN_COOKIE,
    REFRESH_TOKEN_COOKIE,
    create_access_token,
    create_refresh_token,
    decode_token,
    get_current_user,
    get_optional_user,
    hash_password,
    verify_password,
)
from models.user import User
from models.video import Video, WatchHistory
from models.engagement import Subscription
from services.storage import StorageService, StorageError, get_storage_service

logger = logging.getLogger(__name__)

router = APIRouter()

AVATAR_FOLDER = "avatars"
COVER_IMAGE_FOLDER = "covers"

# Same rules as the EmailStr fields of the JSON payloads
_email_adapter = TypeAdapter(EmailStr)


# ============================================
# Request Models (Pydantic schemas)
# ============================================

class LoginRequest(BaseModel):
    """Login with either username or email"""
    username: Optional[str] = None
    email: Optional[str] = None
    password: str = Field(..., min_length=1)


class RefreshTokenRequest(BaseModel):
    """Refresh token in the body, for clients that cannot send cookies"""
    refreshToken: Optional[str] = None


class ChangePasswordRequest(BaseModel):
    oldPassword: str = Field(..., min_length=1)
    newPassword: str = Field(..., min_length=1)


class UpdateAccountRequest(BaseModel):
    fullName: Optional[str] = None
    email: Optional[EmailStr] = None


# ============================================
# Helpers
# ============================================

def _cookie_options() -> dict:
    return {"httponly": True, "secure": settings.COOKIE_SECURE}


def _set_auth_cookies(response: JSONResponse, access_token: str, refresh_token: str) -> JSONResponse:
    options = _cookie_options()
    response.set_cookie(ACCESS_TOKEN_COOKIE, access_token, **options)
    response.set_cookie(REFRESH_TOKEN_COOKIE, refresh_token, **options)
    return response


def _has_file(upload: Optional[UploadFile]) -> bool:
    return upload is not None and bool(upload.filename)


def _upload_image(
    storage: StorageService,
    upload: Optional[UploadFile],
    folder: str
) -> Optional[Tuple[str, str]]:
    """
    Upload an image, returning (url, key) or None when nothing was
    uploaded or the store rejected it
    """
    if not _has_file(upload):
        return None
    try:
        return storage.upload_image(upload.file, upload.filename, folder, upload.content_type)
    except StorageError as e:
        logger.error(f"❌ Image upload to {folder} failed: {e}")
        return None


def _delete_image(storage: StorageService, object_key: Optional[str]):
    """Best-effort removal of a replaced image"""
    if not object_key:
        return
    try:
        storage.delete_file(object_key)
    except StorageError as e:
        logger.warning(f"⚠️ Could not delete old image {object_key}: {e}")


def generate_access_and_refresh_tokens(db: Session, user: User) -> Tuple[str, str]:
    """
    Issue a new token pair and persist the refresh token on the user
    """
    try:
        access_token = create_access_token(user)
        refresh_token = create_refresh_token(user)

        user.refresh_token = refresh_token
        db.commit()
        db.refresh(user)

        return access_token, refresh_token
    except (JWTError, SQLAlchemyError) as e:
        db.rollback()
        logger.error(f"❌ Token generation failed for user {user.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Something went wrong while generating refresh and access token"
        )


def _invalid_refresh_token(detail: str = "Invalid refresh token") -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


# ============================================
# Authentication Endpoints
# ============================================

@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register_user(
    full_name: str = Form("", alias="fullName"),
    email: str = Form(""),
    username: str = Form(""),
    password: str = Form(""),
    avatar: Optional[UploadFile] = File(None),
    cover_image: Optional[UploadFile] = File(None, alias="coverImage"),
    storage: StorageService = Depends(get_storage_service),
    db: Session = Depends(get_db)
):
    """
    Register a new user

    Multipart form with fullName, email, username, password, an avatar
    image (required) and a cover image (optional).
    """
    if any(not field.strip() for field in (full_name, email, username, password)):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="All fields are required"
        )

    username = username.strip().lower()
    try:
        email = _email_adapter.validate_python(email.strip())
    except ValidationError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid email address"
        )

    existing_user = db.query(User).filter(
        or_(User.username == username, User.email == email)
    ).first()

    if existing_user:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User with email or username already exists"
        )

    if not _has_file(avatar):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Avatar file is required"
        )

    uploaded_avatar = _upload_image(storage, avatar, AVATAR_FOLDER)
    if not uploaded_avatar:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Avatar file is required"
        )
    uploaded_cover = _upload_image(storage, cover_image, COVER_IMAGE_FOLDER)

    user = User(
        full_name=full_name.strip(),
        email=email,
        username=username,
        password=hash_password(password),
        avatar=uploaded_avatar[0],
        avatar_key=uploaded_avatar[1],
        cover_image=uploaded_cover[0] if uploaded_cover else "",
        cover_image_key=uploaded_cover[1] if uploaded_cover else None,
    )

    try:
        db.add(user)
        db.commit()
        db.refresh(user)
    except SQLAlchemyError as e:
        db.rollback()
        for uploaded in (uploaded_avatar, uploaded_cover):
            if uploaded:
                _delete_image(storage, uploaded[1])
        if isinstance(e, IntegrityError):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="User with email or username already exists"
            )
        logger.error(f"❌ Failed to register user {username}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Something went wrong while registering the user"
        )

    logger.info(f"👤 Registered user {user.id} ({user.username})")
    return api_response(user.to_dict(), "User registered successfully", status.HTTP_201_CREATED)


@router.post("/login")
async def login_user(
    request: LoginRequest,
    db: Session = Depends(get_db)
):
    """
    Login with username or email and password

    Returns the user and a fresh token pair; both tokens are also set as
    httpOnly cookies.
    """
    if not (request.username or request.email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username or email is required"
        )

    conditions = []
    if request.username:
        conditions.append(User.username == request.username.strip().lower())
    if request.email:
        conditions.append(User.email == request.email.strip())

    user = db.query(User).filter(or_(*conditions)).first()

    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User does not exist"
        )

    if not verify_password(request.password, user.password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user credentials"
        )

    access_token, refresh_token = generate_access_and_refresh_tokens(db, user)

    response = api_response(
        {
            "user": user.to_dict(),
            "accessToken": access_token,
            "refreshToken": refresh_token,
        },
        "User logged in successfully"
    )
    return _set_auth_cookies(response, access_token, refresh_token)


@router.post("/logout")
async def logout_user(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Logout user: forget the stored refresh token and clear auth cookies
    """
    current_user.refresh_token = None
    db.commit()

    response = api_response({}, "User logged out successfully")
    options = _cookie_options()
    response.delete_cookie(ACCESS_TOKEN_COOKIE, **options)
    response.delete_cookie(REFRESH_TOKEN_COOKIE, **options)
    return response


@router.post("/refresh-token")
async def refresh_access_token(
    request: Optional[RefreshTokenRequest] = None,
    refresh_cookie: Optional[str] = Cookie(None, alias=REFRESH_TOKEN_COOKIE),
    db: Session = Depends(get_db)
):
    """
    Rotate the token pair

    The refresh token comes from the refreshToken cookie or the JSON body.
    It must match the one stored on the user, so each refresh token can be
    used once.
    """
    incoming_refresh_token = refresh_cookie or (request.refreshToken if request else None)
    if not incoming_refresh_token:
        raise _invalid_refresh_token("Unauthorized request")

    try:
        payload = decode_token(incoming_refresh_token, settings.REFRESH_TOKEN_SECRET)
        user_id = int(payload.get("sub"))
    except (JWTError, TypeError, ValueError):
        raise _invalid_refresh_token()

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise _invalid_refresh_token()

    if incoming_refresh_token != user.refresh_token:
        raise _invalid_refresh_token("Refresh token is expired or used")

    access_token, refresh_token = generate_access_and_refresh_tokens(db, user)

    response = api_response(
        {"accessToken": access_token, "refreshToken": refresh_token},
        "Access token refreshed"
    )
    return _set_auth_cookies(response, access_token, refresh_token)


# ============================================
# Account Endpoints
# ============================================

@router.post("/change-password")
async def change_current_password(
    request: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    if not verify_password(request.oldPassword, current_user.password):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid old password"
        )

    current_user.password = hash_password(request.newPassword)
    db.commit()

    return api_response({}, "Password changed successfully")


@router.get("/current-user")
async def get_current_user_profile(
    current_user: User = Depends(get_current_user)
):
    return api_response(current_user.to_dict(), "Current user fetched successfully")


@router.patch("/update-account")
async def update_account_details(
    request: UpdateAccountRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Update full name and email
    """
    full_name = (request.fullName or "").strip()
    if not full_name or not request.email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="All fields are required"
        )

    email_owner = db.query(User).filter(
        User.email == request.email,
        User.id != current_user.id
    ).first()
    if email_owner:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email is already in use"
        )

    current_user.full_name = full_name
    current_user.email = request.email
    db.commit()
    db.refresh(current_user)

    return api_response(current_user.to_dict(), "Account details updated successfully")


@router.patch("/avatar")
async def update_user_avatar(
    avatar: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
    storage: StorageService = Depends(get_storage_service),
    db: Session = Depends(get_db)
):
    if not _has_file(avatar):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Avatar file is missing"
        )

    uploaded = _upload_image(storage, avatar, AVATAR_FOLDER)
    if not uploaded:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Error while uploading avatar"
        )

    old_key = current_user.avatar_key
    current_user.avatar, current_user.avatar_key = uploaded
    db.commit()
    db.refresh(current_user)

    _delete_image(storage, old_key)

    return api_response(current_user.to_dict(), "Avatar image updated successfully")


@router.patch("/cover-image")
async def update_user_cover_image(
    cover_image: Optional[UploadFile] = File(None, alias="coverImage"),
    current_user: User = Depends(get_current_user),
    storage: StorageService = Depends(get_storage_service),
    db: Session = Depends(get_db)
):
    if not _has_file(cover_image):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cover image file is missing"
        )

    uploaded = _upload_image(storage, cover_image, COVER_IMAGE_FOLDER)
    if not uploaded:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Error while uploading cover image"
        )

    old_key = current_user.cover_image_key
    current_user.cover_image, current_user.cover_image_key = uploaded
    db.commit()
    db.refresh(current_user)

    _delete_image(storage, old_key)

    return api_response(current_user.to_dict(), "Cover image updated successfully")


# ============================================
# Channel & History Endpoints
# ============================================

@router.get("/c/{username}")
async def get_user_channel_profile(
    username: str,
    current_user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db)
):
    """
    Public channel profile with subscription aggregates

    - **subscribersCount**: users subscribed to this channel
    - **channelsSubscribedToCount**: channels this user subscribes to
    - **isSubscribed**: whether the requesting user subscribes to this channel
    """
    username = username.strip().lower()
    if not username:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username is missing"
        )

    subscribers_count = (
        select(func.count(Subscription.id))
        .where(Subscription.channel_id == User.id)
        .correlate(User)
        .scalar_subquery()
    )
    subscribed_to_count = (
        select(func.count(Subscription.id))
        .where(Subscription.subscriber_id == User.id)
        .correlate(User)
        .scalar_subquery()
    )
    if current_user is not None:
        is_subscribed = (
            select(func.count(Subscription.id))
            .where(Subscription.channel_id == User.id, Subscription.subscriber_id == current_user.id)
            .correlate(User)
            .scalar_subquery()
        )
    else:
        is_subscribed = literal(0)

    row = (
        db.query(
            User,
            subscribers_count.label("subscribers_count"),
            subscribed_to_count.label("subscribed_to_count"),
            is_subscribed.label("is_subscribed"),
        )
        .filter(User.username == username)
        .first()
    )

    if not row:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Channel does not exist"
        )

    channel, subscribers, subscribed_to, subscribed = row
    return api_response(
        {
            "id": channel.id,
            "fullName": channel.full_name,
            "username": channel.username,
            "avatar": channel.avatar,
            "coverImage": channel.cover_image,
            "subscribersCount": subscribers or 0,
            "channelsSubscribedToCount": subscribed_to or 0,
            "isSubscribed": bool(subscribed),
        },
        "User channel fetched successfully"
    )


@router.get("/history")
async def get_watch_history(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Videos the current user watched, most recent first, each with its owner
    """
    rows = (
        db.query(Video, User)
        .join(WatchHistory, WatchHistory.video_id == Video.id)
        .outerjoin(User, Video.owner_id == User.id)
        .filter(WatchHistory.user_id == current_user.id)
        .order_by(WatchHistory.watched_at.desc(), WatchHistory.id.desc())
        .all()
    )

    history = []
    for video, owner in rows:
        item = video.to_dict()
        item["owner"] = owner.to_summary() if owner else None
        history.append(item)

    return api_response(history, "Watch history fetched successfully")
