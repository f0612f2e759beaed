"""
Security utilities - JWT access/refresh tokens and password hashing
"""
import uuid
from datetime import datetime, timedelta
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import HTTPException, status, Depends, Header, Cookie
from sqlalchemy.orm import Session

from core.config import settings
from core.database import get_db
from models.user import User

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ACCESS_TOKEN_COOKIE = "accessToken"
REFRESH_TOKEN_COOKIE = "refreshToken"


def _encode(data: Dict[str, Any], secret: str, expires_delta: timedelta) -> str:
    to_encode = data.copy()
    to_encode.update({"exp": datetime.utcnow() + expires_delta})
    return jwt.encode(to_encode, secret, algorithm=settings.JWT_ALGORITHM)


def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create short-lived JWT access token

    Args:
        user: Token owner; identity claims are copied into the payload
        expires_delta: Token expiration time

    Returns:
        Encoded JWT token
    """
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "username": user.username,
        "fullName": user.full_name,
    }
    return _encode(
        payload,
        settings.ACCESS_TOKEN_SECRET,
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def create_refresh_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create long-lived JWT refresh token carrying the user id and a unique
    jti, so two tokens issued in the same second still differ
    """
    return _encode(
        {"sub": str(user.id), "jti": uuid.uuid4().hex},
        settings.REFRESH_TOKEN_SECRET,
        expires_delta or timedelta(minutes=settings.REFRESH_TOKEN_EXPIRE_MINUTES),
    )


def decode_token(token: str, secret: str) -> Dict[str, Any]:
    """
    Verify signature and expiry of a JWT

    Raises:
        JWTError: If token is invalid or expired
    """
    return jwt.decode(token, secret, algorithms=[settings.JWT_ALGORITHM])


def verify_token(token: str) -> Dict[str, Any]:
    """
    Verify and decode an access token

    Raises:
        HTTPException: If token is invalid or expired
    """
    try:
        return decode_token(token, settings.ACCESS_TOKEN_SECRET)
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid access token",
            headers={"WWW-Authenticate": "Bearer"},
        )


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None

    try:
        scheme, token = authorization.split()
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format",
        )
    if scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication scheme",
        )
    return token


def _user_from_token(token: str, db: Session) -> User:
    payload = verify_token(token)
    user_id = payload.get("sub")

    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    user = db.query(User).filter(User.id == int(user_id)).first()

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid access token",
        )

    return user


def _resolve_user(access_token: Optional[str], authorization: Optional[str], db: Session) -> Optional[User]:
    """
    Cookie first; a stale cookie falls back to the Authorization header
    when one is sent. None when neither is present.
    """
    if access_token:
        try:
            return _user_from_token(access_token, db)
        except HTTPException:
            if not authorization:
                raise

    token = _bearer_token(authorization)
    if not token:
        return None
    return _user_from_token(token, db)


def get_current_user(
    access_token: Optional[str] = Cookie(None, alias=ACCESS_TOKEN_COOKIE),
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db)
) -> User:
    """
    Get current authenticated user from the access token cookie or
    the Authorization: Bearer header

    Raises:
        HTTPException: If authentication fails
    """
    user = _resolve_user(access_token, authorization, db)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized request",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def get_optional_user(
    access_token: Optional[str] = Cookie(None, alias=ACCESS_TOKEN_COOKIE),
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db)
) -> Optional[User]:
    """
    Same as get_current_user for public endpoints: anonymous requests get None,
    a presented but invalid token is still rejected
    """
    return _resolve_user(access_token, authorization, db)


def hash_password(password: str) -> str:
    """Hash a password"""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash"""
    return pwd_context.verify(plain_password, hashed_password)
