"""
User model - Core authentication and channel identity
"""
from sqlalchemy import Column, Integer, String, Text, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .base import Base


class User(Base):
    """
    Core user table backing the auth flow.
    A user is also a channel that other users can subscribe to.
    """
    __tablename__ = "users"

    # Primary key
    id = Column(Integer, primary_key=True, autoincrement=True)

    # Identity (username is always stored lower-case)
    username = Column(String(64), unique=True, nullable=False, index=True)
    email = Column(String(320), unique=True, nullable=False, index=True)
    full_name = Column("fullName", String(255), nullable=False, index=True)

    # Images on S3/MinIO
    avatar = Column(Text, nullable=False)
    avatar_key = Column("avatarKey", String(500), nullable=True)
    cover_image = Column("coverImage", Text, nullable=False, default="")
    cover_image_key = Column("coverImageKey", String(500), nullable=True)

    # Credentials
    password = Column(String(255), nullable=False)  # bcrypt hash
    refresh_token = Column("refreshToken", Text, nullable=True)

    # Timestamps
    created_at = Column("createdAt", DateTime, default=func.now(), nullable=False)
    updated_at = Column("updatedAt", DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    videos = relationship("Video", back_populates="owner")
    comments = relationship("Comment", back_populates="owner")

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username})>"

    def to_summary(self):
        """Public owner fields embedded in comment and video listings"""
        return {
            "username": self.username,
            "fullName": self.full_name,
            "avatar": self.avatar,
        }

    def to_dict(self):
        """Convert to dictionary for API responses (never exposes credentials)"""
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "fullName": self.full_name,
            "avatar": self.avatar,
            "coverImage": self.cover_image,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
