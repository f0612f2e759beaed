"""
Video models - Videos and per-user watch history
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .base import Base


class Video(Base):
    """
    Video metadata and storage information
    """
    __tablename__ = "videos"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Files on S3/MinIO
    video_file = Column("videoFile", Text, nullable=False)
    thumbnail = Column(Text, nullable=False)

    # Basic information
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    duration = Column(Integer, nullable=False, default=0)  # Duration in seconds
    views = Column(Integer, nullable=False, default=0)
    is_published = Column("isPublished", Boolean, nullable=False, default=True)

    owner_id = Column("owner", Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Timestamps
    created_at = Column("createdAt", DateTime, default=func.now(), nullable=False)
    updated_at = Column("updatedAt", DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    owner = relationship("User", back_populates="videos")
    comments = relationship("Comment", back_populates="video")

    def __repr__(self):
        return f"<Video(id={self.id}, title={self.title})>"

    def to_dict(self):
        return {
            "id": self.id,
            "videoFile": self.video_file,
            "thumbnail": self.thumbnail,
            "title": self.title,
            "description": self.description,
            "duration": self.duration,
            "views": self.views,
            "isPublished": self.is_published,
            "owner": self.owner_id,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


class WatchHistory(Base):
    """
    One row per (user, video) view, newest watched_at first in listings
    """
    __tablename__ = "watch_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column("userId", Integer, ForeignKey("users.id"), nullable=False, index=True)
    video_id = Column("videoId", Integer, ForeignKey("videos.id"), nullable=False)
    watched_at = Column("watchedAt", DateTime, default=func.now(), nullable=False)

    video = relationship("Video")

    def __repr__(self):
        return f"<WatchHistory(user_id={self.user_id}, video_id={self.video_id})>"
