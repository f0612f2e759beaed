"""
Comment model - user comments on videos
"""
from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .base import Base


class Comment(Base):
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    content = Column(Text, nullable=False)

    video_id = Column("video", Integer, ForeignKey("videos.id"), nullable=False, index=True)
    owner_id = Column("owner", Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Timestamps
    created_at = Column("createdAt", DateTime, default=func.now(), nullable=False)
    updated_at = Column("updatedAt", DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    video = relationship("Video", back_populates="comments")
    owner = relationship("User", back_populates="comments")

    def __repr__(self):
        return f"<Comment(id={self.id}, video_id={self.video_id}, owner_id={self.owner_id})>"

    def to_dict(self):
        return {
            "id": self.id,
            "content": self.content,
            "video": self.video_id,
            "owner": self.owner_id,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
