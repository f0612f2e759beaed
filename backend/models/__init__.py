"""
SQLAlchemy Models for the VideoTube backend
"""
from .base import Base
from .user import User
from .video import Video, WatchHistory
from .comment import Comment
from .engagement import Like, Subscription

__all__ = [
    "Base",
    "User",
    "Video",
    "WatchHistory",
    "Comment",
    "Like",
    "Subscription",
]
