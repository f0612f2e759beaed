"""
External services for the VideoTube backend
"""
from .storage import StorageService, StorageError, storage_service, get_storage_service

__all__ = ["StorageService", "StorageError", "storage_service", "get_storage_service"]
