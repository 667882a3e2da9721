"""Repository layer over the document store and the object store."""

from .picture_store import ProfilePictureStore
from .user_profile import UserProfileRepository

__all__ = ["ProfilePictureStore", "UserProfileRepository"]
