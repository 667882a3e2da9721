from .matching import profiles_overlap, ranges_overlap
from .profile_service import ProfileService, build_profile_service

__all__ = [
    "ProfileService",
    "build_profile_service",
    "profiles_overlap",
    "ranges_overlap",
]
