from fastapi import APIRouter, Depends

from ..errors import StoreError
from ..models.user_profile import OverlapRequest
from ..services.matching import ranges_overlap
from ..services.profile_service import ProfileService, get_profile_service
from .profiles import http_error

router = APIRouter(prefix="/matches", tags=["matches"])


@router.post("/overlap")
async def date_ranges_overlap(payload: OverlapRequest) -> dict:
    return {"overlap": ranges_overlap(payload.a, payload.b)}


@router.get("/{uid}/{other_uid}")
async def travelers_overlap(
    uid: str,
    other_uid: str,
    service: ProfileService = Depends(get_profile_service),
) -> dict:
    try:
        overlap = await service.travelers_overlap(uid.strip(), other_uid.strip())
    except StoreError as exc:
        raise http_error(exc) from exc
    return {"uid": uid, "otherUid": other_uid, "overlap": overlap}


__all__ = ["router"]
