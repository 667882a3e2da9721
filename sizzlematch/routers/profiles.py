from fastapi import APIRouter, Depends, HTTPException, Response, status

from ..errors import (
    DeleteError,
    FetchError,
    InitializationError,
    NotFoundError,
    ReadError,
    StoreError,
    UploadError,
    ValidationError,
    WriteError,
)
from ..models.user_profile import PictureRequest, ProfileView, SaveProfileRequest
from ..services.profile_service import (
    ProfileService,
    failure_message,
    get_profile_service,
)

router = APIRouter(prefix="/profiles", tags=["profiles"])

STATUS_BY_ERROR = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    FetchError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    UploadError: status.HTTP_502_BAD_GATEWAY,
    DeleteError: status.HTTP_502_BAD_GATEWAY,
    ReadError: status.HTTP_502_BAD_GATEWAY,
    WriteError: status.HTTP_502_BAD_GATEWAY,
    InitializationError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def http_error(exc: StoreError) -> HTTPException:
    for kind in type(exc).__mro__:
        if kind in STATUS_BY_ERROR:
            return HTTPException(status_code=STATUS_BY_ERROR[kind], detail=failure_message(exc))
    return HTTPException(status_code=500, detail=failure_message(exc))


async def _load_view(service: ProfileService, uid: str) -> ProfileView:
    try:
        profile = await service.get_profile(uid)
    except StoreError as exc:
        raise http_error(exc) from exc
    if not profile:
        raise HTTPException(status_code=404, detail="profile not found")
    return ProfileView.from_profile(profile)


@router.get("/{uid}", response_model=ProfileView)
async def get_profile(
    uid: str,
    service: ProfileService = Depends(get_profile_service),
) -> ProfileView:
    return await _load_view(service, uid.strip())


@router.put("/{uid}", response_model=ProfileView)
async def save_profile(
    uid: str,
    payload: SaveProfileRequest,
    response: Response,
    service: ProfileService = Depends(get_profile_service),
) -> ProfileView:
    uid = uid.strip()
    try:
        created = await service.save_profile(uid, payload.profile_fields(), payload.image_ref)
        profile = await service.saved_profile(uid)
    except StoreError as exc:
        raise http_error(exc) from exc

    if not profile:
        raise HTTPException(status_code=404, detail="profile not found")
    if created:
        response.status_code = status.HTTP_201_CREATED
    return ProfileView.from_profile(profile)


@router.post("/{uid}/picture")
async def replace_picture(
    uid: str,
    payload: PictureRequest,
    service: ProfileService = Depends(get_profile_service),
) -> dict:
    try:
        url = await service.replace_picture(uid.strip(), payload.image_ref)
    except StoreError as exc:
        raise http_error(exc) from exc
    return {"url": url}


@router.delete("/{uid}/picture", status_code=status.HTTP_204_NO_CONTENT)
async def remove_picture(
    uid: str,
    service: ProfileService = Depends(get_profile_service),
) -> Response:
    try:
        await service.remove_picture(uid.strip())
    except StoreError as exc:
        raise http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{uid}/complete")
async def profile_complete(
    uid: str,
    service: ProfileService = Depends(get_profile_service),
) -> dict:
    uid = uid.strip()
    return {"uid": uid, "complete": await service.is_profile_complete(uid)}


__all__ = ["STATUS_BY_ERROR", "http_error", "router"]
