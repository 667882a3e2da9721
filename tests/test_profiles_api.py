from __future__ import annotations

import pytest

from conftest import IMAGE_HOST, STORAGE_BASE, complete_fields, travel_dates
from sizzlematch.config import get_settings
from sizzlematch.context import AppContext
from sizzlematch.errors import InitializationError, ReadError
from sizzlematch.repositories.user_profile import UserProfileRepository
from sizzlematch.services.profile_service import ProfileService, get_profile_service


@pytest.mark.asyncio
async def test_save_then_update_profile(api_client) -> None:
    created = await api_client.put("/api/profiles/user-1", json=complete_fields())
    assert created.status_code == 201
    body = created.json()
    assert body["uid"] == "user-1"
    assert body["name"] == "Ana"
    assert body["ageDescription"] == "24 years old"
    assert body["formattedDates"] == {"arrival": "2024-05-02", "departure": "2024-05-06"}
    assert body["profilePicture"] is None

    updated = await api_client.put("/api/profiles/user-1", json={"bio": "Island hopping"})
    assert updated.status_code == 200
    assert updated.json()["bio"] == "Island hopping"
    assert updated.json()["createdAt"] == body["createdAt"]

    fetched = await api_client.get("/api/profiles/user-1")
    assert fetched.status_code == 200
    assert fetched.json()["bio"] == "Island hopping"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [{"age": 45}, {"gender": "other"}, {"travelDates": travel_dates(5, 1)}],
)
async def test_invalid_fields_are_rejected(api_client, overrides) -> None:
    response = await api_client.put("/api/profiles/user-1", json=complete_fields(**overrides))
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_save_with_image_ref_uploads_picture(api_client, fake_storage) -> None:
    response = await api_client.put(
        "/api/profiles/user-1",
        json={**complete_fields(), "imageRef": f"{IMAGE_HOST}/me.png"},
    )
    assert response.status_code == 201
    assert response.json()["profilePicture"].startswith(f"{STORAGE_BASE}/v0/b/")
    assert len(fake_storage.objects) == 1


@pytest.mark.asyncio
async def test_save_with_unsupported_image_type(api_client, fake_storage) -> None:
    response = await api_client.put(
        "/api/profiles/user-1",
        json={**complete_fields(), "imageRef": f"{IMAGE_HOST}/scan.bmp"},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Please select a JPG, PNG or GIF image."
    assert fake_storage.objects == {}


@pytest.mark.asyncio
async def test_picture_endpoints(api_client, fake_storage) -> None:
    await api_client.put("/api/profiles/user-1", json=complete_fields())

    complete = await api_client.get("/api/profiles/user-1/complete")
    assert complete.json() == {"uid": "user-1", "complete": False}

    replaced = await api_client.post("/api/profiles/user-1/picture", json={"imageRef": f"{IMAGE_HOST}/me.png"})
    assert replaced.status_code == 200
    url = replaced.json()["url"]
    assert (await api_client.get("/api/profiles/user-1")).json()["profilePicture"] == url

    complete = await api_client.get("/api/profiles/user-1/complete")
    assert complete.json() == {"uid": "user-1", "complete": True}

    removed = await api_client.delete("/api/profiles/user-1/picture")
    assert removed.status_code == 204
    assert fake_storage.objects == {}
    assert (await api_client.get("/api/profiles/user-1")).json()["profilePicture"] is None


@pytest.mark.asyncio
async def test_missing_profile_responses(api_client) -> None:
    assert (await api_client.get("/api/profiles/ghost")).status_code == 404

    replaced = await api_client.post("/api/profiles/ghost/picture", json={"imageRef": f"{IMAGE_HOST}/me.png"})
    assert replaced.status_code == 404
    assert replaced.json()["detail"] == "Profile not found."

    complete = await api_client.get("/api/profiles/ghost/complete")
    assert complete.json() == {"uid": "ghost", "complete": False}


@pytest.mark.asyncio
async def test_storage_outage_maps_to_bad_gateway(api_client, fake_storage) -> None:
    await api_client.put("/api/profiles/user-1", json=complete_fields())
    fake_storage.fail_uploads = True

    response = await api_client.post("/api/profiles/user-1/picture", json={"imageRef": f"{IMAGE_HOST}/me.png"})
    assert response.status_code == 502
    assert response.json()["detail"] == "Failed to upload image. Please try again later."


@pytest.mark.asyncio
async def test_overlap_endpoints(api_client) -> None:
    response = await api_client.post(
        "/api/matches/overlap",
        json={"a": travel_dates(1, 5), "b": travel_dates(5, 9)},
    )
    assert response.json() == {"overlap": False}

    response = await api_client.post(
        "/api/matches/overlap",
        json={"a": travel_dates(1, 5), "b": travel_dates(4, 9)},
    )
    assert response.json() == {"overlap": True}

    for uid, dates, image in (("ana", travel_dates(1, 5), "me.png"), ("ben", travel_dates(4, 9), "beach.jpg")):
        await api_client.put(
            f"/api/profiles/{uid}",
            json={**complete_fields(travelDates=dates), "imageRef": f"{IMAGE_HOST}/{image}"},
        )

    response = await api_client.get("/api/matches/ana/ben")
    assert response.json() == {"uid": "ana", "otherUid": "ben", "overlap": True}


@pytest.mark.asyncio
async def test_health_reports_store_status(api_client) -> None:
    response = await api_client.get("/api/health/stores")
    assert response.status_code == 200
    assert response.json()["ready"] is True


@pytest.mark.asyncio
async def test_uninitialized_stores_return_service_unavailable(api_client) -> None:
    from sizzlematch.main import app

    app.state.context = AppContext.failed(get_settings(), InitializationError("MongoDB connection failed"))

    response = await api_client.put("/api/profiles/user-1", json=complete_fields())
    assert response.status_code == 503
    assert response.json()["detail"] == "Backend initialization error. Please try again later."

    health = await api_client.get("/api/health/stores")
    assert health.json()["ready"] is False
    assert health.json()["error"] == "MongoDB connection failed"


@pytest.mark.asyncio
@pytest.mark.parametrize("bad", [True, [1], 10**20])
async def test_unusable_instants_are_unprocessable(api_client, bad) -> None:
    saved = await api_client.put(
        "/api/profiles/user-1",
        json=complete_fields(travelDates={"arrival": bad, "departure": 10**21}),
    )
    assert saved.status_code == 422

    overlap = await api_client.post(
        "/api/matches/overlap",
        json={"a": {"arrival": bad, "departure": 10**21}, "b": travel_dates(1, 5)},
    )
    assert overlap.status_code == 422


@pytest.mark.asyncio
async def test_failed_read_back_reports_only_the_save(api_client, context, pictures, notifier) -> None:
    from sizzlematch.main import app

    class UnreadableProfiles(UserProfileRepository):
        async def get(self, uid):
            raise ReadError("failed to load profile")

    service = ProfileService(context, UnreadableProfiles(context), pictures, notifier)
    app.dependency_overrides[get_profile_service] = lambda: service
    try:
        response = await api_client.put("/api/profiles/user-1", json=complete_fields())
    finally:
        app.dependency_overrides.pop(get_profile_service, None)

    assert response.status_code == 502
    assert notifier.messages == [("Profile created successfully", "success")]
