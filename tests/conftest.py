from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import datetime, timedelta, timezone
from pathlib import Path
import itertools
import sys
import uuid
from urllib.parse import unquote

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

SERVICE_ROOT = Path(__file__).resolve().parents[1]
if str(SERVICE_ROOT) not in sys.path:
    sys.path.insert(0, str(SERVICE_ROOT))

from sizzlematch.config import get_settings
from sizzlematch.context import AppContext
from sizzlematch.integrations.firebase_storage import FirebaseStorageBackend
from sizzlematch.repositories.picture_store import ProfilePictureStore
from sizzlematch.repositories.user_profile import UserProfileRepository
from sizzlematch.services.profile_service import ProfileService

BUCKET = "sizzlematch-test.appspot.com"
STORAGE_BASE = "https://firebasestorage.test"
IMAGE_HOST = "https://images.test"
CLOCK_START = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class FakeFirebaseStorage:
    """In-memory stand-in for the Firebase Storage REST endpoints."""

    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.content_types: dict[str, str] = {}
        self.tokens: dict[str, str] = {}
        self.fail_uploads = False
        self.fail_deletes = False

    def _metadata(self, name: str) -> dict:
        return {
            "name": name,
            "bucket": BUCKET,
            "contentType": self.content_types.get(name),
            "downloadTokens": self.tokens[name],
        }

    def handle(self, request: httpx.Request) -> httpx.Response:
        prefix = f"/v0/b/{BUCKET}/o"
        raw_path = request.url.raw_path.decode("ascii").split("?", 1)[0]
        if not raw_path.startswith(prefix):
            return httpx.Response(404)

        if request.method == "POST" and raw_path == prefix:
            if self.fail_uploads:
                return httpx.Response(503, json={"error": {"code": 503}})
            name = request.url.params["name"]
            self.objects[name] = request.content
            self.content_types[name] = request.headers.get("content-type", "")
            self.tokens[name] = uuid.uuid4().hex
            return httpx.Response(200, json=self._metadata(name))

        name = unquote(raw_path[len(prefix) + 1 :])
        if name not in self.objects:
            return httpx.Response(404, json={"error": {"code": 404}})
        if request.method == "GET":
            return httpx.Response(200, json=self._metadata(name))
        if request.method == "DELETE":
            if self.fail_deletes:
                return httpx.Response(500, json={"error": {"code": 500}})
            del self.objects[name]
            return httpx.Response(204)
        return httpx.Response(405)


class SteppingClock:
    """Returns CLOCK_START, then one second later on every call."""

    def __init__(self) -> None:
        self.current = CLOCK_START

    def __call__(self) -> datetime:
        value = self.current
        self.current = value + timedelta(seconds=1)
        return value


class RecordingNotifier:
    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def notify(self, message: str, severity="default") -> None:
        self.messages.append((message, getattr(severity, "value", severity)))

    @property
    def severities(self) -> list[str]:
        return [severity for _, severity in self.messages]


@pytest.fixture(autouse=True)
def _env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MONGO_URI", "mongodb://localhost:27017/test")
    monkeypatch.setenv("MONGO_DB_NAME", "sizzlematch-test")
    monkeypatch.setenv("STORAGE_BACKEND", "firebase")
    monkeypatch.setenv("FIREBASE_STORAGE_BUCKET", BUCKET)
    monkeypatch.setenv("FIREBASE_STORAGE_BASE_URL", STORAGE_BASE)
    monkeypatch.setenv("MAX_PROFILE_PICTURE_MB", "2")
    monkeypatch.setenv("REQUIRE_PROFILE_PICTURE", "true")
    get_settings.cache_clear()  # type: ignore[attr-defined]


@pytest.fixture
def fake_storage() -> FakeFirebaseStorage:
    return FakeFirebaseStorage()


@pytest.fixture
def remote_images() -> dict[str, tuple[bytes, str]]:
    """Remote image URL -> (body, content type) served by the mock transport."""

    return {
        f"{IMAGE_HOST}/me.png": (PNG_BYTES, "image/png"),
        f"{IMAGE_HOST}/beach.jpg": (b"\xff\xd8\xff" + b"\x01" * 32, "image/jpeg"),
        f"{IMAGE_HOST}/huge.png": (b"\x00" * (2 * 1024 * 1024 + 1), "image/png"),
    }


@pytest_asyncio.fixture
async def http_client(
    fake_storage: FakeFirebaseStorage,
    remote_images: dict[str, tuple[bytes, str]],
) -> AsyncIterator[httpx.AsyncClient]:
    def handler(request: httpx.Request) -> httpx.Response:
        if str(request.url).startswith(STORAGE_BASE):
            return fake_storage.handle(request)
        entry = remote_images.get(str(request.url))
        if entry is None:
            return httpx.Response(404)
        return httpx.Response(200, content=entry[0], headers={"content-type": entry[1]})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        yield client


@pytest_asyncio.fixture
async def mongo_client() -> AsyncIterator[AsyncMongoMockClient]:
    client = AsyncMongoMockClient()
    yield client
    client.close()


@pytest.fixture
def context(mongo_client: AsyncMongoMockClient, http_client: httpx.AsyncClient) -> AppContext:
    settings = get_settings()
    storage = FirebaseStorageBackend(http_client, bucket=BUCKET, base_url=STORAGE_BASE)
    return AppContext(
        settings,
        database=mongo_client[settings.mongo_db],
        storage=storage,
        http_client=http_client,
    )


@pytest.fixture
def clock() -> SteppingClock:
    return SteppingClock()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def profiles(context: AppContext, clock: SteppingClock) -> UserProfileRepository:
    return UserProfileRepository(context, clock=clock)


@pytest.fixture
def pictures(context: AppContext) -> ProfilePictureStore:
    ticks = itertools.count(1714564800000)
    return ProfilePictureStore(context, clock_ms=lambda: next(ticks))


@pytest.fixture
def service(
    context: AppContext,
    profiles: UserProfileRepository,
    pictures: ProfilePictureStore,
    notifier: RecordingNotifier,
    http_client: httpx.AsyncClient,
) -> ProfileService:
    return ProfileService(context, profiles, pictures, notifier, fetch_client=http_client)


@pytest_asyncio.fixture
async def api_client(context: AppContext) -> AsyncIterator[AsyncClient]:
    from sizzlematch.main import app

    previous = app.state.context
    app.state.context = context
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        yield client
    app.state.context = previous


def travel_dates(arrival_day: int, departure_day: int) -> dict:
    return {
        "arrival": (CLOCK_START + timedelta(days=arrival_day)).isoformat(),
        "departure": (CLOCK_START + timedelta(days=departure_day)).isoformat(),
    }


def complete_fields(**overrides) -> dict:
    fields = {
        "name": "Ana",
        "age": 24,
        "gender": "female",
        "travelDates": travel_dates(1, 5),
        "bio": "Backpacking the coast",
    }
    fields.update(overrides)
    return fields
