import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Project-root .env; real environment variables win
load_dotenv(dotenv_path=Path(__file__).resolve().parent.parent / ".env", override=False)


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class Settings(BaseModel):
    # Document store; first of the accepted connection-string variables wins
    mongo_uri: str = Field(
        default_factory=lambda: (
            os.getenv("MONGO_URI")
            or os.getenv("MONGODB_URI")
            or os.getenv("MONGO_URL")
            or ""
        )
    )
    mongo_db: str = Field(default_factory=lambda: os.getenv("MONGO_DB_NAME", "sizzlematch"))
    # Optional: provide a non-SRV fallback URI (e.g., mongodb://127.0.0.1:27017)
    mongo_alt_uri: str = Field(default_factory=lambda: os.getenv("MONGO_ALT_URI", ""))
    # Optional: force direct connection (applies to non-SRV URIs)
    mongo_direct: bool = Field(default_factory=lambda: _env_flag("MONGO_DIRECT", "false"))
    cors_origin: str = Field(default_factory=lambda: os.getenv("CORS_ORIGIN", "http://localhost:8081"))
    port: int = Field(default_factory=lambda: int(os.getenv("PY_BACKEND_PORT", "8081")))

    # Object store: "firebase" (REST API) or "cloudinary"
    storage_backend: str = Field(default_factory=lambda: os.getenv("STORAGE_BACKEND", "firebase").lower())
    firebase_storage_bucket: str = Field(
        default_factory=lambda: os.getenv("FIREBASE_STORAGE_BUCKET", "sizzlematch.appspot.com")
    )
    firebase_storage_base_url: str = Field(
        default_factory=lambda: os.getenv(
            "FIREBASE_STORAGE_BASE_URL", "https://firebasestorage.googleapis.com"
        ).rstrip("/")
    )
    # Optional ID token forwarded as a bearer token to the storage REST API
    firebase_storage_token: str = Field(default_factory=lambda: os.getenv("FIREBASE_STORAGE_TOKEN", ""))

    # Profile policy
    max_profile_picture_mb: float = Field(
        default_factory=lambda: float(os.getenv("MAX_PROFILE_PICTURE_MB", "2"))
    )
    require_profile_picture: bool = Field(
        default_factory=lambda: _env_flag("REQUIRE_PROFILE_PICTURE", "true")
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
