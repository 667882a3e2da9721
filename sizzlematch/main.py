import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .context import AppContext, build_context
from .errors import InitializationError
from .integrations.cloudinary import get_status as cloudinary_status
from .routers import matches, profiles

LOGGER = logging.getLogger("uvicorn.error")

app = FastAPI(title="SizzleMatch Profile API")
settings = get_settings()

# Build CORS origins list from env (supports CSV).
_origins_env = os.getenv("CORS_ORIGINS") or settings.cors_origin
_allow_origins = [o.strip() for o in _origins_env.split(",") if o.strip()]
LOGGER.info("[CORS] allow_origins=%s", _allow_origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allow_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
)

# Requests made before startup completes see an uninitialized context
app.state.context = AppContext.failed(
    settings, InitializationError("Profile stores are not initialized")
)


@app.on_event("startup")
async def startup():
    context = await build_context(get_settings())
    app.state.context = context
    if context.result.ok:
        LOGGER.info(
            "[Stores] ready: db=%s storage=%s",
            context.settings.mongo_db,
            context.settings.storage_backend,
        )
    else:
        LOGGER.error("[Stores] initialization failed: %s", context.result.error)
    if context.settings.storage_backend == "cloudinary":
        info = cloudinary_status()
        LOGGER.info(
            "[Cloudinary] configured=%s cloud=%s",
            info.get("configured"),
            info.get("cloudName") or "unknown",
        )


@app.on_event("shutdown")
async def shutdown():
    await app.state.context.close()


# Routers
app.include_router(profiles.router, prefix="/api")
app.include_router(matches.router, prefix="/api")


@app.get("/")
async def root():
    return {"status": "profile-api-ok"}


@app.get("/api/health/stores")
async def stores_health():
    return app.state.context.status()
