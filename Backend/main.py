from contextlib import asynccontextmanager
import logging
import os
import platform
import traceback

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn # For running programmatically

from kollector.api import (
    admin, auth, discogs, health, images, imports, kollections, lists, lookups, music_releases,
    now_playing, profile, query
)
from kollector.core.config import settings
from kollector.services.database import engine, init_db

# Configure logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger("kollector")
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting KollectorScum API ({settings.ENVIRONMENT})")
    await init_db()
    yield
    await engine.dispose()


app = FastAPI(title="KollectorScum API", version=settings.APP_VERSION, lifespan=lifespan)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials="*" not in settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Unhandled errors only expose details in development
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    error_detail = traceback.format_exc()
    logger.error(f"Unhandled exception: {str(exc)}\n{error_detail}")
    content = {
        "error": "An error occurred while processing your request",
        "path": request.url.path
    }
    if settings.is_development:
        content["detail"] = error_detail
    return JSONResponse(status_code=500, content=content)

# Include routes
for lookup_router, tag in lookups.routers:
    app.include_router(lookup_router, prefix="/api", tags=[tag])
app.include_router(music_releases.router, prefix="/api", tags=["MusicReleases"])
app.include_router(kollections.router, prefix="/api", tags=["Kollections"])
app.include_router(lists.router, prefix="/api", tags=["Lists"])
app.include_router(now_playing.router, prefix="/api", tags=["NowPlaying"])
app.include_router(images.router, prefix="/api", tags=["Images"])
app.include_router(discogs.router, prefix="/api", tags=["Discogs"])
app.include_router(imports.router, prefix="/api", tags=["Import"])
app.include_router(auth.router, prefix="/api", tags=["Authentication"])
app.include_router(profile.router, prefix="/api", tags=["Profile"])
app.include_router(admin.router, prefix="/api", tags=["Admin"])
app.include_router(query.router, prefix="/api", tags=["Query"])
app.include_router(health.router, prefix="/api", tags=["Health"])


@app.get("/")
async def root():
    return {"message": "Welcome to KollectorScum API"}

@app.get("/runtime-info")
async def runtime_info():
    return {
        "environment": settings.ENVIRONMENT,
        "version": settings.APP_VERSION,
        "python_version": platform.python_version(),
        "database": engine.dialect.name,
    }


if __name__ == "__main__":
    # Render-style deployments provide PORT
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run("main:app", host="0.0.0.0", port=port, log_level=settings.LOG_LEVEL.lower())
