# app/main.py

import logging
import os
import time

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.endpoints import asset
from app.api.v1.endpoints import companies, contacts, event_log, integrations
from app.api.v1.endpoints.auth import router as auth_router
from app.core.config import settings
from app.core.db import init_db
from app.sync.integrations import integration_registry

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.PROJECT_NAME, version=settings.VERSION, description=settings.DESCRIPTION)

# Set up CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(auth_router, prefix=settings.API_V1_STR)
app.include_router(contacts.router, prefix=settings.API_V1_STR)
app.include_router(companies.router, prefix=settings.API_V1_STR)
app.include_router(event_log.router, prefix=settings.API_V1_STR)
app.include_router(integrations.router, prefix=settings.API_V1_STR)
app.include_router(asset.router)


@app.get("/health")
def health():
    return {"status": "ok", "version": settings.VERSION, "timestamp": int(time.time())}


def register_configured_integrations():
    for name, objects in settings.SYNC_INTEGRATIONS.items():
        integration_registry.register(name, objects)


@app.on_event("startup")
def startup_event():
    """Create tables and register integration handlers"""
    start_time = time.time()
    logger.info(f"Starting {settings.PROJECT_NAME} v{settings.VERSION}")
    logger.info(f"Process ID: {os.getpid()}")

    os.makedirs(settings.DATA_DIR, exist_ok=True)
    os.makedirs(settings.LOGS_DIR, exist_ok=True)
    os.makedirs(settings.ASSET_UPLOAD_DIR, exist_ok=True)

    logger.info(f"Environment: {'Development' if settings.DEBUG else 'Production'}")

    init_db()
    register_configured_integrations()

    elapsed = time.time() - start_time
    logger.info(f"Application startup completed in {elapsed:.2f} seconds")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        workers=settings.WORKERS,
        log_level=settings.LOG_LEVEL,
        reload=settings.RELOAD
    )
