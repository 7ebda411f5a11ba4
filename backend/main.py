"""FastAPI application entry point and configuration."""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.api.study_router import router as study_router
from backend.config import settings

if settings.debug:
    logging.basicConfig(level=logging.DEBUG)

app = FastAPI(
    title=settings.app_name,
    description="FSRS spaced repetition scheduling for Sage flashcards",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(study_router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Return service status."""
    return {"status": "ok"}
