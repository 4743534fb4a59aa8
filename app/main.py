"""Design Review API.

Wires the review router, the settings database and CORS for the web app and
the Figma plugin.
"""

from __future__ import annotations

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from reviewer import config
from reviewer.logging_config import get_api_logger, get_pipeline_logger

from .database import close_db, init_db

logger = get_api_logger()
get_pipeline_logger()


def _warn_missing_credentials() -> None:
    if not config.FIGMA_TOKEN:
        logger.warning("FIGMA_TOKEN not set: Figma endpoints need figmaApiKey in the request.")
    if not config.LLM_API_KEY:
        logger.warning("LLM_API_KEY not set: analysis and solutions requests will fail.")


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    _warn_missing_credentials()
    logger.info(f"Design Review API ready (default model {config.DEFAULT_MODEL})")
    yield
    await close_db()


app = FastAPI(title="Design Review API", version="1.0.0", lifespan=lifespan)

# Plugin iframes send "Origin: null"
_DEFAULT_ORIGINS = "http://localhost:3000,http://127.0.0.1:3000,https://www.figma.com,null"
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", _DEFAULT_ORIGINS).split(",")
    if origin.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["*"],
)

from .routes.review import router as review_router  # noqa: E402

app.include_router(review_router)


@app.get("/health")
async def health_check():
    return {"status": "ok"}
