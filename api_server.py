from __future__ import annotations  # FastAPI server exposing the mock interview API

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agents.llm_bindings import bind_default_models
from api.routes import router
from config.settings import settings
from storage.migrate import migrate


logger = logging.getLogger(__name__)

CONFIG_PATH = Path(__file__).resolve().parent / settings.APP_CONFIG_PATH


def prepare(config_path: Path = CONFIG_PATH) -> bool:  # Migrate storage and bind external collaborators
    migrate()
    if not config_path.exists():
        logger.warning("No model config at %s; question generation falls back to built-in questions", config_path)
        return False
    bind_default_models(config_path)
    return True


@asynccontextmanager
async def lifespan(app: FastAPI):
    prepare()
    yield


app = FastAPI(title="Mock Interview API", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"]
)
app.include_router(router)


@app.get("/health")
def health() -> dict:  # Liveness probe
    return {"status": "ok"}
