import logging
from pathlib import Path

from fastapi import FastAPI

from backend.routes import router
from storywizard.config import load_settings
from storywizard.gateway import Gateway, GeminiGateway, UnconfiguredGateway
from storywizard.storage import KeyValueStore
from storywizard.workspace import Workspace

logger = logging.getLogger(__name__)


def build_gateway(api_key: str, model: str, image_model: str) -> Gateway:
    if not api_key:
        logger.warning("GEMINI_API_KEY not set; generation endpoints will fail")
        return UnconfiguredGateway()
    return GeminiGateway(api_key=api_key, model=model, image_model=image_model)


def create_app(data_dir: Path | None = None, gateway: Gateway | None = None) -> FastAPI:
    settings = load_settings()
    resolved = data_dir or settings.data_dir
    if gateway is None:
        gateway = build_gateway(
            settings.gemini_api_key, settings.gemini_model, settings.gemini_image_model
        )

    app = FastAPI(title="StoryWizard")
    app.state.workspace = Workspace(KeyValueStore(resolved), gateway, autosave_delay=settings.autosave_delay)
    app.include_router(router, prefix="/api")
    return app
