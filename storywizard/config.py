"""Runtime settings read from the environment (and a .env file, if present)."""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from storywizard.autosave import DEFAULT_AUTOSAVE_DELAY
from storywizard.gateway import DEFAULT_IMAGE_MODEL, DEFAULT_MODEL

ROOT = Path(__file__).parent.parent
DEFAULT_DATA_DIR = ROOT / "data"


@dataclass
class Settings:
    data_dir: Path
    gemini_api_key: str
    gemini_model: str
    gemini_image_model: str
    autosave_delay: float
    host: str
    backend_port: str


def load_settings(env_file: Path | None = None) -> Settings:
    load_dotenv(env_file or ROOT / ".env")
    return Settings(
        data_dir=Path(os.getenv("DATA_DIR", str(DEFAULT_DATA_DIR))),
        gemini_api_key=os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY", ""),
        gemini_model=os.getenv("GEMINI_MODEL", DEFAULT_MODEL),
        gemini_image_model=os.getenv("GEMINI_IMAGE_MODEL", DEFAULT_IMAGE_MODEL),
        autosave_delay=float(os.getenv("AUTOSAVE_DELAY", str(DEFAULT_AUTOSAVE_DELAY))),
        host=os.getenv("HOST", "0.0.0.0"),
        backend_port=os.getenv("BACKEND_PORT", "13013"),
    )
