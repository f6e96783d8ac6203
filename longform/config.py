import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
ENV_FILE = Path(os.environ.get("LONGFORM_ENV_FILE", BASE_DIR / ".env"))

# Settings below are read at import time, so the .env file must be loaded first.
load_dotenv(ENV_FILE)


def _default_sqlite_uri() -> str:
    instance_path = BASE_DIR / "instance"
    instance_path.mkdir(exist_ok=True)
    return f"sqlite:///{instance_path / 'longform.db'}"


def _engine_options(uri: str) -> dict:
    # Async views run on a worker thread, so pooled SQLite connections cross threads.
    if uri.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {}


class Config:
    """Base configuration shared across environments."""

    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-change-me")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", _default_sqlite_uri())
    SQLALCHEMY_ENGINE_OPTIONS = _engine_options(SQLALCHEMY_DATABASE_URI)
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_TIME_LIMIT = None

    DEEPSEEK_API_KEY = os.environ.get("DEEPSEEK_API_KEY")
    DEEPSEEK_BASE_URL = os.environ.get("DEEPSEEK_BASE_URL", "https://api.deepseek.com/v1")
    DEEPSEEK_MODEL = os.environ.get("DEEPSEEK_MODEL", "deepseek-chat")
    GENERATION_TIMEOUT = float(os.environ.get("GENERATION_TIMEOUT", "90"))
    GENERATION_MAX_ATTEMPTS = int(os.environ.get("GENERATION_MAX_ATTEMPTS", "6"))
    GENERATION_BASE_DELAY = float(os.environ.get("GENERATION_BASE_DELAY", "1.0"))


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = _engine_options(SQLALCHEMY_DATABASE_URI)
    WTF_CSRF_ENABLED = False
    DEEPSEEK_API_KEY = "test-key"
