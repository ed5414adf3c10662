"""Load env configuration and resolve data paths."""
from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

ROOT_DIR: Path = Path(__file__).resolve().parent.parent
CONFIG_DIR: Path = ROOT_DIR / "config"
DATA_DIR: Path = ROOT_DIR / "data"
PERSONA_PATH: Path = CONFIG_DIR / "persona.yaml"
APPLICATIONS_PATH: Path = DATA_DIR / "applications.json"
ENV_PATH: Path = ROOT_DIR / ".env"

GEMINI_OPENAI_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"
DEFAULT_MODEL = "gemini-2.5-pro"
DEFAULT_CHAT_MODEL = "gemini-2.5-flash"


def get_env(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def api_key() -> str:
    return get_env("GEMINI_API_KEY")


def base_url() -> str:
    return get_env("GEMINI_BASE_URL") or GEMINI_OPENAI_URL


def generation_model() -> str:
    """Model used for the document workflow (needs vision + JSON schema)."""
    return get_env("GEMINI_MODEL") or DEFAULT_MODEL


def chat_model() -> str:
    return get_env("GEMINI_CHAT_MODEL") or DEFAULT_CHAT_MODEL


def ensure_dirs() -> None:
    for d in (CONFIG_DIR, DATA_DIR):
        d.mkdir(parents=True, exist_ok=True)


def load_env_file(path: Path | None = None) -> dict[str, str]:
    """Parse KEY=VALUE lines from the .env file (comments and blanks skipped)."""
    path = path or ENV_PATH
    values: dict[str, str] = {}
    if path.exists():
        for line in path.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if line and not line.startswith("#") and "=" in line:
                k, _, v = line.partition("=")
                values[k.strip()] = v.strip()
    return values


def save_env_file(values: dict[str, str], path: Path | None = None) -> Path:
    """Rewrite the .env file, keeping existing keys that are not overridden."""
    path = path or ENV_PATH
    merged = load_env_file(path)
    merged.update(values)
    path.write_text(
        "\n".join(f"{k}={v}" for k, v in merged.items()) + "\n",
        encoding="utf-8",
    )
    for k, v in values.items():
        os.environ[k] = v
    return path
