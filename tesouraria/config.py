# tesouraria/config.py
from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "sim", "yes", "on")


def env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


APP_NAME = os.getenv("APP_NAME") or "Tesouraria 3IPI Natal"
CHURCH_NAME = os.getenv("CHURCH_NAME") or "Igreja 3IPI de Natal"

# DATABASE_URL é o nome usado em hospedagens (Render, Railway...)
DB_URL = os.getenv("DB_URL") or os.getenv("DATABASE_URL") or "sqlite:///tesouraria.db"

APP_SECRET = os.getenv("APP_SECRET") or "troque-esta-chave"
INACTIVITY_MINUTES = env_int("INACTIVITY_MINUTES", 20)
SESSION_DAYS = env_int("SESSION_DAYS", 30)

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL") or "admin@3ipi.com"
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD") or "123456"
ADMIN_NAME = os.getenv("ADMIN_NAME") or "Administrador"

SEED_SAMPLE_DATA = env_bool("SEED_SAMPLE_DATA", False)
MAX_COMPROVANTE_MB = env_int("MAX_COMPROVANTE_MB", 5)

LOG_LEVEL = (os.getenv("LOG_LEVEL") or "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> logging.Logger:
    """Configura o logger 'tesouraria' uma única vez (o Streamlit reexecuta o script a cada interação)."""
    logger = logging.getLogger("tesouraria")
    logger.setLevel(level or LOG_LEVEL)
    if not any(getattr(h, "_tesouraria", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._tesouraria = True
        logger.addHandler(handler)
    return logger


def is_dev() -> bool:
    return DB_URL.startswith("sqlite")
