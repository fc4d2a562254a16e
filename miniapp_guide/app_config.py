# miniapp_guide/app_config.py

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

logger = logging.getLogger("miniapp_guide")

# --- Cloud ---
PROJECT_ID = os.getenv("GOOGLE_CLOUD_PROJECT", "your-project-id")
REGION = os.getenv("GOOGLE_CLOUD_REGION", "us-central1")

# --- Database ---
DATABASE_URL        = os.getenv("DATABASE_URL", "")
DB_HOST             = os.getenv("DB_HOST", "localhost")
DB_PORT             = int(os.getenv("DB_PORT", "5432"))
DB_NAME             = os.getenv("DB_NAME", "")
DB_USER             = os.getenv("DB_USER", "")
DB_PASSWORD         = os.getenv("DB_PASSWORD", "")
DB_SECRET_ID        = os.getenv("DB_SECRET_ID", "")

IS_LOCAL_DB = (DB_HOST == "localhost")
LOCAL_DB_URL = "sqlite:///miniapp_guide.db"

# --- Archive intake ---
MAX_ZIP_SIZE_BYTES = int(os.getenv("MAX_ZIP_SIZE_BYTES", str(50 * 1024 * 1024)))
SOURCE_EXTENSIONS = tuple(
    ext.strip().lower()
    for ext in os.getenv("SOURCE_EXTENSIONS", ".kt,.html,.htm").split(",")
    if ext.strip()
)

# --- Oracle ---
LLM_MODEL = os.getenv("LLM_MODEL", "gpt-4o-mini")
LLM_TIMEOUT = float(os.getenv("LLM_TIMEOUT", "60"))
LLM_RETRIES = int(os.getenv("LLM_RETRIES", "1"))
ORACLE_ENABLED = os.getenv("ORACLE_ENABLED", "true").strip().lower() in ("1", "true", "yes", "on")

# --- Guide synthesis ---
APP_CATALOG_PATH = os.getenv(
    "APP_CATALOG_PATH",
    str(Path(__file__).resolve().parent.parent / "config" / "app_catalog.jsonc"),
)
KEYWORD_SAMPLE_SIZE = int(os.getenv("KEYWORD_SAMPLE_SIZE", "30"))
MAX_CANDIDATES = int(os.getenv("MAX_CANDIDATES", "10"))


def configure_logging() -> None:
    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
