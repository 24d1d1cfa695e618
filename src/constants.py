import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(os.getenv("ENV_FILE"), override=True)

# General
PRODUCT = os.getenv("PRODUCT", "lesson-engine")
VERSION = os.environ.get("VERSION", "0")
ENV = os.getenv("ENV", "dev")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")

BASE_PATH = os.path.dirname(os.path.realpath(__file__))

# Durable storage
LESSON_ENGINE_STORAGE_DIR = Path(
    os.getenv("LESSON_ENGINE_STORAGE_DIR", Path.home() / f".{PRODUCT}")
)
LESSON_ENGINE_DB_PATH = Path(
    os.getenv("LESSON_ENGINE_DB_PATH", LESSON_ENGINE_STORAGE_DIR / "lessons.db")
)
STORAGE_CAPACITY_BYTES = int(os.getenv("STORAGE_CAPACITY_BYTES", 50 * 1024 * 1024))
FALLBACK_STORAGE_CAPACITY_BYTES = int(
    os.getenv("FALLBACK_STORAGE_CAPACITY_BYTES", 5 * 1024 * 1024)
)
LOW_WATER_MARK_BYTES = int(os.getenv("LOW_WATER_MARK_BYTES", 10 * 1024 * 1024))
STORAGE_SCHEMA_VERSION = "1.0"

# Caching
CACHE_TTL_SECONDS = int(os.getenv("CACHE_TTL_SECONDS", 24 * 60 * 60))
CACHE_MAX_ENTRIES = int(os.getenv("CACHE_MAX_ENTRIES", 100))

# External collaborators
ROMANIZATION_TIMEOUT_SECONDS = float(os.getenv("ROMANIZATION_TIMEOUT_SECONDS", 5.0))
SEGMENTATION_TIMEOUT_SECONDS = float(os.getenv("SEGMENTATION_TIMEOUT_SECONDS", 3.0))
SPACY_ZH_MODEL = os.getenv("SPACY_ZH_MODEL", "zh_core_web_sm")
