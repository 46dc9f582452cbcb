"""Application configuration and constants."""
import os
from pathlib import Path

# Directory paths
BASE_DIR = Path(__file__).resolve().parent.parent
DATABASE_PATH = Path(os.environ.get("CLUBVAULT_DATABASE_PATH", str(BASE_DIR / "vault.db")))
UPLOADS_DIR = Path(os.environ.get("STORAGE_BASE_PATH", str(BASE_DIR / "storage")))

# Public URL prefix for locally stored objects
STORAGE_PUBLIC_URL = os.environ.get("STORAGE_PUBLIC_URL", "/storage").rstrip("/")

# Logging
LOG_LEVEL = os.environ.get("CLUBVAULT_LOG_LEVEL", "INFO").upper()

# Storage quota
GIB = 1024 * 1024 * 1024
BASE_STORAGE_LIMIT = 5 * GIB
DEFAULT_PHOTO_SIZE = 500 * 1024  # estimate for photos uploaded without a size
STORAGE_WARNING_THRESHOLD = 0.8
LARGE_FILES_LIMIT = 50

# Files with these extensions count as photos in the storage breakdown
IMAGE_EXTENSIONS = {
    ".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp",
    ".svg", ".heic", ".heif", ".tiff", ".tif",
}

# Export
EXPORT_CONCURRENCY = int(os.environ.get("EXPORT_CONCURRENCY", "4"))
EXPORT_INDIVIDUAL_DELAY = float(os.environ.get("EXPORT_INDIVIDUAL_DELAY", "0.3"))

# Request headers identifying the caller and their vault session
USER_ID_HEADER = "X-User-Id"
SESSION_HEADER = "X-Vault-Session"

# In-memory vault sessions: dropped after this many idle seconds, oldest first past the cap
VAULT_SESSION_IDLE_TIMEOUT = float(os.environ.get("VAULT_SESSION_IDLE_TIMEOUT", "43200"))
VAULT_SESSION_LIMIT = int(os.environ.get("VAULT_SESSION_LIMIT", "10000"))
