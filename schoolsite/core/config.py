"""
School Site Configuration
Centralized configuration loaded from environment variables and .env
"""
import os
from dotenv import load_dotenv
from pathlib import Path

# Load from .env file with UTF-8 encoding (Windows compatibility)
env_path = Path(__file__).parent.parent.parent / '.env'
load_dotenv(dotenv_path=env_path, encoding='utf-8')

# =============================================================================
# Paths
# =============================================================================
DATA_DIR = Path(os.getenv("SCHOOLSITE_DATA_DIR", str(Path(__file__).parent.parent.parent / "data")))

# =============================================================================
# Remote Document Adapter Configuration
# =============================================================================
# Empty means no remote is configured: all writes are local-only.
API_BASE_URL = os.getenv("SCHOOLSITE_API_URL", "").strip()
API_TIMEOUT = int(os.getenv("SCHOOLSITE_API_TIMEOUT", "30"))
API_MAX_RETRIES = int(os.getenv("SCHOOLSITE_API_MAX_RETRIES", "3"))

# Retry configuration
BACKOFF_BASE_DELAY = int(os.getenv("BACKOFF_BASE_DELAY", "1"))  # 1 second
BACKOFF_MULTIPLIER = int(os.getenv("BACKOFF_MULTIPLIER", "2"))
BACKOFF_MAX_DELAY = int(os.getenv("BACKOFF_MAX_DELAY", "60"))  # 60 seconds

# =============================================================================
# Durable Local Cache Configuration
# =============================================================================
CACHE_URL = os.getenv("SCHOOLSITE_CACHE_URL", f"sqlite:///{DATA_DIR / 'local_cache.db'}")
CACHE_KEY = os.getenv("SCHOOLSITE_CACHE_KEY", "adminData")
PERSIST_DEBOUNCE_SECONDS = float(os.getenv("SCHOOLSITE_PERSIST_DEBOUNCE", "1.0"))

# =============================================================================
# Storage Adapter Server Configuration
# =============================================================================
STORE_URL = os.getenv("SCHOOLSITE_STORE_URL", f"sqlite:///{DATA_DIR / 'site_store.db'}")
DATA_KEY = os.getenv("SCHOOLSITE_DATA_KEY", "school_site_data")
UPLOAD_DIR = Path(os.getenv("SCHOOLSITE_UPLOAD_DIR", str(DATA_DIR / "uploads")))
MAX_UPLOAD_BYTES = int(os.getenv("SCHOOLSITE_MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))
MAX_DOCUMENT_BYTES = int(os.getenv("SCHOOLSITE_MAX_DOCUMENT_BYTES", str(20 * 1024 * 1024)))
SERVER_HOST = os.getenv("SCHOOLSITE_SERVER_HOST", "127.0.0.1")
SERVER_PORT = int(os.getenv("SCHOOLSITE_SERVER_PORT", "3001"))

# =============================================================================
# Logging Configuration
# =============================================================================
LOG_LEVEL = os.getenv("SCHOOLSITE_LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("SCHOOLSITE_LOG_FORMAT", "text")  # 'text' or 'json'

# Create directories if they don't exist
DATA_DIR.mkdir(parents=True, exist_ok=True)


def is_remote_configured() -> bool:
    """Whether a Remote Document adapter URL is set."""
    return bool(API_BASE_URL)


def get_api_url(endpoint: str = "") -> str:
    """Get the full remote adapter URL for an endpoint."""
    base = API_BASE_URL.rstrip("/")
    endpoint = endpoint.lstrip("/")
    return f"{base}/{endpoint}"


def calculate_backoff_delay(attempt: int) -> int:
    """
    Calculate exponential backoff delay.

    Args:
        attempt: The retry attempt number (0-indexed)

    Returns:
        Delay in seconds
    """
    delay = min(BACKOFF_BASE_DELAY * (BACKOFF_MULTIPLIER ** attempt), BACKOFF_MAX_DELAY)
    return delay


# Configuration class for type safety
class Config:
    """Configuration class for type-safe access to settings."""

    # Remote adapter
    api_base_url: str = API_BASE_URL
    api_timeout: int = API_TIMEOUT
    api_max_retries: int = API_MAX_RETRIES

    # Retry
    backoff_base_delay: int = BACKOFF_BASE_DELAY
    backoff_multiplier: int = BACKOFF_MULTIPLIER
    backoff_max_delay: int = BACKOFF_MAX_DELAY

    # Local cache
    cache_url: str = CACHE_URL
    cache_key: str = CACHE_KEY
    persist_debounce_seconds: float = PERSIST_DEBOUNCE_SECONDS

    # Server
    store_url: str = STORE_URL
    data_key: str = DATA_KEY
    upload_dir: Path = UPLOAD_DIR
    max_upload_bytes: int = MAX_UPLOAD_BYTES
    max_document_bytes: int = MAX_DOCUMENT_BYTES
    server_host: str = SERVER_HOST
    server_port: int = SERVER_PORT

    # Logging
    log_level: str = LOG_LEVEL
    log_format: str = LOG_FORMAT


# Export configuration instance
config = Config()
