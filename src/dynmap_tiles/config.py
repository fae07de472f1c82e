import os
from pathlib import Path

from .version import __version__

APP_VERSION = os.environ.get("APP_VERSION", __version__)
USER_AGENT = f"dynmap-tiles/{APP_VERSION}"
BOOTSTRAP_PATH = "standalone/config.js"
TIMESTAMP_TOKEN = "{timestamp}"
REQUEST_TIMEOUT = 30.0
CONNECT_TIMEOUT = 20.0
LOG_LEVEL = os.environ.get("DYNMAP_LOG_LEVEL", "INFO").upper()


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


DEFAULT_CONCURRENCY = _env_int("DYNMAP_CONCURRENCY", 4)
DEFAULT_CACHE_ROOT = Path(os.environ.get("DYNMAP_TILES_DIR", "tiles")).expanduser()
