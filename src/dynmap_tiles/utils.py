import re
import string
from pathlib import Path

from .config import TIMESTAMP_TOKEN

# characters rejected by common filesystems plus every ASCII control character
_DISALLOWED_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f\x7f§]')
_TRIM_CHARS = string.whitespace + "."


def sanitize_filename(name: str) -> str:
    """
    Make ``name`` safe to use as a single path segment:
    disallowed characters become spaces, then surrounding whitespace and
    dots are trimmed. Idempotent.
    """
    return _DISALLOWED_CHARS.sub(" ", name).strip(_TRIM_CHARS)


def apply_timestamp(template: str, timestamp_ms: int) -> str:
    return template.replace(TIMESTAMP_TOKEN, str(timestamp_ms))


def make_tile_path(cache_root: Path, title: str, relative_path: str) -> Path:
    return Path(cache_root) / sanitize_filename(title) / sanitize_filename(relative_path)
