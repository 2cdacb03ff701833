import time
from typing import Optional

from slugify import slugify


def make_slug(text: str) -> str:
    return slugify(text, lowercase=True)


def timestamped_slug(text: str, now_ms: Optional[int] = None) -> str:
    """Slug with an epoch-millisecond suffix, unique without a lookup."""

    if now_ms is None:
        now_ms = int(time.time() * 1000)
    base = make_slug(text)
    return f"{base}-{now_ms}" if base else str(now_ms)
