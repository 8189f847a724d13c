"""String helpers shared by the poster matching strategies."""

from typing import Optional


def normalize(value: Optional[str]) -> str:
    """Trim surrounding whitespace; ``None`` becomes an empty string."""
    if value is None:
        return ""
    return value.strip()


def file_name(path: str) -> str:
    """Return the part of ``path`` after the last ``/``."""
    return path.rsplit("/", 1)[-1]


def strip_non_alnum_whitespace(value: str) -> str:
    """Keep only letters, digits and whitespace."""
    return "".join(ch for ch in value if ch.isalnum() or ch.isspace())
