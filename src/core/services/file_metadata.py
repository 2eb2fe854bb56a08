"""
File metadata derivation.

Fills extension, source domain and category when the reporting client
omitted them. Values supplied by the client always win.
"""

from __future__ import annotations

from urllib.parse import urlparse

from src.domain.entities import FILE_CATEGORIES

# Checked in this order; the first match wins.
CATEGORY_EXTENSIONS: tuple[tuple[str, frozenset[str]], ...] = (
    (
        "document",
        frozenset({"pdf", "doc", "docx", "txt", "rtf", "odt", "xls", "xlsx", "ppt", "pptx", "csv"}),
    ),
    ("image", frozenset({"jpg", "jpeg", "png", "gif", "bmp", "svg", "webp", "ico", "tiff"})),
    (
        "video",
        frozenset({"mp4", "avi", "mkv", "mov", "wmv", "flv", "webm", "m4v", "mpeg", "mpg"}),
    ),
    ("audio", frozenset({"mp3", "wav", "flac", "aac", "ogg", "wma", "m4a", "opus"})),
    ("archive", frozenset({"zip", "rar", "7z", "tar", "gz", "bz2", "xz", "iso"})),
    ("executable", frozenset({"exe", "msi", "dmg", "pkg", "deb", "rpm", "apk", "app"})),
)

CATEGORY_MIME_HINTS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("document", ("document", "text", "pdf")),
    ("image", ("image",)),
    ("video", ("video",)),
    ("audio", ("audio",)),
    ("archive", ("zip", "compressed")),
    ("executable", ("executable", "application/x-")),
)

_MIME_HINTS = dict(CATEGORY_MIME_HINTS)


def get_file_extension(filename: str) -> str | None:
    """Lowercased suffix after the last dot, or None."""
    parts = filename.rsplit(".", 1)
    if len(parts) == 2 and parts[1]:
        return parts[1].lower()
    return None


def extract_domain(url: str) -> str | None:
    """Lowercased host of url, or None when it has none."""
    try:
        host = urlparse(url).hostname
    except ValueError:
        return None
    return host.lower() if host else None


def get_file_category(extension: str | None, mime_type: str | None = None) -> str:
    """Classify by extension, falling back to mime type hints."""
    ext = (extension or "").lower()
    mime = (mime_type or "").lower()
    for category, extensions in CATEGORY_EXTENSIONS:
        hints = _MIME_HINTS[category]
        if ext in extensions or any(hint in mime for hint in hints):
            return category
    return "other"


def normalize_category(category: str | None) -> str | None:
    """Lowercase a supplied category; None when it is not in the vocabulary."""
    if category is None:
        return None
    value = category.strip().lower()
    return value if value in FILE_CATEGORIES else None
