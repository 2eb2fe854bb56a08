"""File metadata derivation tests."""

from __future__ import annotations

import pytest

from src.core.services.file_metadata import (
    extract_domain,
    get_file_category,
    get_file_extension,
    normalize_category,
)


class TestExtension:
    @pytest.mark.parametrize(
        ("filename", "expected"),
        [
            ("report.PDF", "pdf"),
            ("archive.tar.gz", "gz"),
            ("README", None),
            ("trailing.", None),
        ],
    )
    def test_get_file_extension(self, filename: str, expected: str | None) -> None:
        assert get_file_extension(filename) == expected


class TestDomain:
    def test_lowercases_host(self) -> None:
        assert extract_domain("https://Example.COM/files/a.pdf") == "example.com"

    def test_no_host(self) -> None:
        assert extract_domain("not a url") is None


class TestCategory:
    @pytest.mark.parametrize(
        ("extension", "mime", "expected"),
        [
            ("pdf", None, "document"),
            ("PNG", None, "image"),
            ("mkv", None, "video"),
            ("flac", None, "audio"),
            ("7z", None, "archive"),
            ("msi", None, "executable"),
            (None, "video/mp4", "video"),
            (None, "application/zip", "archive"),
            ("xyz", None, "other"),
            (None, None, "other"),
        ],
    )
    def test_get_file_category(
        self, extension: str | None, mime: str | None, expected: str
    ) -> None:
        assert get_file_category(extension, mime) == expected

    def test_normalize_known_category(self) -> None:
        assert normalize_category(" Image ") == "image"

    def test_normalize_unknown_category(self) -> None:
        assert normalize_category("spreadsheet") is None
        assert normalize_category(None) is None
