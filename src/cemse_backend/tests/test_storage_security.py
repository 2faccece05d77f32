"""
Tests for upload validation helpers.
"""

import io

import pytest

from cemse_backend.api.exceptions import BadRequestException
from cemse_backend.storage_config import EVIDENCE_MIME_TYPES, PROFILE_PICTURE_MIME_TYPES, format_bytes
from cemse_backend.storage_security import (
    check_file_content_security,
    file_extension,
    perform_full_file_validation,
    sanitize_filename,
    validate_content_type,
    validate_file_size,
    validate_upload,
)


class TestSanitizeFilename:

    @pytest.mark.parametrize("raw,expected", [
        ("photo.jpg", "photo.jpg"),
        ("../../etc/passwd", "passwd"),
        ("C:\\Users\\me\\evil.exe", "evil.exe"),
        (".hidden", "_hidden"),
        ("my holiday photo.png", "my_holiday_photo.png"),
        ("", "unnamed_file"),
        (None, "unnamed_file"),
        ("///", "unnamed_file"),
    ])
    def test_sanitize(self, raw, expected):
        assert sanitize_filename(raw) == expected

    def test_long_names_are_truncated(self):
        assert sanitize_filename("a" * 300 + ".png") == "a" * 100 + ".png"

    def test_extension(self):
        assert file_extension("Photo.JPEG") == "jpeg"
        assert file_extension("noext") == "bin"
        assert file_extension(None, default="img") == "img"


class TestValidators:

    def test_content_type_parameters_are_ignored(self):
        assert validate_content_type("image/png; charset=binary", PROFILE_PICTURE_MIME_TYPES) == (True, None)

    def test_content_type_missing(self):
        valid, error = validate_content_type(None, PROFILE_PICTURE_MIME_TYPES)
        assert not valid
        assert "unknown" in error

    def test_evidence_accepts_documents_and_media(self):
        for content_type in ("application/pdf", "video/mp4", "audio/mpeg"):
            assert validate_content_type(content_type, EVIDENCE_MIME_TYPES)[0]
            assert not validate_content_type(content_type, PROFILE_PICTURE_MIME_TYPES)[0]

    def test_file_size(self):
        assert validate_file_size(10, 10) == (True, None)
        assert not validate_file_size(11, 10)[0]
        assert validate_file_size(0, 10) == (False, "Empty files are not allowed")

    @pytest.mark.parametrize("header", [b"MZ\x90\x00", b"\x7fELF\x02", b"#!/bin/sh\n"])
    def test_executables_rejected(self, header):
        data = io.BytesIO(header + b"\x00" * 16)
        valid, _ = check_file_content_security(data)
        assert not valid
        assert data.tell() == 0

    def test_validate_upload_reports_first_failure(self):
        data = io.BytesIO(b"MZ")
        valid, error = validate_upload("text/plain", 0, data, PROFILE_PICTURE_MIME_TYPES, 10)
        assert not valid
        assert "not allowed" in error

    def test_full_validation_raises(self):
        with pytest.raises(BadRequestException):
            perform_full_file_validation("x.png", "image/png", 0, io.BytesIO(b""))

    def test_format_bytes(self):
        assert format_bytes(512) == "512.00 B"
        assert format_bytes(5 * 1024 * 1024) == "5.00 MB"
