"""Tests for pre-flight file validation."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from radicacion.constants import MAX_FILE_SIZE_BYTES
from radicacion.models import LocalFile, ValidationErrorKind
from radicacion.upload.exceptions import AllFilesInvalidError
from radicacion.upload.validator import validate_batch, validate_file


class TestValidateFile:
    """validate_file returns None or a ValidationFailure."""

    def test_valid_file_passes(self):
        assert validate_file(LocalFile.from_bytes("ok.pdf", b"%PDF-1.7")) is None

    def test_empty_file(self):
        failure = validate_file(LocalFile.from_bytes("vacio.pdf", b""))
        assert failure is not None
        assert failure.kind == ValidationErrorKind.EMPTY_FILE

    def test_too_large_message_has_name_and_mb(self):
        big = LocalFile(name="grande.pdf", size=MAX_FILE_SIZE_BYTES + 1, content=b"%PDF")
        failure = validate_file(big)
        assert failure is not None
        assert failure.kind == ValidationErrorKind.FILE_TOO_LARGE
        assert "grande.pdf" in failure.message
        assert "10.00 MB" in failure.message

    def test_exactly_at_limit_is_allowed(self):
        f = LocalFile(name="limite.pdf", size=MAX_FILE_SIZE_BYTES, content=b"%PDF")
        assert validate_file(f) is None

    def test_unreadable_file(self, tmp_path: Path):
        missing = LocalFile(name="gone.pdf", size=10, path=tmp_path / "gone.pdf")
        failure = validate_file(missing)
        assert failure is not None
        assert failure.kind == ValidationErrorKind.UNREADABLE_FILE

    def test_header_bytes_are_not_sniffed(self):
        """Leading metadata before a format marker is accepted."""
        f = LocalFile.from_bytes("scan.pdf", b"\x00\x00junk-before-%PDF")
        assert validate_file(f) is None

    def test_reads_only_four_byte_header(self):
        f = LocalFile.from_bytes("a.pdf", b"%PDF-1.7 content")
        with patch.object(LocalFile, "read_header", return_value=b"%PDF") as probe, \
                patch.object(LocalFile, "read_bytes") as full_read:
            assert validate_file(f) is None
        probe.assert_called_once_with(4)
        full_read.assert_not_called()

    def test_size_checks_do_no_io(self):
        empty = LocalFile(name="e.pdf", size=0)
        huge = LocalFile(name="h.pdf", size=MAX_FILE_SIZE_BYTES * 2)
        with patch.object(LocalFile, "read_header") as probe:
            assert validate_file(empty).kind == ValidationErrorKind.EMPTY_FILE
            assert validate_file(huge).kind == ValidationErrorKind.FILE_TOO_LARGE
        probe.assert_not_called()

    def test_from_path_reads_real_file(self, tmp_path: Path):
        p = tmp_path / "orden.pdf"
        p.write_bytes(b"%PDF-1.4 orden")
        f = LocalFile.from_path(p)
        assert f.name == "orden.pdf"
        assert f.size == len(b"%PDF-1.4 orden")
        assert validate_file(f) is None


class TestValidateBatch:
    """validate_batch excludes bad files and aborts only when all fail."""

    def test_partial_failure_keeps_good_files(self):
        files = {
            "autorizacion": [
                LocalFile.from_bytes("bueno.pdf", b"%PDF"),
                LocalFile.from_bytes("vacio.pdf", b""),
            ],
            "soporte_clinico": [LocalFile.from_bytes("hc.pdf", b"%PDF")],
        }
        valid, rejected = validate_batch(files)

        assert [f.name for f in valid["autorizacion"]] == ["bueno.pdf"]
        assert [f.name for f in valid["soporte_clinico"]] == ["hc.pdf"]
        assert len(rejected) == 1
        assert rejected[0].file_name == "vacio.pdf"
        assert rejected[0].category == "autorizacion"

    def test_category_with_only_bad_files_is_dropped(self):
        files = {
            "autorizacion": [LocalFile.from_bytes("vacio.pdf", b"")],
            "soporte_clinico": [LocalFile.from_bytes("hc.pdf", b"%PDF")],
        }
        valid, _ = validate_batch(files)
        assert "autorizacion" not in valid

    def test_all_invalid_aggregates_every_reason(self):
        files = {
            "autorizacion": [LocalFile.from_bytes("a.pdf", b"")],
            "orden_medica": [
                LocalFile(name="b.pdf", size=MAX_FILE_SIZE_BYTES + 1, content=b"%PDF")
            ],
        }
        with pytest.raises(AllFilesInvalidError) as excinfo:
            validate_batch(files)

        assert len(excinfo.value.failures) == 2
        assert "a.pdf" in str(excinfo.value)
        assert "b.pdf" in str(excinfo.value)

    def test_enum_categories_are_normalised(self):
        from radicacion.models import Category

        files = {Category.AUTORIZACION: [LocalFile.from_bytes("a.pdf", b"%PDF")]}
        valid, _ = validate_batch(files)
        assert list(valid) == ["autorizacion"]
