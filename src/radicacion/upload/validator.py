"""Pre-flight file validation.

Rejects files that cannot possibly upload before any network call is
made. Validation is lenient about content: it only confirms the first
bytes can be read, it never sniffs magic numbers, because legitimate
scans often carry leading metadata before the format marker.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from radicacion.constants import HEADER_PROBE_BYTES, MAX_FILE_SIZE_BYTES
from radicacion.models import (
    LocalFile,
    ValidationErrorKind,
    ValidationFailure,
)
from radicacion.upload.exceptions import AllFilesInvalidError

logger = logging.getLogger(__name__)


def validate_file(
    file: LocalFile,
    max_size: int = MAX_FILE_SIZE_BYTES,
    category: str | None = None,
) -> ValidationFailure | None:
    """Check that *file* can be uploaded.

    Args:
        file: The local file to check.
        max_size: Size ceiling in bytes (default 10 MiB).
        category: Optional category, attached to the failure for reporting.

    Returns:
        ``None`` when the file is acceptable, otherwise a
        :class:`ValidationFailure` describing why it is not.
    """
    if file.size == 0:
        return ValidationFailure(
            kind=ValidationErrorKind.EMPTY_FILE,
            file_name=file.name,
            message=f"El archivo {file.name} está vacío (0 bytes)",
            category=category,
        )

    if file.size > max_size:
        size_mb = file.size / (1024 * 1024)
        limit_mb = max_size / (1024 * 1024)
        return ValidationFailure(
            kind=ValidationErrorKind.FILE_TOO_LARGE,
            file_name=file.name,
            message=(
                f"El archivo {file.name} pesa {size_mb:.2f} MB "
                f"y supera el límite de {limit_mb:.0f} MB"
            ),
            category=category,
        )

    try:
        file.read_header(HEADER_PROBE_BYTES)
    except OSError as exc:
        return ValidationFailure(
            kind=ValidationErrorKind.UNREADABLE_FILE,
            file_name=file.name,
            message=f"No se pudo leer el archivo {file.name}: {exc}",
            category=category,
        )

    return None


def validate_batch(
    files_by_category: Mapping[str, Sequence[LocalFile]],
    max_size: int = MAX_FILE_SIZE_BYTES,
) -> tuple[dict[str, list[LocalFile]], list[ValidationFailure]]:
    """Validate every file in the batch before any network call.

    Files that fail are excluded; the rest proceed. Categories left with
    no valid files are dropped from the result.

    Returns:
        ``(valid_by_category, failures)``.

    Raises:
        AllFilesInvalidError: If no file in the whole batch is valid.
    """
    valid: dict[str, list[LocalFile]] = {}
    failures: list[ValidationFailure] = []

    for category, files in files_by_category.items():
        category = _category_value(category)
        for file in files:
            failure = validate_file(file, max_size=max_size, category=category)
            if failure is None:
                valid.setdefault(category, []).append(file)
            else:
                logger.warning("Excluding %s from manifest: %s", file.name, failure)
                failures.append(failure)

    if not valid:
        raise AllFilesInvalidError(failures)

    return valid, failures


def _category_value(category: object) -> str:
    return getattr(category, "value", category)  # type: ignore[return-value]
