"""Export helpers for serialized workbooks.

A Blob pairs workbook bytes with their MIME type; ``save_as`` writes a blob
to disk and is the file-system counterpart of a browser download.
"""

from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from zipfile import ZIP_DEFLATED, ZipFile

from openpyxl import Workbook
from openpyxl.writer.excel import ExcelWriter

from han_excel.models import XLSX_MIME_TYPE
from han_excel.utils.exceptions import BuildError, ErrorCode
from han_excel.utils.logging import get_logger

logger = get_logger(__name__)

XLSX_SUFFIX = ".xlsx"


@dataclass(frozen=True)
class Blob:
    """Serialized workbook bytes with their MIME type."""

    data: bytes
    """Raw file content."""

    mime_type: str = XLSX_MIME_TYPE
    """MIME type reported to consumers of the blob."""

    @property
    def size(self) -> int:
        return len(self.data)


def serialize_workbook(workbook: Workbook, compression_level: int = 6) -> bytes:
    """Write an openpyxl workbook to bytes with the given deflate level.

    Raises:
        BuildError: If openpyxl fails to serialize the workbook.
    """
    buffer = BytesIO()
    try:
        with ZipFile(
            buffer, "w", compression=ZIP_DEFLATED, compresslevel=compression_level
        ) as archive:
            ExcelWriter(workbook, archive).save()
    except Exception as e:
        raise BuildError(
            f"Failed to serialize workbook: {e}",
            error_code=ErrorCode.SERIALIZATION_FAILED,
        ) from e
    return buffer.getvalue()


def resolve_path(file_name: str, directory: Path | str = ".") -> Path:
    """Return the target path, adding the .xlsx suffix when missing."""
    path = Path(directory) / file_name
    if not path.suffix:
        path = path.with_suffix(XLSX_SUFFIX)
    return path


def save_as(blob: Blob, file_name: str, directory: Path | str = ".") -> Path:
    """Write a blob to ``directory / file_name``.

    Raises:
        BuildError: If the file cannot be written.
    """
    path = resolve_path(file_name, directory)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(blob.data)
    except OSError as e:
        raise BuildError(
            f"Failed to save workbook to {path}: {e}",
            error_code=ErrorCode.DOWNLOAD_FAILED,
            details={"path": str(path)},
        ) from e
    logger.info("Workbook saved", path=str(path), size=blob.size)
    return path
