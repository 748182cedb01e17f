"""Data source validation performed before any remote job is created."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from ..exceptions import DataSourceSizeError, FileSystemError, PathError

logger = logging.getLogger(__name__)

MAX_DATA_SOURCE_BYTES = 1_048_576
MAX_DATA_SOURCE_DESCRIPTOR = "100MB"


@dataclass(frozen=True, slots=True)
class DataSourceInfo:
    """Metadata of a validated data source."""

    path: Path
    size_bytes: int
    limit_bytes: int = MAX_DATA_SOURCE_BYTES


def validate_data_source(
    data_source_path: str | os.PathLike[str],
    *,
    max_bytes: int = MAX_DATA_SOURCE_BYTES,
) -> DataSourceInfo:
    """Check that ``data_source_path`` is a readable file within the size ceiling."""

    if not isinstance(data_source_path, (str, os.PathLike)) or not os.fspath(data_source_path):
        raise PathError("Data source path must be a non-empty string")

    path = Path(data_source_path)
    if not path.is_file() or not os.access(path, os.R_OK):
        logger.warning("bulk.data_source.unreadable", extra={"path": str(path)})
        raise PathError(f"'{path}' does not exist or is not a readable file", path=str(path))

    try:
        size = path.stat().st_size
    except OSError as exc:
        raise FileSystemError(f"Could not get stats for '{path}': {exc}", path=str(path)) from exc

    if size > max_bytes:
        logger.warning(
            "bulk.data_source.too_large",
            extra={"path": str(path), "size_bytes": size, "limit_bytes": max_bytes},
        )
        raise DataSourceSizeError(
            f"Maximum file size exceeded. Current file size of '{path}' is {size} bytes. "
            f"Maximum file size is {MAX_DATA_SOURCE_DESCRIPTOR} ({max_bytes} bytes).",
            path=str(path),
            size_bytes=size,
            limit_bytes=max_bytes,
        )

    logger.info("bulk.data_source.validated", extra={"path": str(path), "size_bytes": size})
    return DataSourceInfo(path=path, size_bytes=size, limit_bytes=max_bytes)


def read_data_source(info: DataSourceInfo) -> bytes:
    """Read a validated data source fully, re-checking the ceiling it was validated against."""

    try:
        payload = info.path.read_bytes()
    except OSError as exc:
        raise FileSystemError(f"Could not read '{info.path}': {exc}", path=str(info.path)) from exc
    if len(payload) > info.limit_bytes:
        raise DataSourceSizeError(
            f"'{info.path}' grew to {len(payload)} bytes after validation",
            path=str(info.path),
            size_bytes=len(payload),
            limit_bytes=info.limit_bytes,
        )
    return payload
