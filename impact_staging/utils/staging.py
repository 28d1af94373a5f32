"""Staging path and filename utilities following project conventions."""

import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from impact_staging.transform.routing import Bucket


def new_batch_id() -> str:
    """Generate a short batch identifier."""
    return uuid.uuid4().hex[:12]


def get_staging_path(
    output_directory: Union[str, Path],
    batch_id: Optional[str] = None,
    dt: Optional[datetime] = None,
) -> Path:
    """Generate staging directory following partition convention.

    Pattern: <output_directory>/dt=YYYY-MM-DD/batch_id=<id>/

    Args:
        output_directory: Base staging directory
        batch_id: Unique batch identifier (auto-generated if not provided)
        dt: Date for partition (defaults to UTC now)

    Returns:
        Staging directory path

    Example:
        >>> get_staging_path("/data/staging", batch_id="abc123")
        PosixPath('/data/staging/dt=2025-12-17/batch_id=abc123')
    """
    if dt is None:
        dt = datetime.now(timezone.utc)
    if batch_id is None:
        batch_id = new_batch_id()

    date_str = dt.strftime("%Y-%m-%d")

    return Path(output_directory) / f"dt={date_str}" / f"batch_id={batch_id}"


def staging_filename(
    record_type: str,
    bucket: Optional[Bucket] = None,
) -> str:
    """Generate filename for a staging file.

    Args:
        record_type: Record type name (e.g. 'fusion', 'seg')
        bucket: Optional routing bucket

    Returns:
        Filename like 'data_fusion.txt' or 'data_seg.new.txt'
    """
    if bucket is None:
        return f"data_{record_type}.txt"
    return f"data_{record_type}.{bucket.value}.txt"
