"""Staging entrypoint: input rows → flattened staging files.

Usage:
    python -m impact_staging.stage_records --input fusions.jsonl --record-type fusion
    python -m impact_staging.stage_records --input seg.txt --record-type seg --new-ids-file new_samples.txt
"""

import argparse
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Union

from dotenv import load_dotenv

from impact_staging.records import RECORD_TYPES, RecordType, get_record_type
from impact_staging.transform import Bucket, FlattenError, LineRouter
from impact_staging.utils import (
    PipelineLogger,
    RoutedStagingWriter,
    StagingFileWriter,
    get_staging_path,
    new_batch_id,
    read_id_list,
    read_jsonl,
    read_tsv,
    setup_logging,
    staging_filename,
    timed_operation,
)

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_DIR = "./staging"


def _flatten_rows(
    rows: Iterable[Mapping[str, Any]],
    record_type: RecordType,
    new_ids: Optional[set[str]],
    pipeline_logger: PipelineLogger,
    abort_on_error: bool,
    stats: dict,
):
    """Build, flatten and route rows, skipping the ones that fail."""
    router = LineRouter(record_type.flattener(), new_ids or (), record_type.patient_id_of)

    for i, row in enumerate(rows):
        stats["records_read"] += 1
        try:
            routed = router.route(record_type.from_row(row))
        except FlattenError as e:
            stats["records_rejected"] += 1
            pipeline_logger.log_rejected(i, e)
            if abort_on_error:
                raise
            continue
        yield routed


def stage_records(
    rows: Iterable[Mapping[str, Any]],
    record_type: Union[str, RecordType],
    output_directory: Union[str, Path],
    new_ids: Optional[set[str]] = None,
    batch_id: Optional[str] = None,
    abort_on_error: bool = False,
) -> dict:
    """Flatten rows of one record type into staging files.

    Routed record types are split into new/old files when new_ids is given;
    every other run writes a single staging file.

    Args:
        rows: Parsed input rows keyed by schema column names
        record_type: Record type or its registered name
        output_directory: Directory the staging files are written to
        new_ids: Optional record or patient identifiers routed to the "new" file
        batch_id: Optional batch ID (auto-generated if not provided)
        abort_on_error: Re-raise the first row failure instead of skipping it

    Returns:
        Staging result metadata

    Raises:
        FlattenError: If abort_on_error is set and a row fails
    """
    if isinstance(record_type, str):
        record_type = get_record_type(record_type)
    if batch_id is None:
        batch_id = new_batch_id()

    output_directory = Path(output_directory)
    pipeline_logger = PipelineLogger(record_type.name, batch_id)
    pipeline_logger.start("stage")

    stats = {"records_read": 0, "records_rejected": 0}
    routed_lines = _flatten_rows(
        rows, record_type, new_ids, pipeline_logger, abort_on_error, stats
    )

    try:
        with timed_operation("stage", logger) as timer:
            if record_type.routed and new_ids is not None:
                paths = {
                    bucket: output_directory / staging_filename(record_type.name, bucket)
                    for bucket in Bucket
                }
                with RoutedStagingWriter(paths[Bucket.NEW], paths[Bucket.OLD], record_type.schema) as writer:
                    writer.write(routed_lines)
                counts = writer.counts
                file_counts = {bucket.value: (paths[bucket], counts[bucket]) for bucket in Bucket}
            else:
                path = output_directory / staging_filename(record_type.name)
                counts = {Bucket.NEW: 0, Bucket.OLD: 0}
                with StagingFileWriter(path, record_type.schema) as writer:
                    for routed in routed_lines:
                        counts[routed.bucket] += 1
                        writer.write([routed.line])
                file_counts = {"data": (path, writer.line_count)}
    except Exception as e:
        pipeline_logger.error("stage", e, row_count=stats["records_read"])
        raise

    staged = counts[Bucket.NEW] + counts[Bucket.OLD]
    pipeline_logger.log_flatten(
        input_count=stats["records_read"],
        output_count=staged,
        rejected_count=stats["records_rejected"],
        duration_ms=timer.duration_ms,
    )
    for path, line_count in file_counts.values():
        pipeline_logger.log_staging_write(str(path), row_count=line_count)

    result = {
        "record_type": record_type.name,
        "batch_id": batch_id,
        "status": "success",
        "records_read": stats["records_read"],
        "records_staged": staged,
        "records_rejected": stats["records_rejected"],
        "records_new": counts[Bucket.NEW],
        "records_old": counts[Bucket.OLD],
        "files": {key: str(path) for key, (path, _) in file_counts.items()},
    }
    pipeline_logger.success("stage", row_count=staged)

    return result


def read_input(input_path: Union[str, Path]) -> list[dict]:
    """Read input rows: JSONL for .jsonl/.json files, tab-delimited otherwise."""
    input_path = Path(input_path)
    if input_path.suffix in (".jsonl", ".json"):
        return read_jsonl(input_path)
    return read_tsv(input_path)


def run_staging(
    input_path: Union[str, Path],
    record_type: str,
    output_directory: Optional[Union[str, Path]] = None,
    new_ids_file: Optional[Union[str, Path]] = None,
    batch_id: Optional[str] = None,
    abort_on_error: bool = False,
) -> dict:
    """Run a staging step for one input file.

    Args:
        input_path: Input file of rows
        record_type: Registered record type name
        output_directory: Base staging directory (or from env: STAGING_OUTPUT_DIR)
        new_ids_file: Optional file of identifiers, one per line
        batch_id: Optional batch ID (auto-generated if not provided)
        abort_on_error: Stop at the first row that fails to flatten

    Returns:
        Staging result metadata; status is "error" on failure
    """
    if batch_id is None:
        batch_id = new_batch_id()

    base_directory = output_directory or os.getenv("STAGING_OUTPUT_DIR", DEFAULT_OUTPUT_DIR)
    start_time = datetime.now(timezone.utc)

    logger.info(
        "Starting staging run",
        extra={
            "batch_id": batch_id,
            "record_type": record_type,
            "input_path": str(input_path),
        }
    )

    try:
        rows = read_input(input_path)
        new_ids = read_id_list(new_ids_file) if new_ids_file else None
        result = stage_records(
            rows,
            record_type,
            get_staging_path(base_directory, batch_id=batch_id, dt=start_time),
            new_ids=new_ids,
            batch_id=batch_id,
            abort_on_error=abort_on_error,
        )
    except Exception as e:
        logger.error(f"Failed to stage {record_type} records: {e}", exc_info=True)
        return {
            "record_type": record_type,
            "batch_id": batch_id,
            "status": "error",
            "error": str(e),
        }

    duration_seconds = (datetime.now(timezone.utc) - start_time).total_seconds()
    result["duration_seconds"] = duration_seconds

    logger.info(
        f"Staging run complete: {result['records_staged']} records staged in {duration_seconds:.2f}s",
        extra=result
    )

    return result


def main(argv: Optional[list[str]] = None):
    """CLI entrypoint."""
    load_dotenv()

    parser = argparse.ArgumentParser(
        description="Flatten input records into tab-delimited staging files"
    )
    parser.add_argument(
        "--input",
        required=True,
        help="Input file (.jsonl/.json, or tab-delimited with a header line)",
    )
    parser.add_argument(
        "--record-type",
        choices=sorted(RECORD_TYPES),
        required=True,
        help="Record type of the input rows",
    )
    parser.add_argument(
        "--output-directory",
        default=None,
        help=f"Base staging directory (default: $STAGING_OUTPUT_DIR or {DEFAULT_OUTPUT_DIR})",
    )
    parser.add_argument(
        "--new-ids-file",
        default=None,
        help="File of identifiers (one per line) routed to the 'new' staging file",
    )
    parser.add_argument(
        "--batch-id",
        type=str,
        default=None,
        help="Batch ID (auto-generated if not provided)",
    )
    parser.add_argument(
        "--abort-on-error",
        action="store_true",
        help="Stop at the first record that fails to flatten",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=os.getenv("STAGING_LOG_LEVEL", "INFO"),
        help="Log level (default: $STAGING_LOG_LEVEL or INFO)",
    )

    args = parser.parse_args(argv)

    setup_logging(level=args.log_level, json_format=True)

    result = run_staging(
        input_path=args.input,
        record_type=args.record_type,
        output_directory=args.output_directory,
        new_ids_file=args.new_ids_file,
        batch_id=args.batch_id,
        abort_on_error=args.abort_on_error,
    )

    # Exit with error code on failure
    if result["status"] != "success":
        sys.exit(1)


if __name__ == "__main__":
    main()
