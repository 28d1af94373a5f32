"""Utility modules for the pipeline.

Includes:
- Logging configuration
- Structured pipeline logging
- File I/O helpers and staging file writers
- Staging path conventions
"""

from .logging_config import setup_logging, get_logger
from .file_io import (
    read_jsonl,
    read_tsv,
    read_id_list,
    write_lines,
    StagingFileWriter,
    RoutedStagingWriter,
)
from .staging import get_staging_path, staging_filename, new_batch_id
from .pipeline_logger import PipelineLogger, timed_operation

__all__ = [
    "setup_logging",
    "get_logger",
    "read_jsonl",
    "read_tsv",
    "read_id_list",
    "write_lines",
    "StagingFileWriter",
    "RoutedStagingWriter",
    "get_staging_path",
    "staging_filename",
    "new_batch_id",
    "PipelineLogger",
    "timed_operation",
]
