"""File I/O utilities for reading input rows and writing staging files."""

import csv
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable, Iterator, Optional, Sequence, Union

from impact_staging.transform.flatten import header_line
from impact_staging.transform.routing import Bucket, RoutedLine

logger = logging.getLogger(__name__)

LINE_TERMINATOR = "\n"


def read_jsonl(file_path: Union[str, Path]) -> list[dict]:
    """Read records from a JSONL file.

    Args:
        file_path: Path to JSONL file

    Returns:
        List of parsed records
    """
    records = []

    with open(file_path, "r", encoding="utf-8") as f:
        for line in f:
            if line.strip():
                records.append(json.loads(line))

    logger.debug(f"Read {len(records)} records from {file_path}")
    return records


def read_tsv(
    file_path: Union[str, Path],
    comment_prefix: Optional[str] = "#",
) -> list[dict]:
    """Read rows from a tab-delimited file with a header line.

    Lines starting with comment_prefix (cBioPortal metadata headers) are
    skipped. Values are kept as strings; short rows are padded with empty
    strings.

    Args:
        file_path: Path to tab-delimited file
        comment_prefix: Prefix of lines to skip, or None to keep every line

    Returns:
        List of rows keyed by header column
    """
    with open(file_path, "r", encoding="utf-8", newline="") as f:
        lines = (
            line for line in f
            if not (comment_prefix and line.startswith(comment_prefix))
        )
        reader = csv.DictReader(
            lines,
            delimiter="\t",
            quoting=csv.QUOTE_NONE,
            restval="",
        )
        rows = [dict(row) for row in reader]

    logger.debug(f"Read {len(rows)} rows from {file_path}")
    return rows


def read_id_list(file_path: Union[str, Path]) -> set[str]:
    """Read identifiers, one per line, ignoring blank lines."""
    with open(file_path, "r", encoding="utf-8") as f:
        ids = {line.strip() for line in f if line.strip()}

    logger.debug(f"Read {len(ids)} identifiers from {file_path}")
    return ids


def write_lines(
    lines: Iterable[str],
    output_path: Union[str, Path],
) -> int:
    """Write lines to a file, one per line.

    Returns:
        Number of lines written
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    count = 0
    with open(output_path, "w", encoding="utf-8") as f:
        for line in lines:
            f.write(line + LINE_TERMINATOR)
            count += 1

    logger.info(f"Wrote {count} lines to {output_path}")
    return count


class StagingFileWriter:
    """Write a tab-delimited staging file: a header line, then one line per record.

    Lines go to a temporary file next to the target, which is moved into
    place on a clean close. Leaving the context with an exception discards
    the temporary file, so a failed run never leaves a partial staging file.

    A disabled writer accepts every call and creates no file, so callers can
    treat optional outputs uniformly.
    """

    def __init__(
        self,
        path: Union[str, Path],
        schema: Sequence[str],
        enabled: bool = True,
    ):
        self.path = Path(path)
        self.schema = tuple(schema)
        self.enabled = enabled
        self.line_count = 0
        self._file = None

    def open(self) -> "StagingFileWriter":
        if not self.enabled:
            return self
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file = tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=self.path.parent,
            prefix=f".{self.path.name}.",
            suffix=".tmp",
            delete=False,
        )
        self._file.write(header_line(self.schema) + LINE_TERMINATOR)
        return self

    def write(self, lines: Iterable[str]) -> None:
        if not self.enabled:
            return
        if self._file is None:
            raise RuntimeError(f"Staging file {self.path} is not open")
        for line in lines:
            self._file.write(line + LINE_TERMINATOR)
            self.line_count += 1

    def close(self) -> None:
        """Move the finished file into place."""
        if self._file is None:
            return
        self._file.close()
        os.replace(self._file.name, self.path)
        self._file = None
        logger.info(
            f"Wrote {self.line_count} lines to {self.path}",
            extra={"file_path": str(self.path), "line_count": self.line_count}
        )

    def discard(self) -> None:
        """Drop everything written so far; the target path is left untouched."""
        if self._file is None:
            return
        self._file.close()
        Path(self._file.name).unlink(missing_ok=True)
        self._file = None
        logger.warning(
            f"Discarded {self.line_count} lines for {self.path}",
            extra={"file_path": str(self.path), "line_count": self.line_count}
        )

    def __enter__(self) -> "StagingFileWriter":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
        else:
            self.discard()


class RoutedStagingWriter:
    """Pair of staging files receiving NEW and OLD routed lines."""

    def __init__(
        self,
        new_path: Union[str, Path],
        old_path: Union[str, Path],
        schema: Sequence[str],
    ):
        self.writers = {
            Bucket.NEW: StagingFileWriter(new_path, schema),
            Bucket.OLD: StagingFileWriter(old_path, schema),
        }

    @property
    def counts(self) -> dict:
        return {bucket: writer.line_count for bucket, writer in self.writers.items()}

    @property
    def paths(self) -> dict:
        return {bucket: writer.path for bucket, writer in self.writers.items()}

    def open(self) -> "RoutedStagingWriter":
        try:
            for writer in self.writers.values():
                writer.open()
        except Exception:
            self.discard()
            raise
        return self

    def write(self, routed_lines: Iterable[RoutedLine]) -> None:
        for routed in routed_lines:
            self.writers[routed.bucket].write([routed.line])

    def close(self) -> None:
        for writer in self.writers.values():
            writer.close()

    def discard(self) -> None:
        for writer in self.writers.values():
            writer.discard()

    def __enter__(self) -> "RoutedStagingWriter":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
        else:
            self.discard()
