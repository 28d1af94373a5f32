"""Select the consented subset of patients from a clinical file.

Usage:
    python -m impact_staging.subset \\
        --clinical-file data_clinical_patient.txt \\
        --filter-criteria PARTC_CONSENTED_12_245=YES \\
        --subset-filename subset.txt
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Union

from dotenv import load_dotenv

from impact_staging.transform.errors import FieldNotFoundError
from impact_staging.utils import read_tsv, setup_logging, write_lines

logger = logging.getLogger(__name__)


def parse_filter_criteria(criteria: str) -> tuple[str, str]:
    """Parse an ATTRIBUTE=VALUE filter.

    Example:
        >>> parse_filter_criteria("PARTC_CONSENTED_12_245=YES")
        ('PARTC_CONSENTED_12_245', 'YES')

    Raises:
        ValueError: If the criteria is not of the form ATTRIBUTE=VALUE
    """
    attribute, sep, value = criteria.partition("=")
    attribute = attribute.strip()
    value = value.strip()

    if not sep or not attribute or not value:
        raise ValueError(f"Filter criteria must look like ATTRIBUTE=VALUE, got {criteria!r}")

    return attribute, value


def read_clinical_file(file_path: Union[str, Path]) -> list[dict]:
    """Read a clinical file, skipping '#' metadata lines."""
    return read_tsv(file_path, comment_prefix="#")


def generate_subset(
    rows: Iterable[Mapping[str, Any]],
    criteria: tuple[str, str],
    id_field: str = "PATIENT_ID",
) -> list[str]:
    """Identifiers of rows whose attribute matches the filter value.

    Values are compared case-insensitively after trimming. Identifiers keep
    their first-seen order and appear once.

    Args:
        rows: Clinical rows keyed by column
        criteria: (attribute, value) pair from parse_filter_criteria
        id_field: Column holding the identifier

    Returns:
        Matching identifiers

    Raises:
        FieldNotFoundError: If a row lacks the filter or identifier column
    """
    attribute, value = criteria
    wanted = value.strip().casefold()
    subset = {}

    for row in rows:
        for column in (id_field, attribute):
            if column not in row:
                raise FieldNotFoundError(column, row.get(id_field))

        actual = row[attribute]
        if actual is not None and str(actual).strip().casefold() == wanted:
            subset.setdefault(str(row[id_field]).strip(), None)

    return list(subset)


def write_subset_file(ids: Iterable[str], output_path: Union[str, Path]) -> int:
    """Write identifiers one per line."""
    return write_lines(ids, output_path)


def run_subset(
    clinical_file: Union[str, Path],
    filter_criteria: str,
    subset_filename: Union[str, Path],
    id_field: str = "PATIENT_ID",
) -> dict:
    """Generate a subset file from a clinical file.

    Returns:
        Result metadata; status is "error" on failure
    """
    try:
        criteria = parse_filter_criteria(filter_criteria)
        rows = read_clinical_file(clinical_file)
        subset = generate_subset(rows, criteria, id_field=id_field)
        write_subset_file(subset, subset_filename)
    except Exception as e:
        logger.error(f"Failed to generate subset from {clinical_file}: {e}", exc_info=True)
        return {"status": "error", "error": str(e)}

    result = {
        "status": "success",
        "clinical_file": str(clinical_file),
        "filter_criteria": filter_criteria,
        "rows_read": len(rows),
        "subset_count": len(subset),
        "subset_filename": str(subset_filename),
    }
    logger.info(f"Selected {len(subset)} of {len(rows)} rows", extra=result)

    return result


def main(argv: Optional[list[str]] = None):
    """CLI entrypoint."""
    load_dotenv()

    parser = argparse.ArgumentParser(
        description="Generate the list of identifiers matching a clinical attribute filter"
    )
    parser.add_argument("--clinical-file", required=True, help="Clinical patient file")
    parser.add_argument(
        "--filter-criteria",
        required=True,
        help="Filter of the form ATTRIBUTE=VALUE (e.g. PARTC_CONSENTED_12_245=YES)",
    )
    parser.add_argument("--subset-filename", required=True, help="Output identifier list")
    parser.add_argument(
        "--id-field",
        default="PATIENT_ID",
        help="Identifier column (default: PATIENT_ID)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=os.getenv("STAGING_LOG_LEVEL", "INFO"),
        help="Log level (default: $STAGING_LOG_LEVEL or INFO)",
    )

    args = parser.parse_args(argv)

    setup_logging(level=args.log_level, json_format=True)

    result = run_subset(
        clinical_file=args.clinical_file,
        filter_criteria=args.filter_criteria,
        subset_filename=args.subset_filename,
        id_field=args.id_field,
    )

    if result["status"] != "success":
        sys.exit(1)


if __name__ == "__main__":
    main()
