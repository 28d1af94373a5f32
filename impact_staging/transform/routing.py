"""Route flattened lines into "new" and "old" buckets by record identifier."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import AbstractSet, Any, Callable, Iterable, Iterator, Optional

from impact_staging.transform.flatten import RecordFlattener

logger = logging.getLogger(__name__)

# Maps a record identifier (e.g. a sample ID) to the patient it belongs to
PatientIdResolver = Callable[[str], Optional[str]]


class Bucket(str, Enum):
    """Output bucket for a routed line."""

    NEW = "new"
    OLD = "old"

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class RoutedLine:
    """A flattened line tagged with its bucket."""

    bucket: Bucket
    line: str
    record_id: Optional[str] = None


def classify(
    record_id: Optional[str],
    new_ids: AbstractSet[str],
    patient_id: Optional[str] = None,
) -> Bucket:
    """Classify a record as NEW if its identifier, or its patient, is in new_ids.

    Example:
        >>> classify("P-001", {"P-001", "P-002"})
        <Bucket.NEW: 'new'>
        >>> classify("P-001-T01-IM3", {"P-001"}, patient_id="P-001")
        <Bucket.NEW: 'new'>
    """
    for candidate in (record_id, patient_id):
        if candidate is not None and candidate in new_ids:
            return Bucket.NEW
    return Bucket.OLD


class LineRouter:
    """Flatten records and tag each line with its bucket."""

    def __init__(
        self,
        flattener: RecordFlattener,
        new_ids: Iterable[str],
        patient_id_of: Optional[PatientIdResolver] = None,
    ):
        """Initialize router.

        Args:
            flattener: Flattener with an id_field configured
            new_ids: Record or patient identifiers that belong in the NEW bucket
            patient_id_of: Optional resolver from record identifier to patient
                identifier, so patient-level lists route sample-level records

        Raises:
            ValueError: If the flattener has no id_field
        """
        if flattener.id_field is None:
            raise ValueError("Routing requires a flattener with an id_field")

        self.flattener = flattener
        self.new_ids = frozenset(new_ids)
        self.patient_id_of = patient_id_of

    def route(self, record: Any) -> RoutedLine:
        """Flatten and classify a single record."""
        line = self.flattener.flatten(record)
        record_id = self.flattener.record_id(record)
        patient_id = None
        if self.patient_id_of is not None and record_id is not None:
            patient_id = self.patient_id_of(record_id)
        return RoutedLine(
            bucket=classify(record_id, self.new_ids, patient_id),
            line=line,
            record_id=record_id,
        )

    def route_records(self, records: Iterable[Any]) -> Iterator[RoutedLine]:
        """Route records lazily, preserving their order."""
        counts = {Bucket.NEW: 0, Bucket.OLD: 0}

        for record in records:
            routed = self.route(record)
            counts[routed.bucket] += 1
            yield routed

        logger.debug(
            f"Routed {counts[Bucket.NEW]} new and {counts[Bucket.OLD]} old lines",
            extra={"new_count": counts[Bucket.NEW], "old_count": counts[Bucket.OLD]}
        )
