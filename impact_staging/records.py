"""Record shapes and their staging configuration.

Each record type is described by data rather than by a dedicated processor:
a dataclass for the parsed record, the ordered output schema, an accessor
table from schema column to attribute, and the field used to identify
records in diagnostics and routing.
"""

import dataclasses
import logging
import re
from dataclasses import dataclass, field
from operator import attrgetter
from types import MappingProxyType
from typing import Any, Mapping, Optional

from impact_staging.transform.errors import FieldNotFoundError
from impact_staging.transform.flatten import Accessor, RecordFlattener
from impact_staging.transform.normalize import DEFAULT_OVERRIDES, OverrideRule
from impact_staging.transform.routing import PatientIdResolver

logger = logging.getLogger(__name__)

# DMP sample IDs extend the patient ID: P-0000001-T01-IM3 belongs to P-0000001
_DMP_SAMPLE_ID = re.compile(r"^(P-\d{7})-T\d+-\w+$")


def dmp_patient_id(sample_id: str) -> Optional[str]:
    """Patient ID of a DMP sample ID, or None if it is not one."""
    match = _DMP_SAMPLE_ID.match(sample_id)
    return match.group(1) if match else None


def accessor_table(
    record_cls: type,
    renames: Optional[Mapping[str, str]] = None,
) -> dict[str, Accessor]:
    """Build a column -> accessor table for a dataclass type.

    Args:
        record_cls: Dataclass type
        renames: Column name -> attribute name, for columns that are not
            valid identifiers (e.g. "loc.start" -> "loc_start")

    Returns:
        Table keyed by column name, in dataclass field order
    """
    renames = renames or {}
    columns = {attr: column for column, attr in renames.items()}
    return {
        columns.get(f.name, f.name): attrgetter(f.name)
        for f in dataclasses.fields(record_cls)
    }


# ============================================
# Record dataclasses
# ============================================

@dataclass
class CVRFusionRecord:
    """Structural variant (fusion) call from the clinical sequencing feed."""

    Hugo_Symbol: str = ""
    Entrez_Gene_Id: str = ""
    Center: str = ""
    Tumor_Sample_Barcode: str = ""
    Fusion: str = ""
    DNA_support: str = ""
    RNA_support: str = ""
    Method: str = ""
    Frame: str = ""
    Comments: str = ""


@dataclass
class CVRSegRecord:
    """Copy-number segment."""

    ID: str = ""
    chrom: str = ""
    loc_start: Any = ""
    loc_end: Any = ""
    num_mark: Any = ""
    seg_mean: Any = ""


@dataclass
class TimelineRecord:
    """Treatment timeline event."""

    PATIENT_ID: str = ""
    START_DATE: Any = ""
    STOP_DATE: Any = ""
    EVENT_TYPE: str = ""
    TREATMENT_TYPE: str = ""
    SUBTYPE: str = ""
    AGENT: str = ""


@dataclass
class CRDBSurvey:
    """Clinical research database survey answers."""

    DMP_ID: str = ""
    QS_DATE: str = ""
    ADJ_TXT: str = ""
    NOSYSTXT: str = ""
    PRIOR_RX: str = ""
    BRAINMET: str = ""
    ECOG: str = ""
    COMMENTS: str = ""


# ============================================
# Record type configuration
# ============================================

@dataclass(frozen=True)
class RecordType:
    """Staging configuration for one record shape."""

    name: str
    record_cls: type
    schema: tuple[str, ...]
    accessors: Mapping[str, Accessor]
    id_field: str
    overrides: Mapping[str, OverrideRule] = field(default_factory=lambda: DEFAULT_OVERRIDES)
    routed: bool = False
    patient_id_of: Optional[PatientIdResolver] = None

    @classmethod
    def from_dataclass(
        cls,
        name: str,
        record_cls: type,
        id_field: str,
        renames: Optional[Mapping[str, str]] = None,
        **kwargs,
    ) -> "RecordType":
        """Derive schema and accessor table from a dataclass."""
        accessors = accessor_table(record_cls, renames)
        if id_field not in accessors:
            raise ValueError(f"id_field {id_field!r} is not a column of {record_cls.__name__}")
        return cls(
            name=name,
            record_cls=record_cls,
            schema=tuple(accessors),
            accessors=MappingProxyType(accessors),
            id_field=id_field,
            **kwargs,
        )

    def flattener(self) -> RecordFlattener:
        """Build a flattener for this record type."""
        return RecordFlattener(
            self.schema,
            accessors=self.accessors,
            overrides=self.overrides,
            id_field=self.id_field,
        )

    def from_row(self, row: Mapping[str, Any]) -> Any:
        """Build a record from a parsed row keyed by schema column names.

        Raises:
            FieldNotFoundError: If the row lacks a schema column
        """
        record_id = row.get(self.id_field)
        values = {}

        for column, f in zip(self.schema, dataclasses.fields(self.record_cls)):
            if column not in row:
                raise FieldNotFoundError(column, None if record_id is None else str(record_id))
            values[f.name] = row[column]

        return self.record_cls(**values)


RECORD_TYPES: Mapping[str, RecordType] = MappingProxyType({
    record_type.name: record_type
    for record_type in (
        RecordType.from_dataclass(
            "fusion",
            CVRFusionRecord,
            id_field="Tumor_Sample_Barcode",
            patient_id_of=dmp_patient_id,
        ),
        RecordType.from_dataclass(
            "seg",
            CVRSegRecord,
            id_field="ID",
            renames={
                "loc.start": "loc_start",
                "loc.end": "loc_end",
                "num.mark": "num_mark",
                "seg.mean": "seg_mean",
            },
            routed=True,
            patient_id_of=dmp_patient_id,
        ),
        RecordType.from_dataclass(
            "timeline",
            TimelineRecord,
            id_field="PATIENT_ID",
        ),
        RecordType.from_dataclass(
            "survey",
            CRDBSurvey,
            id_field="DMP_ID",
        ),
    )
})


def get_record_type(name: str) -> RecordType:
    """Look up a record type by name.

    Raises:
        KeyError: If no record type has that name
    """
    try:
        return RECORD_TYPES[name]
    except KeyError:
        raise KeyError(
            f"Unknown record type {name!r}; expected one of {sorted(RECORD_TYPES)}"
        ) from None
