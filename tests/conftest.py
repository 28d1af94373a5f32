"""Pytest configuration and fixtures."""

import pytest
from datetime import datetime, timezone


@pytest.fixture
def sample_record():
    """Sample record keyed by column name."""
    return {
        "ID": "1",
        "NAME": "Jane  Doe",
        "NOTE": "line1\nline2",
    }


@pytest.fixture
def fusion_rows():
    """Parsed fusion rows, as read from a JSONL feed."""
    return [
        {
            "Hugo_Symbol": "ALK",
            "Entrez_Gene_Id": 238,
            "Center": "MSKCC-DMP",
            "Tumor_Sample_Barcode": "P-0000001-T01-IM3",
            "Fusion": "EML4-ALK fusion",
            "DNA_support": "yes",
            "RNA_support": "unknown",
            "Method": "NA",
            "Frame": "in frame",
            "Comments": "Note: The EML4-ALK rearrangement\nis a deletion  event",
        },
        {
            "Hugo_Symbol": "EML4",
            "Entrez_Gene_Id": 27436,
            "Center": "MSKCC-DMP",
            "Tumor_Sample_Barcode": "P-0000002-T01-IM3",
            "Fusion": "EML4-ALK fusion",
            "DNA_support": "yes",
            "RNA_support": "unknown",
            "Method": "NA",
            "Frame": "in frame",
            "Comments": "",
        },
    ]


@pytest.fixture
def seg_rows():
    """Parsed copy-number segment rows."""
    return [
        {
            "ID": "P-0000001-T01-IM3",
            "chrom": "1",
            "loc.start": 2488068,
            "loc.end": 11207218,
            "num.mark": 45,
            "seg.mean": -0.25,
        },
        {
            "ID": "P-0000002-T01-IM3",
            "chrom": "7",
            "loc.start": 55086794,
            "loc.end": 55279321,
            "num.mark": 12,
            "seg.mean": 1.5,
        },
        {
            "ID": "P-0000003-T01-IM3",
            "chrom": "X",
            "loc.start": 100,
            "loc.end": 200,
            "num.mark": 3,
            "seg.mean": 0.0,
        },
    ]


@pytest.fixture
def clinical_file(tmp_path):
    """cBioPortal-style clinical patient file with metadata headers."""
    path = tmp_path / "data_clinical_patient.txt"
    path.write_text(
        "#Patient Identifier\tConsent\tSex\n"
        "#Patient Identifier\tConsent\tSex\n"
        "#STRING\tSTRING\tSTRING\n"
        "#1\t1\t1\n"
        "PATIENT_ID\tPARTC_CONSENTED_12_245\tSEX\n"
        "P-0000001\tYES\tFemale\n"
        "P-0000002\tNO\tMale\n"
        "P-0000003\tyes\tMale\n"
        "P-0000001\tYES\tFemale\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def mock_datetime():
    """Fixed datetime for testing."""
    return datetime(2024, 1, 15, 10, 30, 0, tzinfo=timezone.utc)
