"""Tests for file I/O and staging conventions."""

import json

import pytest
from impact_staging.transform.routing import Bucket, RoutedLine
from impact_staging.utils.file_io import (
    RoutedStagingWriter,
    StagingFileWriter,
    read_id_list,
    read_jsonl,
    read_tsv,
    write_lines,
)
from impact_staging.utils.staging import get_staging_path, new_batch_id, staging_filename


class TestReaders:
    """Tests for input readers."""

    def test_read_jsonl_skips_blank_lines(self, tmp_path):
        """Test JSONL reading."""
        path = tmp_path / "rows.jsonl"
        path.write_text(json.dumps({"ID": "1"}) + "\n\n" + json.dumps({"ID": "2"}) + "\n")

        assert read_jsonl(path) == [{"ID": "1"}, {"ID": "2"}]

    def test_read_tsv_skips_comments(self, clinical_file):
        """Test metadata lines are skipped and header is used."""
        rows = read_tsv(clinical_file)

        assert len(rows) == 4
        assert rows[0] == {
            "PATIENT_ID": "P-0000001",
            "PARTC_CONSENTED_12_245": "YES",
            "SEX": "Female",
        }

    def test_read_tsv_pads_short_rows(self, tmp_path):
        """Test missing trailing values read as empty strings."""
        path = tmp_path / "rows.txt"
        path.write_text("A\tB\tC\n1\t2\n")

        assert read_tsv(path) == [{"A": "1", "B": "2", "C": ""}]

    def test_read_id_list(self, tmp_path):
        """Test identifier lists ignore blank lines and whitespace."""
        path = tmp_path / "ids.txt"
        path.write_text("P-001\n\n  P-002 \nP-001\n")

        assert read_id_list(path) == {"P-001", "P-002"}


class TestWriteLines:
    """Tests for plain line output."""

    def test_write_lines(self, tmp_path):
        """Test lines are newline terminated and parents created."""
        path = tmp_path / "nested" / "out.txt"
        count = write_lines(["a", "b"], path)

        assert count == 2
        assert path.read_text() == "a\nb\n"


class TestStagingFileWriter:
    """Tests for staging file output."""

    def test_header_then_lines(self, tmp_path):
        """Test header precedes data lines."""
        path = tmp_path / "data_fusion.txt"

        with StagingFileWriter(path, ["ID", "NAME"]) as writer:
            writer.write(["1\tJane Doe", "2\tJohn Roe"])

        assert path.read_text() == "ID\tNAME\n1\tJane Doe\n2\tJohn Roe\n"
        assert writer.line_count == 2

    def test_header_only_when_empty(self, tmp_path):
        """Test an empty run still writes the header."""
        path = tmp_path / "data_fusion.txt"

        with StagingFileWriter(path, ["ID", "NAME"]):
            pass

        assert path.read_text() == "ID\tNAME\n"

    def test_disabled_writer_creates_nothing(self, tmp_path):
        """Test disabled outputs are skipped entirely."""
        path = tmp_path / "data_timeline.txt"

        with StagingFileWriter(path, ["ID"], enabled=False) as writer:
            writer.write(["1"])

        assert not path.exists()
        assert writer.line_count == 0

    def test_failure_discards_output(self, tmp_path):
        """Test an exception inside the context leaves no file behind."""
        path = tmp_path / "data_fusion.txt"

        with pytest.raises(ValueError):
            with StagingFileWriter(path, ["ID"]) as writer:
                writer.write(["1"])
                raise ValueError("boom")

        assert list(tmp_path.iterdir()) == []

    def test_failure_keeps_previous_file(self, tmp_path):
        """Test a failed rewrite leaves the earlier staging file intact."""
        path = tmp_path / "data_fusion.txt"
        path.write_text("ID\nold\n")

        with pytest.raises(ValueError):
            with StagingFileWriter(path, ["ID"]) as writer:
                writer.write(["new"])
                raise ValueError("boom")

        assert path.read_text() == "ID\nold\n"
        assert list(tmp_path.iterdir()) == [path]

    def test_write_before_open(self, tmp_path):
        """Test writing to an unopened writer fails."""
        writer = StagingFileWriter(tmp_path / "x.txt", ["ID"])

        with pytest.raises(RuntimeError):
            writer.write(["1"])


class TestRoutedStagingWriter:
    """Tests for new/old staging output."""

    def test_dispatch_by_bucket(self, tmp_path):
        """Test routed lines land in their bucket's file."""
        new_path = tmp_path / "data_seg.new.txt"
        old_path = tmp_path / "data_seg.old.txt"
        routed = [
            RoutedLine(Bucket.NEW, "P-001\t1", "P-001"),
            RoutedLine(Bucket.OLD, "P-003\t2", "P-003"),
            RoutedLine(Bucket.NEW, "P-002\t3", "P-002"),
        ]

        with RoutedStagingWriter(new_path, old_path, ["ID", "chrom"]) as writer:
            writer.write(routed)

        assert new_path.read_text() == "ID\tchrom\nP-001\t1\nP-002\t3\n"
        assert old_path.read_text() == "ID\tchrom\nP-003\t2\n"
        assert writer.counts == {Bucket.NEW: 2, Bucket.OLD: 1}

    def test_failure_discards_both_files(self, tmp_path):
        """Test a failure mid-write leaves neither routed file."""
        with pytest.raises(ValueError):
            with RoutedStagingWriter(tmp_path / "new.txt", tmp_path / "old.txt", ["ID"]) as writer:
                writer.write([RoutedLine(Bucket.NEW, "P-001", "P-001")])
                raise ValueError("boom")

        assert list(tmp_path.iterdir()) == []


class TestStagingConventions:
    """Tests for staging paths and filenames."""

    def test_staging_path(self, tmp_path, mock_datetime):
        """Test partitioned staging directory."""
        path = get_staging_path(tmp_path, batch_id="abc123", dt=mock_datetime)

        assert path == tmp_path / "dt=2024-01-15" / "batch_id=abc123"

    def test_staging_path_generates_batch_id(self, tmp_path, mock_datetime):
        """Test batch id is generated when missing."""
        path = get_staging_path(tmp_path, dt=mock_datetime)

        assert path.name.startswith("batch_id=")
        assert len(path.name) == len("batch_id=") + 12

    def test_filenames(self):
        """Test staging filenames."""
        assert staging_filename("fusion") == "data_fusion.txt"
        assert staging_filename("seg", Bucket.NEW) == "data_seg.new.txt"
        assert staging_filename("seg", Bucket.OLD) == "data_seg.old.txt"

    def test_batch_ids_unique(self):
        """Test generated batch ids differ."""
        assert new_batch_id() != new_batch_id()
