"""Tests for kelojson.fileio — plain and compressed .kelojson files."""

import gzip
import json
import zipfile

import pytest

from kelojson.errors import IllegalDataError, KeloJSONIOError
from kelojson.fileio import compression_of, read_file, write_file
from kelojson.model import PrimitiveType
from kelojson.reader import KeloJSONReader


class TestCompressionDetection:

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "name, expected",
        [("a.kelojson", None), ("a.kelojson.gz", ".gz"), ("a.kelojson.BZ2", ".bz2"),
         ("a.kelojson.bz", ".bz"), ("a.kelojson.xz", ".xz"), ("a.zip", ".zip")],
    )
    def test_suffixes(self, name, expected):
        assert compression_of(name) == expected


class TestReadWrite:

    @pytest.mark.unit
    @pytest.mark.parametrize("name", ["map.kelojson", "map.kelojson.gz", "map.kelojson.bz2", "map.kelojson.xz", "map.zip"])
    def test_roundtrip(self, tmp_path, sample_dataset, name):
        path = tmp_path / name
        write_file(path, sample_dataset)
        result = read_file(path)
        assert len(result) == len(sample_dataset)
        assert result.get(PrimitiveType.RELATION, 20) is not None

    @pytest.mark.unit
    def test_gzip_is_really_compressed(self, tmp_path, sample_dataset):
        path = tmp_path / "map.kelojson.gz"
        write_file(path, sample_dataset, pretty=False)
        with gzip.open(path, "rt", encoding="utf-8") as f:
            assert json.load(f)["type"] == "FeatureCollection"

    @pytest.mark.unit
    def test_zip_entry_name(self, tmp_path, sample_dataset):
        path = tmp_path / "map.zip"
        write_file(path, sample_dataset)
        with zipfile.ZipFile(path) as zf:
            assert zf.namelist() == ["map.kelojson"]

    @pytest.mark.unit
    def test_reader_warnings_available(self, tmp_path):
        path = tmp_path / "broken.kelojson"
        path.write_text(json.dumps({
            "type": "FeatureCollection",
            "features": [{"type": "Feature", "id": "1", "relation": {"members": [{"id": "9", "type": "Node", "role": ""}]}}],
        }), encoding="utf-8")
        reader = KeloJSONReader()
        read_file(path, reader=reader)
        assert len(reader.warnings) == 1


class TestErrors:
    """I/O failures and data failures are distinct."""

    @pytest.mark.unit
    def test_missing_file(self, tmp_path):
        with pytest.raises(KeloJSONIOError):
            read_file(tmp_path / "nope.kelojson")

    @pytest.mark.unit
    def test_corrupt_archive(self, tmp_path):
        path = tmp_path / "bad.kelojson.gz"
        path.write_bytes(b"not gzip")
        with pytest.raises(KeloJSONIOError):
            read_file(path)

    @pytest.mark.unit
    def test_unwritable_path(self, tmp_path, sample_dataset):
        with pytest.raises(KeloJSONIOError):
            write_file(tmp_path / "missing-dir" / "map.kelojson", sample_dataset)

    @pytest.mark.unit
    def test_bad_content_is_data_error(self, tmp_path):
        path = tmp_path / "bad.kelojson"
        path.write_text("{]", encoding="utf-8")
        with pytest.raises(IllegalDataError):
            read_file(path)
