"""
Unit tests for the built-in processors.
"""

import hashlib
import io
import json
import struct
import zlib

import pytest
from PIL import Image

from fileproc.processing.processors import (
    CsvProcessor,
    FileMeta,
    ImageProcessor,
    JsonProcessor,
    MetadataProcessor,
    TextProcessor,
)


@pytest.fixture
def meta():
    return FileMeta(file_id="f-1", original_name="input.dat", mime_type="text/plain", size_bytes=0)


def _png(width: int, height: int) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color=(200, 10, 10)).save(buffer, format="PNG")
    return buffer.getvalue()


def _png_chunk(kind: bytes, body: bytes) -> bytes:
    return struct.pack(">I", len(body)) + kind + body + struct.pack(">I", zlib.crc32(kind + body) & 0xFFFFFFFF)


def _png_header(width: int, height: int) -> bytes:
    """A PNG whose IHDR declares width x height but carries no pixel rows."""
    return (
        b"\x89PNG\r\n\x1a\n"
        + _png_chunk(b"IHDR", struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0))
        + _png_chunk(b"IDAT", zlib.compress(b""))
        + _png_chunk(b"IEND", b"")
    )


def _jpeg_with_exif() -> bytes:
    image = Image.new("RGB", (64, 32), color=(0, 120, 255))
    exif = Image.Exif()
    exif[0x010F] = "Canon"
    exif[0x0110] = "EOS 5D"
    exif[0x0112] = 1
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", exif=exif.tobytes())
    return buffer.getvalue()


class TestTextProcessor:

    def test_numbers_and_uppercases_lines(self, meta):
        result = TextProcessor().process(b"ab\ncd", meta)

        assert result.success
        text = result.content.decode()
        assert "001: AB" in text
        assert "002: CD" in text
        assert text.index("001: AB") < text.index("002: CD")
        assert result.mime_type == "text/plain"
        assert result.file_extension == "txt"

    def test_metadata_counts(self, meta):
        result = TextProcessor().process(b"one\ntwo\nthree", meta)

        assert result.metadata == {"line_count": 3, "original_size": 13}

    def test_header_names_source(self, meta):
        text = TextProcessor().process(b"x", meta).content.decode()

        assert "Source File: input.dat" in text
        assert "Processed At:" in text
        assert "Line Count: 1" in text


class TestCsvProcessor:

    def test_numeric_and_text_columns(self, meta):
        result = CsvProcessor().process(b"a,b\n1,2\n3,x", meta)

        assert result.success
        stats = result.metadata["column_stats"]
        assert stats["a"] == {"numeric": True, "min": 1, "max": 3, "mean": 2}
        assert stats["b"] == {"numeric": False, "distinct": 2}
        assert result.metadata["row_count"] == 2
        assert result.metadata["column_count"] == 2
        assert result.metadata["columns"] == ["a", "b"]

    def test_report_samples_first_ten_rows(self, meta):
        rows = "\n".join(f"{i},v{i}" for i in range(15))
        text = CsvProcessor().process(f"n,v\n{rows}".encode(), meta).content.decode()

        assert "9,v9" in text
        assert "10,v10" not in text

    def test_empty_file_is_reported_failure(self, meta):
        result = CsvProcessor().process(b"   \n", meta)

        assert not result.success
        assert result.error

    def test_undecodable_bytes_are_reported_failure(self, meta):
        result = CsvProcessor().process(b"\xff\xfe\x00bad", meta)

        assert not result.success
        assert "UTF-8" in result.error

    def test_nan_is_not_numeric(self, meta):
        result = CsvProcessor().process(b"a\n1\nnan", meta)

        assert result.metadata["column_stats"]["a"]["numeric"] is False

    def test_duplicate_header_names_are_suffixed(self, meta):
        result = CsvProcessor().process(b"a,a,b\n1,x,2\n3,y,4", meta)

        assert result.success
        stats = result.metadata["column_stats"]
        assert list(stats) == ["a", "a_2", "b"]
        assert stats["a"]["numeric"] is True
        assert stats["a_2"] == {"numeric": False, "distinct": 2}
        assert result.metadata["columns"] == ["a", "a_2", "b"]
        assert result.metadata["column_count"] == 3


class TestJsonProcessor:

    def test_structure_analysis(self, meta):
        result = JsonProcessor().process(b'{"a":1,"b":{"c":2}}', meta)

        assert result.success
        assert result.metadata["total_keys"] == 2
        assert result.metadata["max_depth"] == 2
        assert result.metadata["types"] == {"number": 1, "object": 1}
        assert result.metadata["keys"] == ["a", "b"]
        assert result.mime_type == "application/json"
        assert result.file_extension == "json"

    def test_pretty_prints_with_four_spaces(self, meta):
        text = JsonProcessor().process(b'{"a":[1,2]}', meta).content.decode()

        assert json.dumps({"a": [1, 2]}, indent=4) in text

    def test_malformed_json_is_reported_failure(self, meta):
        result = JsonProcessor().process(b"{", meta)

        assert not result.success
        assert result.error
        assert result.content == b""

    def test_array_root_has_no_keys(self, meta):
        result = JsonProcessor().process(b'[1, "x", [true]]', meta)

        assert result.metadata["total_keys"] == 3
        assert result.metadata["keys"] == []
        assert result.metadata["max_depth"] == 2

    def test_deep_but_parseable_nesting(self, meta):
        result = JsonProcessor().process(b"[" * 200 + b"]" * 200, meta)

        assert result.success
        assert result.metadata["max_depth"] == 200

    def test_excessive_nesting_is_reported_failure(self, meta):
        result = JsonProcessor().process(b"[" * 100000, meta)

        assert not result.success
        assert result.error == "JSON Validation Error: maximum nesting depth exceeded"
        assert result.content == b""


class TestImageProcessor:

    def test_png_dimensions(self, meta):
        result = ImageProcessor().process(_png(400, 200), meta)

        assert result.success
        assert result.metadata["width"] == 400
        assert result.metadata["height"] == 200
        assert result.metadata["mime"] == "image/png"
        assert result.metadata["format"] == "PNG"
        assert result.metadata["aspect_ratio"] == 2.0
        assert result.metadata["megapixels"] == 0.08
        assert result.metadata["exif"] == {}
        assert result.mime_type == "text/plain"

    def test_jpeg_exif_allow_list(self, meta):
        result = ImageProcessor().process(_jpeg_with_exif(), meta)

        assert result.success
        exif = result.metadata["exif"]
        assert exif["Camera Make"] == "Canon"
        assert exif["Camera Model"] == "EOS 5D"
        assert exif["Orientation"] == 1
        assert "EXIF DATA:" in result.content.decode()

    def test_not_an_image(self, meta):
        result = ImageProcessor().process(b"definitely not pixels", meta)

        assert not result.success
        assert result.error

    def test_huge_declared_dimensions_are_reported_not_decoded(self, meta):
        result = ImageProcessor().process(_png_header(30000, 30000), meta)

        assert result.success
        assert result.metadata["width"] == 30000
        assert result.metadata["height"] == 30000
        assert result.metadata["megapixels"] == 900.0
        assert result.metadata["mime"] == "image/png"
        assert Image.MAX_IMAGE_PIXELS is not None


class TestMetadataProcessor:

    def test_counts_and_digests(self, meta):
        data = b"hello world\nsecond line\n"
        result = MetadataProcessor().process(data, meta)

        assert result.success
        assert result.metadata["lines"] == 2
        assert result.metadata["words"] == 4
        assert result.metadata["characters"] == len(data)
        assert len(result.metadata["sha256"]) == 64
        assert result.metadata["sha1"] == hashlib.sha1(data).hexdigest()
        assert result.metadata["md5"] == hashlib.md5(data).hexdigest()
        assert result.metadata["truncated"] is False

    def test_truncates_preview(self, meta):
        result = MetadataProcessor().process(b"x" * 1500, meta)
        text = result.content.decode()

        assert result.metadata["truncated"] is True
        assert "truncated, 500 more characters" in text
        assert "x" * 1001 not in text

    def test_accepts_binary(self, meta):
        result = MetadataProcessor().process(bytes(range(256)), meta)

        assert result.success
        assert result.metadata["file_size"] == 256
