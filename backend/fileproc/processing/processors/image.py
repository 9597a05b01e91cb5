"""
Image metadata reporter.

Pillow's Image.open() only parses the header, so dimensions, format and
EXIF are read without decoding pixel data.  No image is produced; the
output is always a text report.
"""

from __future__ import annotations

import io
import threading
from typing import Any

from PIL import Image, UnidentifiedImageError

from fileproc.core.constants import ProcessingType
from fileproc.processing.processors.base import FileMeta, ProcessingResult, Processor

EXIF_FORMATS = {"JPEG", "MPO", "TIFF", "WEBP"}

EXIF_SUB_IFD = 0x8769

# tag id -> report label, IFD0
_IFD0_TAGS = {
    0x010F: "Camera Make",
    0x0110: "Camera Model",
    0x0132: "Date Taken",
    0x0112: "Orientation",
}

# tag id -> report label, Exif sub-IFD
_EXIF_TAGS = {
    0x9003: "Date Taken",
    0x829A: "Exposure Time",
    0x829D: "F-Stop",
    0x8827: "ISO",
    0x920A: "Focal Length",
    0x9209: "Flash",
}


def _plain(value: Any) -> Any:
    """Reduce an EXIF value to something JSON can hold."""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace").strip("\x00 ")
    if isinstance(value, str):
        return value.strip("\x00 ")
    if isinstance(value, (tuple, list)):
        return ", ".join(str(_plain(v)) for v in value)
    if isinstance(value, (int, float)):
        return value
    try:
        # IFDRational and friends
        return round(float(value), 6)
    except (TypeError, ValueError, ZeroDivisionError):
        return str(value)


# Image.MAX_IMAGE_PIXELS is process-global; swaps are serialised.
_PIXEL_GUARD_LOCK = threading.Lock()


def open_header(data: bytes) -> Image.Image:
    """
    Open an image for header inspection only.

    Pillow's decompression-bomb guard is off for the open; pixel data
    is never decoded.
    """
    with _PIXEL_GUARD_LOCK:
        limit = Image.MAX_IMAGE_PIXELS
        Image.MAX_IMAGE_PIXELS = None
        try:
            return Image.open(io.BytesIO(data))
        finally:
            Image.MAX_IMAGE_PIXELS = limit


def extract_exif(image: Image.Image) -> dict[str, Any]:
    """Allow-listed, human-relevant EXIF tags keyed by report label."""
    if (image.format or "").upper() not in EXIF_FORMATS:
        return {}

    exif = image.getexif()
    if not exif:
        return {}

    relevant: dict[str, Any] = {}
    for tag, label in _IFD0_TAGS.items():
        if tag in exif:
            relevant[label] = _plain(exif[tag])

    sub_ifd = exif.get_ifd(EXIF_SUB_IFD)
    for tag, label in _EXIF_TAGS.items():
        if tag in sub_ifd:
            relevant[label] = _plain(sub_ifd[tag])
    return relevant


class ImageProcessor(Processor):
    processing_type = ProcessingType.IMAGE_METADATA.value
    title = "Image Processing Report"

    def process(self, data: bytes, meta: FileMeta) -> ProcessingResult:
        try:
            image = open_header(data)
        except (UnidentifiedImageError, OSError, ValueError):
            return ProcessingResult.failure(
                "Invalid image file or unable to read image information"
            )

        with image:
            width, height = image.size
            image_format = image.format or "UNKNOWN"
            mime = image.get_format_mimetype() or meta.mime_type or "application/octet-stream"
            mode = image.mode
            exif = extract_exif(image)

        metadata: dict[str, Any] = {
            "width": width,
            "height": height,
            "mime": mime,
            "format": image_format,
            "mode": mode,
            "size": len(data),
            "aspect_ratio": None,
            "megapixels": None,
            "exif": exif,
        }

        report = self._header(meta, f"File Size: {len(data) / 1024:.2f} KB")
        report += [
            "IMAGE INFORMATION:",
            f"Dimensions: {width} x {height} pixels",
            f"Format: {image_format}",
            f"MIME Type: {mime}",
            f"Mode: {mode}",
        ]

        if width > 0 and height > 0:
            metadata["aspect_ratio"] = round(width / height, 2)
            metadata["megapixels"] = round(width * height / 1_000_000, 2)
            report.append(f"Aspect Ratio: {metadata['aspect_ratio']}:1")
            report.append(f"Megapixels: {metadata['megapixels']} MP")

        if exif:
            report += ["", "EXIF DATA:"]
            report += [f"{label}: {value}" for label, value in exif.items()]

        return ProcessingResult.ok("\n".join(report) + "\n", metadata=metadata)
