"""
Generic metadata extractor.

Accepts any input.  This is the fallback for unknown processing types
and is also selectable directly as "metadata".
"""

from __future__ import annotations

import hashlib
import mimetypes
import re

from fileproc.core.constants import ProcessingType
from fileproc.processing.processors.base import FileMeta, ProcessingResult, Processor, decode_text

PREVIEW_CHARS = 1000

_WORD_RE = re.compile(r"\S+")


class MetadataProcessor(Processor):
    processing_type = ProcessingType.METADATA.value
    title = "File Metadata Report"

    def process(self, data: bytes, meta: FileMeta) -> ProcessingResult:
        text = decode_text(data)
        lines = text.count("\n")
        words = len(_WORD_RE.findall(text))
        characters = len(text)

        digests = {
            "md5": hashlib.md5(data).hexdigest(),
            "sha1": hashlib.sha1(data).hexdigest(),
            "sha256": hashlib.sha256(data).hexdigest(),
        }
        mime = meta.mime_type or mimetypes.guess_type(meta.original_name)[0] or "application/octet-stream"

        report = self._header(meta, "Processing Type: Metadata Analysis")
        report += [
            "FILE INFORMATION:",
            f"Name: {meta.original_name}",
            f"Size: {len(data) / 1024:.2f} KB",
            f"MIME Type: {mime}",
            "",
            "FILE STATISTICS:",
        ]
        if meta.uploaded_at is not None:
            report.append(f"Uploaded: {meta.uploaded_at.isoformat()}")
        if meta.stored_at is not None:
            report.append(f"Modified: {meta.stored_at.isoformat()}")
        report += [
            "",
            "CONTENT ANALYSIS:",
            f"Total Lines: {lines}",
            f"Total Words: {words}",
            f"Total Characters: {characters}",
            "",
            "FILE SIGNATURES:",
            f"MD5: {digests['md5']}",
            f"SHA1: {digests['sha1']}",
            f"SHA256: {digests['sha256']}",
            "",
            f"ORIGINAL CONTENT (First {PREVIEW_CHARS} characters):",
            "-" * 50,
            text[:PREVIEW_CHARS],
        ]
        truncated = characters > PREVIEW_CHARS
        if truncated:
            report.append(f"... (truncated, {characters - PREVIEW_CHARS} more characters)")

        return ProcessingResult.ok(
            "\n".join(report) + "\n",
            metadata={
                "file_size": len(data),
                "mime_type": mime,
                "lines": lines,
                "words": words,
                "characters": characters,
                "truncated": truncated,
                **digests,
                "uploaded_at": meta.uploaded_at.isoformat() if meta.uploaded_at else None,
                "modified_at": meta.stored_at.isoformat() if meta.stored_at else None,
            },
        )
