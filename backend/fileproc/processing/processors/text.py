"""Text reformatter: numbered, uppercased lines."""

from __future__ import annotations

from fileproc.core.constants import ProcessingType
from fileproc.processing.processors.base import FileMeta, ProcessingResult, Processor, decode_text


class TextProcessor(Processor):
    processing_type = ProcessingType.TEXT_TRANSFORM.value
    title = "Processed Text Report"

    def process(self, data: bytes, meta: FileMeta) -> ProcessingResult:
        lines = decode_text(data).split("\n")

        report = self._header(meta, f"Line Count: {len(lines)}")
        for number, line in enumerate(lines, start=1):
            report.append(f"{number:03d}: {line.rstrip(chr(13)).upper()}")

        return ProcessingResult.ok(
            "\n".join(report) + "\n",
            metadata={
                "line_count": len(lines),
                "original_size": len(data),
            },
        )
