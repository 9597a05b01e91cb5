"""
CSV analyzer: per-column statistics plus a sample of the data.

The first row is the header.  A column is numeric when every value it
holds parses as a finite number; numeric columns get min / max / mean,
all others get a distinct-value count.
"""

from __future__ import annotations

import csv
import io
import math
from typing import Any

from fileproc.core.constants import ProcessingType
from fileproc.processing.processors.base import FileMeta, ProcessingResult, Processor

SAMPLE_ROWS = 10


def _to_number(value: str) -> float | None:
    """Parse a cell as a finite float, or return None."""
    try:
        number = float(value.strip())
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def unique_column_names(header: list[str]) -> list[str]:
    """Suffix repeated header names (`name`, `name_2`, ...) so none collide."""
    seen: set[str] = set()
    names: list[str] = []
    for column in header:
        name, n = column, 1
        while name in seen:
            n += 1
            name = f"{column}_{n}"
        seen.add(name)
        names.append(name)
    return names


def column_statistics(header: list[str], rows: list[list[str]]) -> dict[str, dict[str, Any]]:
    """Compute the stats bag for every header column (names must be unique)."""
    stats: dict[str, dict[str, Any]] = {}
    for index, column in enumerate(header):
        values = [row[index] for row in rows if index < len(row)]
        numbers = [_to_number(v) for v in values]

        if values and all(n is not None for n in numbers):
            stats[column] = {
                "numeric": True,
                "min": min(numbers),
                "max": max(numbers),
                "mean": sum(numbers) / len(numbers),
            }
        else:
            stats[column] = {"numeric": False, "distinct": len(set(values))}
    return stats


def _format_number(value: float) -> str:
    return f"{value:.2f}"


class CsvProcessor(Processor):
    processing_type = ProcessingType.CSV_ANALYZE.value
    title = "CSV Analysis Report"

    def process(self, data: bytes, meta: FileMeta) -> ProcessingResult:
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            return ProcessingResult.failure(f"CSV file is not valid UTF-8 text: {exc}")

        if not text.strip():
            return ProcessingResult.failure("CSV file is empty")

        try:
            rows = [row for row in csv.reader(io.StringIO(text)) if row]
        except csv.Error as exc:
            return ProcessingResult.failure(f"CSV parse error: {exc}")

        if not rows:
            return ProcessingResult.failure("CSV file contains no rows")

        header, data_rows = unique_column_names(rows[0]), rows[1:]
        stats = column_statistics(header, data_rows)

        report = self._header(meta, f"File Size: {len(data) / 1024:.2f} KB")
        report += [
            "STATISTICS:",
            f"Total Columns: {len(header)}",
            f"Total Rows: {len(data_rows)}",
            f"Column Names: {', '.join(header)}",
            "",
            "COLUMN ANALYSIS:",
        ]
        for column, info in stats.items():
            if info["numeric"]:
                report.append(
                    f"- {column}: Min: {_format_number(info['min'])}, "
                    f"Max: {_format_number(info['max'])}, "
                    f"Mean: {_format_number(info['mean'])}"
                )
            else:
                report.append(f"- {column}: Distinct values: {info['distinct']}")

        report += ["", f"SAMPLE DATA (First {SAMPLE_ROWS} rows):", ",".join(header)]
        report += [",".join(row) for row in data_rows[:SAMPLE_ROWS]]

        return ProcessingResult.ok(
            "\n".join(report) + "\n",
            metadata={
                "row_count": len(data_rows),
                "column_count": len(header),
                "columns": header,
                "column_stats": stats,
            },
        )
