"""JSON validator / formatter with a small structure analysis."""

from __future__ import annotations

import json
from typing import Any

from fileproc.core.constants import ProcessingType
from fileproc.processing.processors.base import FileMeta, ProcessingResult, Processor

NESTING_ERROR = "JSON Validation Error: maximum nesting depth exceeded"


def json_type_name(value: Any) -> str:
    """JSON type name of a decoded value."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    return "object"


def max_depth(value: Any) -> int:
    """Nesting depth; the root container counts as 1."""
    if not isinstance(value, (dict, list)):
        return 1

    deepest = 1
    stack: list[tuple[Any, int]] = [(value, 1)]
    while stack:
        node, depth = stack.pop()
        deepest = max(deepest, depth)
        children = node.values() if isinstance(node, dict) else node
        stack.extend((child, depth + 1) for child in children if isinstance(child, (dict, list)))
    return deepest


def analyze_structure(data: Any) -> dict[str, Any]:
    """Top-level stats for a decoded JSON document."""
    if isinstance(data, dict):
        values = list(data.values())
        keys = list(data.keys())
    elif isinstance(data, list):
        values = data
        keys = []
    else:
        values = []
        keys = []

    types: dict[str, int] = {}
    for value in values:
        name = json_type_name(value)
        types[name] = types.get(name, 0) + 1

    return {
        "total_keys": len(values),
        "max_depth": max_depth(data),
        "types": types,
        "keys": keys,
    }


class JsonProcessor(Processor):
    processing_type = ProcessingType.JSON_FORMAT.value
    title = "JSON Processing Report"

    def process(self, data: bytes, meta: FileMeta) -> ProcessingResult:
        try:
            document = json.loads(data.decode("utf-8-sig"))
        except UnicodeDecodeError as exc:
            return ProcessingResult.failure(f"JSON Validation Error: {exc}")
        except json.JSONDecodeError as exc:
            return ProcessingResult.failure(f"JSON Validation Error: {exc}")
        except RecursionError:
            return ProcessingResult.failure(NESTING_ERROR)

        analysis = analyze_structure(document)
        try:
            formatted = json.dumps(document, indent=4, ensure_ascii=False)
        except RecursionError:
            return ProcessingResult.failure(NESTING_ERROR, metadata=analysis)

        report = self._header(meta, "Validation: PASSED")
        report += [
            "STRUCTURE ANALYSIS:",
            f"Total Keys: {analysis['total_keys']}",
            f"Nesting Depth: {analysis['max_depth']}",
            f"Data Types: {', '.join(f'{k}={v}' for k, v in analysis['types'].items())}",
        ]
        if analysis["keys"]:
            report.append(f"Root Keys: {', '.join(analysis['keys'][:10])}")
        report += ["", "FORMATTED JSON:", formatted]

        return ProcessingResult.ok(
            "\n".join(report) + "\n",
            mime_type="application/json",
            file_extension="json",
            metadata=analysis,
        )
