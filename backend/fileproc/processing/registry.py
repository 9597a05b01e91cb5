"""
ProcessorRegistry: maps a processing type to its Processor.

resolve() never fails: an unknown or missing type gets the default
metadata processor.  The registry is an ordinary object built by
build_default_registry() and handed to the orchestrator; there is no
module-level instance.

To add a processor:
    1. Subclass Processor in processing/processors/
    2. Bind it in build_default_registry() (or call register() at runtime)
"""

from __future__ import annotations

from fileproc.core.constants import LEGACY_IMAGE_TYPE, ProcessingType
from fileproc.core.logging import get_logger
from fileproc.processing.processors import (
    CsvProcessor,
    ImageProcessor,
    JsonProcessor,
    MetadataProcessor,
    Processor,
    TextProcessor,
)

logger = get_logger(__name__)


class ProcessorRegistry:
    """Processing-type identifier -> Processor, with a default fallback."""

    def __init__(self, default: Processor) -> None:
        self._default = default
        self._processors: dict[str, Processor] = {}

    @property
    def default(self) -> Processor:
        return self._default

    def register(self, processing_type: str, processor: Processor) -> None:
        if processing_type in self._processors:
            logger.info("Replacing processor", processing_type=processing_type)
        self._processors[processing_type] = processor

    def resolve(self, processing_type: str | None) -> Processor:
        if processing_type and processing_type in self._processors:
            return self._processors[processing_type]
        if processing_type:
            logger.warning(
                "Unknown processing type, using default processor",
                processing_type=processing_type,
                default=self._default.processing_type,
            )
        return self._default

    def supports(self, processing_type: str | None) -> bool:
        return bool(processing_type) and processing_type in self._processors

    def list_types(self) -> set[str]:
        return set(self._processors)


def build_default_registry() -> ProcessorRegistry:
    """Registry with every built-in processor bound."""
    metadata = MetadataProcessor()
    image = ImageProcessor()

    registry = ProcessorRegistry(default=metadata)
    registry.register(ProcessingType.TEXT_TRANSFORM.value, TextProcessor())
    registry.register(ProcessingType.CSV_ANALYZE.value, CsvProcessor())
    registry.register(ProcessingType.JSON_FORMAT.value, JsonProcessor())
    registry.register(ProcessingType.IMAGE_METADATA.value, image)
    registry.register(LEGACY_IMAGE_TYPE, image)
    registry.register(ProcessingType.METADATA.value, metadata)
    return registry
