from fileproc.processing.processors.base import FileMeta, ProcessingResult, Processor
from fileproc.processing.processors.csv_processor import CsvProcessor
from fileproc.processing.processors.image import ImageProcessor
from fileproc.processing.processors.json_processor import JsonProcessor
from fileproc.processing.processors.metadata import MetadataProcessor
from fileproc.processing.processors.text import TextProcessor

__all__ = [
    "CsvProcessor",
    "FileMeta",
    "ImageProcessor",
    "JsonProcessor",
    "MetadataProcessor",
    "ProcessingResult",
    "Processor",
    "TextProcessor",
]
