"""
File-processing pipeline: the orchestrator that owns every FileRecord
transition, its result types and the domain error hierarchy.
"""

from fileproc.pipeline.orchestrator import FileProcessingOrchestrator
from fileproc.pipeline.results import DownloadTarget, FileStatistics, ProcessOutcome

__all__ = ["FileProcessingOrchestrator", "DownloadTarget", "FileStatistics", "ProcessOutcome"]
