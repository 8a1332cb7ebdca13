"""Enrichment passes over a student's chats."""

from collegebot_core.enrichment.orchestrator import EnrichmentOrchestrator
from collegebot_core.enrichment.progress import (
    BatchReport,
    ChatResult,
    ProgressCallback,
    ProgressEvent,
    ProgressKind,
)
from collegebot_core.enrichment.registry import StoreRegistry, validate_student_id

__all__ = [
    "BatchReport",
    "ChatResult",
    "EnrichmentOrchestrator",
    "ProgressCallback",
    "ProgressEvent",
    "ProgressKind",
    "StoreRegistry",
    "validate_student_id",
]
