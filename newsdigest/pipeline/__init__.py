from .maintenance import clear_rewrites
from .orchestrator import (
    DedupeResult,
    PipelineOrchestrator,
    RewriteResult,
    RunSummary,
    ScrapeResult,
)

__all__ = [
    "DedupeResult",
    "PipelineOrchestrator",
    "RewriteResult",
    "RunSummary",
    "ScrapeResult",
    "clear_rewrites",
]
