"""Media analysis pipeline package.

Modules follow the order in which `/analyze-audio` and `/analyze-video` run:

1. `ingestion` – turn the multipart upload into an `AnalysisRequest`.
2. `orchestrator` – store the media, run recognition jobs, persist history.
3. `synthesis` – prompt the LLM and validate the feedback contract.
4. `flow` – stage names and the per-request stage tracker.
5. `context` – the service container built once at startup.
"""

from .context import AnalysisServices, build_analysis_services
from .flow import AnalysisPipeline, AnalysisStage, PipelineStage, StageTracker
from .ingestion import UploadTooLargeError, read_upload
from .orchestrator import AnalysisOrchestrator
from .synthesis import FeedbackSynthesizer
from .types import AnalysisRequest, InvalidInputError

__all__ = [
    "AnalysisOrchestrator",
    "AnalysisPipeline",
    "AnalysisRequest",
    "AnalysisServices",
    "AnalysisStage",
    "FeedbackSynthesizer",
    "InvalidInputError",
    "PipelineStage",
    "StageTracker",
    "UploadTooLargeError",
    "build_analysis_services",
    "read_upload",
]
