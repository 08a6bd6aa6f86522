"""Lem Studio - AI product rendering and room staging."""

__version__ = "0.1.0"

from lemstudio.core.config import LemStudioConfig, config
from lemstudio.core.model_adapters import ImageModelBase, model_registry
from lemstudio.core.orchestrator import RenderOrchestrator, RunReport
from lemstudio.core.store import WorkItemStore

# Import adapters to ensure they're registered
from lemstudio.core.adapters import GeminiImageAdapter  # noqa: F401

__all__ = [
    "GeminiImageAdapter",
    "ImageModelBase",
    "LemStudioConfig",
    "RenderOrchestrator",
    "RunReport",
    "WorkItemStore",
    "config",
    "model_registry",
]
