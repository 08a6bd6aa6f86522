"""Core functionality for product rendering and room staging.

This module provides the core components of Lem Studio:

- **WorkItemStore**: In-memory collection of product photos and staged scenes
- **RenderOrchestrator**: Drives independent renders, room staging and edits
- **Prompt composer**: Instruction text and reference ordering per request kind
- **Model Adapters**: Remote image model backends behind one interface
- **RetryPolicy**: Exponential backoff for rate-limited calls
- **LemStudioConfig** / **config**: Settings loaded from LEMSTUDIO_* variables

Architecture Overview
---------------------
1. **Configuration Layer** (config.py):
   - Environment-based configuration using Pydantic Settings
   - Automatic output directory creation

2. **Domain Layer** (models.py, store.py, errors.py):
   - Immutable render parameters, mutable work items
   - Render status lifecycle checks
   - Error taxonomy with user-facing messages

3. **Generation Layer** (prompt_composer.py, image_source.py, model_adapters.py,
   adapters/, retry.py):
   - Pure prompt composition
   - Reference image loading and downscaling
   - Gemini adapter returning classified outcomes

4. **Orchestration Layer** (orchestrator.py, outputs.py, credentials.py):
   - Sequential pipelines with master/dependent scene chaining
   - Output persistence with JSON metadata

Usage Example
-------------
    from lemstudio.core import RenderOrchestrator, WorkItemStore, RunMode

    store = WorkItemStore(mode=RunMode.STAGING)
    sofa, lamp = store.add_products(["sofa.jpg", "lamp.jpg"])
    store.confirm_inputs()
    store.toggle_selection(sofa.id)
    store.toggle_selection(lamp.id)

    report = await RenderOrchestrator.from_config(store).run()
    for scene in store.scenes:
        print(scene.angle.value, scene.render_status.value, scene.rendered_url)
"""

# Import adapters to ensure they're registered
from lemstudio.core.adapters import GeminiImageAdapter  # noqa: F401
from lemstudio.core.config import LemStudioConfig, config
from lemstudio.core.credentials import CredentialProvider
from lemstudio.core.model_adapters import ImageModelBase, model_registry
from lemstudio.core.models import CameraAngle, RenderStatus, RunMode, ViewType
from lemstudio.core.orchestrator import RenderOrchestrator, RunReport
from lemstudio.core.store import WorkItemStore

__all__ = [
    "CameraAngle",
    "CredentialProvider",
    "ImageModelBase",
    "LemStudioConfig",
    "RenderOrchestrator",
    "RenderStatus",
    "RunMode",
    "RunReport",
    "ViewType",
    "WorkItemStore",
    "config",
    "model_registry",
]
