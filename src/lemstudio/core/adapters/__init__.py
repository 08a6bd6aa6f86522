"""Model adapters for Lem Studio.

Importing this package registers every adapter with ``model_registry``.
"""

from .gemini_image import GeminiImageAdapter

__all__ = ["GeminiImageAdapter"]
