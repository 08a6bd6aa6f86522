"""Base classes, value types and registry for image model adapters.

The generative model is an opaque remote capability: submit a request made of
reference images and a text instruction, receive zero or one image.  Each
backend (currently Gemini) implements :class:`ImageModelBase` and registers
itself with :data:`model_registry`.

Request / Result Types
----------------------
- :class:`ImagePayload`: encoded image bytes plus MIME type.
- :class:`GenerationRequest`: ordered parts (images and captions) followed by
  the instruction, plus optional output-shape hints.
- :class:`GenerationResult`: an explicit outcome instead of an exception.
  The retry policy branches on :class:`OutcomeKind` without try/except, and
  the orchestrator calls :meth:`GenerationResult.raise_for_outcome` to turn
  failures into domain exceptions.

Usage Example
-------------
    >>> from lemstudio.core.model_adapters import model_registry
    >>> from lemstudio.core.config import config
    >>>
    >>> model_registry.list_available()
    ['Gemini-Flash-Image']
    >>> adapter = model_registry.instantiate("Gemini-Flash-Image", config)
    >>> result = await adapter.generate(request, api_key="...")
    >>> result.raise_for_outcome()

See Also
--------
- GeminiImageAdapter: Gemini implementation
- RetryPolicy: Bounded retry over adapter calls
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from .config import LemStudioConfig
from .errors import (
    EntityNotFoundError,
    InvalidCredentialError,
    QuotaExceededError,
    RemoteGenerationError,
)

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}


@dataclass(frozen=True)
class ImagePayload:
    """Encoded image bytes.

    Attributes:
        data: Raw encoded bytes.
        mime_type: MIME type of ``data``.
        source: Where the image came from (path, URL, or None for model output).
    """

    data: bytes
    mime_type: str = "image/jpeg"
    source: str | None = None

    @property
    def extension(self) -> str:
        return _EXTENSIONS.get(self.mime_type, ".png")


RequestPart = Union[ImagePayload, str]


@dataclass(frozen=True)
class GenerationRequest:
    """One remote image-generation call.

    ``parts`` holds reference images interleaved with their captions; the
    instruction is always sent last.
    """

    parts: tuple[RequestPart, ...]
    instruction: str
    aspect_ratio: str | None = None
    image_size: str | None = None

    @property
    def images(self) -> list[ImagePayload]:
        """Reference images in the order they are sent."""
        return [part for part in self.parts if isinstance(part, ImagePayload)]


class OutcomeKind(str, Enum):
    """Classification of a remote call outcome."""

    SUCCESS = "success"
    RATE_LIMITED = "rate_limited"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass(frozen=True)
class GenerationResult:
    """Outcome of a remote call.

    A ``SUCCESS`` outcome may still carry no image (the model answered
    without one); callers decide how to treat that.
    """

    outcome: OutcomeKind
    image: ImagePayload | None = None
    message: str = ""
    status_code: int | None = None
    text: str | None = field(default=None, compare=False)

    @classmethod
    def success(cls, image: ImagePayload | None, text: str | None = None) -> "GenerationResult":
        return cls(OutcomeKind.SUCCESS, image=image, text=text)

    @classmethod
    def failure(
        cls, outcome: OutcomeKind, message: str, status_code: int | None = None
    ) -> "GenerationResult":
        return cls(outcome, message=message, status_code=status_code)

    @property
    def ok(self) -> bool:
        return self.outcome is OutcomeKind.SUCCESS

    def raise_for_outcome(self) -> None:
        """Raise the domain exception that matches a failed outcome.

        Raises
        ------
        QuotaExceededError
            Rate limited (only reaches here once the retry budget is spent)
        InvalidCredentialError
            The API key was rejected
        EntityNotFoundError
            Key/project mismatch
        RemoteGenerationError
            Any other failure
        """
        if self.outcome is OutcomeKind.SUCCESS:
            return
        if self.outcome is OutcomeKind.RATE_LIMITED:
            raise QuotaExceededError(self.message or "Rate limit exceeded")
        if self.outcome is OutcomeKind.UNAUTHORIZED:
            raise InvalidCredentialError(self.message or "API key rejected")
        if self.outcome is OutcomeKind.NOT_FOUND:
            raise EntityNotFoundError(self.message or "Requested entity was not found")
        raise RemoteGenerationError(self.message or None)


class ImageModelBase(ABC):
    """Abstract base class for remote image model adapters.

    Attributes
    ----------
    name : str
        Registry name of the adapter
    description : str
        Brief description of the backend
    version : str
        Adapter version
    config : LemStudioConfig
        Configuration object containing model settings

    Notes
    -----
    - ``generate`` must not raise for remote failures; it classifies them into
      a :class:`GenerationResult`.  Programming errors still propagate.
    - Adapters are stateless between calls apart from client caching.
    """

    name: str = "Base Image Model"
    description: str = "Base class for image model adapters"
    version: str = "0.1.0"

    def __init__(self, config: LemStudioConfig) -> None:
        self.config = config
        logger.info(f"Initialized {self.name} adapter")

    @abstractmethod
    async def generate(self, request: GenerationRequest, *, api_key: str) -> GenerationResult:
        """Submit one generation request.

        Args:
            request: Reference images, captions and instruction
            api_key: Credential resolved for the current run

        Returns
        -------
        GenerationResult
            Success with zero or one image, or a classified failure
        """

    @property
    def model_id(self) -> str:
        """Identifier of the remote model this adapter calls."""
        return self.name

    def get_model_info(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "model_id": self.model_id,
        }


class ModelRegistry:
    """Registry for available image model adapters.

    Usage
    -----
        >>> model_registry.register(MyAdapter)
        >>> adapter = model_registry.instantiate("My Adapter", config)
    """

    def __init__(self) -> None:
        self._adapters: dict[str, type[ImageModelBase]] = {}

    def register(self, adapter_class: type[ImageModelBase]) -> None:
        """Register an adapter class under its ``name``."""
        adapter_name = adapter_class.name

        if adapter_name in self._adapters:
            logger.warning(f"Model adapter '{adapter_name}' is already registered, overwriting")

        self._adapters[adapter_name] = adapter_class
        logger.info(f"Registered model adapter: {adapter_name}")

    def instantiate(self, adapter_name: str, config: LemStudioConfig) -> ImageModelBase:
        """Create an instance of a registered adapter.

        Raises
        ------
        KeyError
            If adapter_name is not registered
        """
        if adapter_name not in self._adapters:
            available = ", ".join(self.list_available())
            raise KeyError(
                f"Model adapter '{adapter_name}' not found. Available adapters: {available}"
            )

        instance = self._adapters[adapter_name](config=config)
        logger.info(f"Instantiated model adapter: {adapter_name}")
        return instance

    def list_available(self) -> list[str]:
        return list(self._adapters.keys())


# Global model registry instance
model_registry = ModelRegistry()
