"""Gemini image model adapter.

This module provides the adapter for Gemini image models (by default
``gemini-2.5-flash-image``).  A request is sent as a single multimodal
``generate_content`` call: reference images as inline bytes, each optionally
followed by a caption, then the instruction text.

Error Classification
--------------------
Remote failures are returned as :class:`GenerationResult` outcomes instead of
being raised:

================================================  ==============
Remote signal                                     Outcome
================================================  ==============
HTTP 429 / ``RESOURCE_EXHAUSTED``                 RATE_LIMITED
HTTP 401, 403 / "API key not valid"               UNAUTHORIZED
HTTP 404 / "Requested entity was not found"       NOT_FOUND
any other API error, transport failure            FAILED
================================================  ==============

Usage Example
-------------
    >>> adapter = GeminiImageAdapter(config)
    >>> result = await adapter.generate(request, api_key="...")
    >>> if result.ok and result.image:
    ...     Path("out.png").write_bytes(result.image.data)

See Also
--------
- ImageModelBase: Base class for all model adapters
- RetryPolicy: Retries RATE_LIMITED outcomes
"""

import logging
import time

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from lemstudio.core.config import LemStudioConfig
from lemstudio.core.model_adapters import (
    GenerationRequest,
    GenerationResult,
    ImageModelBase,
    ImagePayload,
    OutcomeKind,
    model_registry,
)

logger = logging.getLogger(__name__)


def classify_error(code: int | None, status: str | None, message: str | None) -> OutcomeKind:
    """Map a remote error signal to an outcome kind.

    Args:
        code: HTTP status code reported by the API
        status: API status string (e.g. ``RESOURCE_EXHAUSTED``)
        message: Error message text

    Returns:
        The matching :class:`OutcomeKind` (never SUCCESS)
    """
    status = (status or "").upper()
    text = (message or "").lower()

    if code == 429 or status == "RESOURCE_EXHAUSTED":
        return OutcomeKind.RATE_LIMITED
    if code in (401, 403) or status == "UNAUTHENTICATED" or "api key not valid" in text:
        return OutcomeKind.UNAUTHORIZED
    if code == 404 or "requested entity was not found" in text:
        return OutcomeKind.NOT_FOUND
    return OutcomeKind.FAILED


def extract_image(response) -> tuple[ImagePayload | None, str | None]:
    """Pull the first inline image (and any text) out of a response.

    Returns:
        Tuple of (image payload or None, concatenated text or None)
    """
    image = None
    texts: list[str] = []

    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return None, None

    content = getattr(candidates[0], "content", None)
    for part in getattr(content, "parts", None) or []:
        # Skip reasoning output
        if getattr(part, "thought", False):
            continue
        inline_data = getattr(part, "inline_data", None)
        if inline_data is not None and inline_data.data and image is None:
            image = ImagePayload(
                data=inline_data.data,
                mime_type=inline_data.mime_type or "image/png",
            )
        elif getattr(part, "text", None):
            texts.append(part.text)

    return image, "\n".join(texts) or None


class GeminiImageAdapter(ImageModelBase):
    """Model adapter for Gemini image generation and editing.

    The ``google-genai`` client is created lazily and reused while the API
    key stays the same.

    Attributes
    ----------
    name : str
        Registry name ("Gemini-Flash-Image")
    config : LemStudioConfig
        Configuration object (model id)
    """

    name = "Gemini-Flash-Image"
    description = "Reference-conditioned image generation with Gemini image models"
    version = "1.0.0"

    def __init__(self, config: LemStudioConfig) -> None:
        super().__init__(config)
        self._client: genai.Client | None = None
        self._client_key: str | None = None
        logger.info(f"Configured Gemini adapter with model: {self.model_id}")

    @property
    def model_id(self) -> str:
        return self.config.gemini_model_id

    def _client_for(self, api_key: str) -> genai.Client:
        if self._client is None or self._client_key != api_key:
            self._client = genai.Client(api_key=api_key)
            self._client_key = api_key
        return self._client

    def _build_contents(self, request: GenerationRequest) -> list:
        contents: list = []
        for part in request.parts:
            if isinstance(part, ImagePayload):
                contents.append(types.Part.from_bytes(data=part.data, mime_type=part.mime_type))
            else:
                contents.append(part)
        contents.append(request.instruction)
        return contents

    def _build_config(self, request: GenerationRequest) -> types.GenerateContentConfig:
        image_config = None
        if request.aspect_ratio or request.image_size:
            image_config = types.ImageConfig(
                aspect_ratio=request.aspect_ratio,
                image_size=request.image_size,
            )
        return types.GenerateContentConfig(
            response_modalities=["TEXT", "IMAGE"],
            image_config=image_config,
            candidate_count=1,
        )

    async def generate(self, request: GenerationRequest, *, api_key: str) -> GenerationResult:
        """Send one request to Gemini and classify the outcome.

        Args:
            request: Reference images, captions and instruction
            api_key: Gemini API key

        Returns
        -------
        GenerationResult
            SUCCESS with the first inline image (or None), or a failure outcome
        """
        client = self._client_for(api_key)
        logger.info(
            f"Calling {self.model_id} with {len(request.images)} reference image(s)"
        )

        start_time = time.time()
        try:
            response = await client.aio.models.generate_content(
                model=self.model_id,
                contents=self._build_contents(request),
                config=self._build_config(request),
            )
        except genai_errors.APIError as e:
            outcome = classify_error(e.code, e.status, e.message)
            logger.warning(f"Gemini call failed ({e.code} {e.status}): {e.message}")
            return GenerationResult.failure(outcome, str(e), status_code=e.code)
        except httpx.HTTPError as e:
            logger.warning(f"Gemini transport error: {e}")
            return GenerationResult.failure(OutcomeKind.FAILED, str(e))

        image, text = extract_image(response)
        elapsed = time.time() - start_time
        if image is None:
            logger.warning(f"Gemini returned no image after {elapsed:.2f}s")
        else:
            logger.info(f"Gemini returned {len(image.data)} bytes ({image.mime_type}) in {elapsed:.2f}s")
        return GenerationResult.success(image, text=text)


# Register adapter
model_registry.register(GeminiImageAdapter)
