"""Shared pytest fixtures for Lem Studio tests."""

import inspect
import io
import shutil
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Generator

import pytest
from PIL import Image

from lemstudio.core.config import LemStudioConfig
from lemstudio.core.credentials import CredentialProvider
from lemstudio.core.model_adapters import (
    GenerationRequest,
    GenerationResult,
    ImageModelBase,
    ImagePayload,
)
from lemstudio.core.orchestrator import RenderOrchestrator
from lemstudio.core.retry import RetryPolicy
from lemstudio.core.store import WorkItemStore

API_KEY_ENV_VARS = ("LEMSTUDIO_API_KEY", "GEMINI_API_KEY", "API_KEY")


def make_png_bytes(width: int = 64, height: int = 48, color=(200, 120, 40), mode="RGB") -> bytes:
    """Encode a solid-color test image as PNG."""
    buffer = io.BytesIO()
    Image.new(mode, (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


# ============================================================================
# Test doubles
# ============================================================================


class FakeImageModel(ImageModelBase):
    """In-memory model adapter that records requests.

    Results are taken from ``script`` in order; once the script is empty every
    call succeeds with a small PNG.  A script entry may also be a callable
    (plain or async) receiving the request and returning a result.
    """

    name = "Fake-Image-Model"
    description = "Scripted model adapter for tests"

    def __init__(self, config: LemStudioConfig, script=None) -> None:
        super().__init__(config)
        self.script = list(script or [])
        self.requests: list[GenerationRequest] = []
        self.api_keys: list[str] = []

    async def generate(self, request: GenerationRequest, *, api_key: str) -> GenerationResult:
        self.requests.append(request)
        self.api_keys.append(api_key)
        if self.script:
            entry = self.script.pop(0)
            if not callable(entry):
                return entry
            result = entry(request)
            return await result if inspect.isawaitable(result) else result
        return GenerationResult.success(
            ImagePayload(make_png_bytes(16, 16), mime_type="image/png")
        )


class FakeLoader:
    """Reference loader that skips decoding and records what was loaded."""

    def __init__(self) -> None:
        self.loaded: list[tuple[str, int]] = []

    async def load(self, source: str, max_width: int) -> ImagePayload:
        self.loaded.append((source, max_width))
        return ImagePayload(data=source.encode(), mime_type="image/jpeg", source=source)


class RecordingSleep:
    """Awaitable sleep replacement that records delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def clean_env(monkeypatch) -> None:
    """Remove API key variables so tests never see a developer's real key."""
    for name in API_KEY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def test_config(temp_dir: Path, clean_env) -> LemStudioConfig:
    """Create a test configuration writing into a temporary directory.

    Returns:
        LemStudioConfig instance for testing
    """
    return LemStudioConfig(
        api_key="test-key",
        outputs_dir=str(temp_dir / "outputs"),
        _env_file=None,
    )


@pytest.fixture
def sample_image_path(temp_dir: Path) -> Path:
    """Write a 2048x1024 PNG product photo to disk."""
    path = temp_dir / "product.png"
    path.write_bytes(make_png_bytes(2048, 1024))
    return path


@pytest.fixture
def store() -> WorkItemStore:
    """Store with three confirmed products (none selected)."""
    store = WorkItemStore(name="Test Collection")
    store.add_products(["sofa.jpg", "lamp.jpg", "table.jpg"])
    store.confirm_inputs()
    return store


@pytest.fixture
def fake_model(test_config: LemStudioConfig) -> FakeImageModel:
    return FakeImageModel(test_config)


@pytest.fixture
def fake_loader() -> FakeLoader:
    return FakeLoader()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def make_orchestrator(
    test_config: LemStudioConfig,
    fake_model: FakeImageModel,
    fake_loader: FakeLoader,
    recording_sleep: RecordingSleep,
) -> Callable[..., RenderOrchestrator]:
    """Factory building an orchestrator wired to the test doubles.

    Keyword arguments override the defaults (``credentials``, ``on_progress``).
    """

    def factory(store: WorkItemStore, **overrides) -> RenderOrchestrator:
        credentials = overrides.pop("credentials", None) or CredentialProvider("test-key")
        return RenderOrchestrator(
            store,
            fake_model,
            credentials,
            loader=fake_loader,
            retry_policy=RetryPolicy.from_config(test_config, sleep=recording_sleep),
            config=test_config,
            **overrides,
        )

    return factory


@pytest.fixture
def png_bytes() -> Callable[..., bytes]:
    """Factory encoding solid-color PNG images."""
    return make_png_bytes
