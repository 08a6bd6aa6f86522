"""Configuration management for Lem Studio.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the LEMSTUDIO_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (LEMSTUDIO_* prefix)
2. .env file in the project root
3. Default values defined in LemStudioConfig

The API key is the one exception to the prefix rule: it is read from
``LEMSTUDIO_API_KEY``, ``GEMINI_API_KEY`` or ``API_KEY`` (first match wins),
so deployments that export the plain variable keep working.

Example .env file:
    LEMSTUDIO_API_KEY=your-gemini-key
    LEMSTUDIO_GEMINI_MODEL_ID=gemini-2.5-flash-image
    LEMSTUDIO_MAX_RETRIES=3
    LEMSTUDIO_OUTPUTS_DIR=outputs

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.

Usage Example
-------------
    from lemstudio.core.config import config

    print(config.gemini_model_id)
    print(config.outputs_dir)

Retry Settings
--------------
Rate-limited calls are retried ``max_retries`` times with a delay of
``initial_retry_delay_ms * 2**attempt`` milliseconds. With the defaults
(3 retries, 2000 ms) a fully throttled call waits 2 s, 4 s and 8 s before the
failure is reported.

See Also
--------
- lemstudio.core.retry: RetryPolicy built from these settings
- lemstudio.core.image_source: ImageLoader using the size/quality settings
"""

from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class LemStudioConfig(BaseSettings):
    """Main configuration for Lem Studio.

    Attributes
    ----------
    Model Settings:
        default_model_adapter : str
            Name of the registered model adapter used by the orchestrator
        gemini_model_id : str
            Gemini model used for renders, staging and edits
        api_key : SecretStr | None
            Gemini API key (None means no key has been provisioned)

    Retry Settings:
        max_retries : int
            Number of retries after a rate-limited call
        initial_retry_delay_ms : int
            First backoff delay; doubled on every further retry

    Image Settings:
        product_max_width : int
            Width bound for product, mood board, master shot and edit references
        scene_product_max_width : int
            Width bound for product references inside staging requests
        jpeg_quality : int
            JPEG quality used when encoding references
        fetch_timeout : float
            Timeout in seconds for remote reference downloads
        aspect_ratio : str | None
            Optional output aspect ratio hint sent with every request
        image_size : str | None
            Optional output resolution hint sent with every request

    Paths:
        outputs_dir : Path
            Directory where generated images are written
        save_metadata : bool
            Write a .json metadata file next to every generated image

    Examples
    --------
        >>> custom_config = LemStudioConfig(
        ...     max_retries=2,
        ...     initial_retry_delay_ms=500,
        ...     outputs_dir="renders",
        ... )
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="LEMSTUDIO_",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Model settings
    default_model_adapter: str = Field(
        default="Gemini-Flash-Image",
        description="Registered model adapter used by the orchestrator",
    )
    gemini_model_id: str = Field(
        default="gemini-2.5-flash-image",
        description="Gemini model used for image generation and editing",
    )
    api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("LEMSTUDIO_API_KEY", "GEMINI_API_KEY", "api_key"),
        description="Gemini API key",
    )

    # Retry settings
    max_retries: int = Field(
        default=3,
        description="Retries after a rate-limited call",
        ge=0,
        le=10,
    )
    initial_retry_delay_ms: int = Field(
        default=2000,
        description="First backoff delay in milliseconds (doubles per retry)",
        ge=0,
    )

    # Reference image settings
    product_max_width: int = Field(default=1024, ge=64, le=4096)
    scene_product_max_width: int = Field(default=800, ge=64, le=4096)
    jpeg_quality: int = Field(default=80, ge=1, le=95)
    fetch_timeout: float = Field(
        default=30.0,
        description="Timeout in seconds for downloading remote reference images",
        gt=0,
    )

    # Output shape hints
    aspect_ratio: Literal["1:1", "3:4", "4:3", "9:16", "16:9", "21:9"] | None = Field(
        default=None,
        description="Aspect ratio hint for generated images (None lets the model decide)",
    )
    image_size: Literal["1K", "2K", "4K"] | None = Field(
        default=None,
        description="Resolution hint for generated images (None lets the model decide)",
    )

    # Paths
    outputs_dir: Path = Field(
        default=Path("outputs"),
        description="Directory to save generated images",
    )
    save_metadata: bool = Field(
        default=True,
        description="Write a .json metadata file next to every generated image",
    )

    def __init__(self, **kwargs):
        """Initialize configuration and create the outputs directory.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)

        self.outputs_dir.mkdir(parents=True, exist_ok=True)


# Global configuration instance
# Loads values from environment variables (LEMSTUDIO_* prefix) and .env file.
config = LemStudioConfig()
