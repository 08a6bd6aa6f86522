"""API credential resolution.

The orchestrator resolves the credential once per run, before any scene is
created or any request is sent.  A missing key is a blocking, user-actionable
condition and is never silently skipped.

A remote "entity not found" failure means the selected key belongs to the
wrong project, so :meth:`CredentialProvider.invalidate` drops the selection
and the user has to pick a key again with :meth:`CredentialProvider.select`.
"""

import logging

from .config import LemStudioConfig
from .errors import MissingCredentialError

logger = logging.getLogger(__name__)


class CredentialProvider:
    """Holds the currently selected API key."""

    def __init__(self, api_key: str | None = None) -> None:
        self._api_key = api_key or None

    @classmethod
    def from_config(cls, config: LemStudioConfig) -> "CredentialProvider":
        """Create a provider seeded with the configured key (if any)."""
        secret = config.api_key
        return cls(secret.get_secret_value() if secret is not None else None)

    @property
    def has_key(self) -> bool:
        return self._api_key is not None

    def resolve(self) -> str:
        """Return the selected API key.

        Raises:
            MissingCredentialError: If no key is selected
        """
        if self._api_key is None:
            raise MissingCredentialError("API key is not configured")
        return self._api_key

    def select(self, api_key: str) -> None:
        """Select a new API key."""
        if not api_key or not api_key.strip():
            raise ValueError("api_key must not be empty")
        self._api_key = api_key.strip()
        logger.info("API key selected")

    def invalidate(self) -> None:
        """Forget the selected key so the user is prompted to choose again."""
        if self._api_key is not None:
            logger.warning("Invalidating API key selection after entity-not-found failure")
        self._api_key = None
