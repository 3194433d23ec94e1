"""
Storage adapter cache.

Avoids creating redundant SDK clients when the same provider + config
combination is requested multiple times via the storage factory.
"""

from __future__ import annotations

import hashlib
import json
import threading
from typing import Any, Callable


class ClientCache:
    """Thread-safe, in-process cache for adapter instances keyed by provider + config hash."""

    _instance: ClientCache | None = None
    _cache: dict[str, Any]
    _lock: threading.Lock

    def __new__(cls) -> ClientCache:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._cache = {}
            cls._instance._lock = threading.Lock()
        return cls._instance

    @staticmethod
    def _make_key(cloud_provider: str, config: dict) -> str:
        """Produce a deterministic cache key from provider and config."""
        # Sort keys so dict ordering doesn't affect the hash. Objects such as a
        # boto3 session fall back to str(), which includes their identity.
        serialised = json.dumps(
            {"provider": cloud_provider, "config": config},
            sort_keys=True,
            default=str,
        )
        return hashlib.sha256(serialised.encode()).hexdigest()

    def get_or_create(
        self,
        cloud_provider: str,
        config: dict,
        factory: Callable[[], Any],
    ) -> Any:
        """Return a cached adapter or create one via *factory*.

        Args:
            cloud_provider: Cloud provider name (e.g. 'azure').
            config: Validated configuration as a dict (``model_dump()``).
            factory: Zero-argument callable that builds a new adapter.

        Returns:
            The cached (or newly-created) adapter.
        """
        key = self._make_key(cloud_provider, config)
        with self._lock:
            if key not in self._cache:
                self._cache[key] = factory()
            return self._cache[key]

    def clear(self) -> None:
        """Flush all cached adapters."""
        with self._lock:
            self._cache.clear()
