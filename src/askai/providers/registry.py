from __future__ import annotations

from typing import Dict, List, Optional

import structlog

from .base import ChatProvider, ProviderFactory
from ..models.messages import ProviderCredentials


logger = structlog.get_logger(__name__)


class ProviderRegistry:
    """Provider name -> factory table, filled once at start-up and then only read."""

    def __init__(self) -> None:
        self._factories: Dict[str, ProviderFactory] = {}

    def register(self, name: str, factory: ProviderFactory) -> None:
        if name in self._factories:
            logger.warning("Provider already registered, overwriting", provider=name)
        self._factories[name] = factory

    def resolve(self, name: str, credentials: Optional[ProviderCredentials] = None) -> Optional[ChatProvider]:
        factory = self._factories.get(name)
        if factory is None:
            logger.error("No provider registered", provider=name)
            return None
        try:
            return factory(credentials or ProviderCredentials())
        except Exception:
            logger.exception("Failed to construct provider", provider=name)
            return None

    def names(self) -> List[str]:
        return sorted(self._factories)

    def __contains__(self, name: object) -> bool:
        return name in self._factories

    def __len__(self) -> int:
        return len(self._factories)
