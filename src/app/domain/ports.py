# src/app/domain/ports.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from app.domain.models import EntityType, SearchQuery, SearchResultPage


class CacheBackendPort(ABC):
    """
    Abstrakte Schnittstelle für Key-Value-Cache-Backends.
    Implementierungen dürfen bei Verbindungs- oder Serialisierungsproblemen
    beliebige Exceptions werfen: die Retry-Schicht fängt sie ab.
    """

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        """Liefert den gespeicherten Wert oder None, falls nicht vorhanden/abgelaufen."""
        ...

    @abstractmethod
    async def set(self, key: str, value: bytes, ttl_seconds: int) -> None:
        """Ersetzt den Wert unter `key` vollständig."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> None: ...

    async def close(self) -> None:
        """Gibt Verbindungen frei. Standardmäßig nichts zu tun."""
        return None


class SearchStrategyPort(ABC):
    """
    Suchstrategie für genau einen Entitätstyp.
    Die Core-Domain kennt ausschließlich dieses Interface.
    """

    entity_type: EntityType

    @abstractmethod
    async def search(self, query: SearchQuery) -> SearchResultPage[Any]:
        """
        Führt Count und Seitenabfrage gegen denselben Filter aus.

        Raises:
            Fehler des Primärspeichers werden unverändert propagiert.
        """
        ...


# ---------------------------------------------------------------------------
# Custom Domain Exceptions
# ---------------------------------------------------------------------------


class SearchTimeoutError(Exception):
    def __init__(self, entity_type: EntityType, timeout_seconds: float):
        super().__init__(
            f"Search branch '{entity_type}' did not complete within {timeout_seconds}s"
        )
        self.entity_type = entity_type
        self.timeout_seconds = timeout_seconds
