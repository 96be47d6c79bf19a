"""Integration record store.

The dispatcher only needs a handful of record operations: query connected
integrations for a principal, fetch one by id, patch one by id, append an
audit row and read audit rows back. ``IntegrationStore`` is that contract;
``InMemoryIntegrationStore`` implements it for local runs and tests.

Usage:
    from infrastructure.notifications.store import InMemoryIntegrationStore

    store = InMemoryIntegrationStore()
    store.add_integration(integration)
    connected = store.query_integrations(
        organisation_id="org-1", status=IntegrationStatus.CONNECTED
    )
"""

import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from infrastructure.logging import get_module_logger
from infrastructure.notifications.errors import StoreError
from infrastructure.notifications.models import (
    Integration,
    IntegrationLogEntry,
    IntegrationStatus,
)

logger = get_module_logger()

# Fields the dispatcher is allowed to patch on an integration record
UPDATABLE_FIELDS = frozenset(
    {"status", "error_message", "last_used_at", "connected_at", "credentials"}
)


class IntegrationStore(ABC):
    """Record store contract used by the dispatcher.

    Implementations raise ``StoreError`` (or any exception) on failure; the
    dispatcher decides which failures are swallowed.
    """

    @abstractmethod
    def query_integrations(
        self,
        *,
        user_id: Optional[str] = None,
        organisation_id: Optional[str] = None,
        status: Optional[IntegrationStatus] = None,
    ) -> List[Integration]:
        """Return integrations owned by the principal, optionally by status.

        When ``organisation_id`` is given the query is scoped to it and
        ``user_id`` is ignored.
        """

    @abstractmethod
    def get_integration(self, integration_id: str) -> Optional[Integration]:
        """Return one integration, or None when it does not exist."""

    @abstractmethod
    def update_integration(self, integration_id: str, changes: Dict[str, Any]) -> None:
        """Patch the integration identified by primary key."""

    @abstractmethod
    def insert_log(self, entry: IntegrationLogEntry) -> None:
        """Append one audit row."""

    @abstractmethod
    def query_logs(
        self, integration_id: str, limit: Optional[int] = None
    ) -> List[IntegrationLogEntry]:
        """Return audit rows for an integration, newest first."""


class InMemoryIntegrationStore(IntegrationStore):
    """Thread-safe in-process store.

    Dispatches run on worker threads, so every access goes through a lock.
    Records are copied on the way in and out; callers never share state
    with the store.
    """

    def __init__(
        self,
        integrations: Optional[List[Integration]] = None,
        logs: Optional[List[IntegrationLogEntry]] = None,
    ):
        self._lock = threading.Lock()
        self._integrations: Dict[str, Integration] = {}
        self._logs: List[IntegrationLogEntry] = list(logs or [])
        for integration in integrations or []:
            self._integrations[integration.id] = integration.model_copy(deep=True)

    def add_integration(self, integration: Integration) -> None:
        with self._lock:
            self._integrations[integration.id] = integration.model_copy(deep=True)

    def remove_integration(self, integration_id: str) -> None:
        with self._lock:
            self._integrations.pop(integration_id, None)

    def query_integrations(
        self,
        *,
        user_id: Optional[str] = None,
        organisation_id: Optional[str] = None,
        status: Optional[IntegrationStatus] = None,
    ) -> List[Integration]:
        with self._lock:
            records = list(self._integrations.values())

        if organisation_id:
            records = [r for r in records if r.organisation_id == organisation_id]
        elif user_id:
            records = [r for r in records if r.user_id == user_id]
        else:
            return []

        if status is not None:
            records = [r for r in records if r.status == status]

        return [r.model_copy(deep=True) for r in records]

    def get_integration(self, integration_id: str) -> Optional[Integration]:
        with self._lock:
            record = self._integrations.get(integration_id)
            return record.model_copy(deep=True) if record else None

    def update_integration(self, integration_id: str, changes: Dict[str, Any]) -> None:
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise StoreError(
                f"Cannot update fields: {sorted(unknown)}", integration_id
            )

        with self._lock:
            record = self._integrations.get(integration_id)
            if record is None:
                raise StoreError("Integration not found", integration_id)
            self._integrations[integration_id] = record.model_copy(update=changes)

        logger.debug(
            "integration_record_updated",
            integration_id=integration_id,
            fields=sorted(changes),
        )

    def insert_log(self, entry: IntegrationLogEntry) -> None:
        with self._lock:
            self._logs.append(entry.model_copy())

    def query_logs(
        self, integration_id: str, limit: Optional[int] = None
    ) -> List[IntegrationLogEntry]:
        with self._lock:
            rows = [row for row in self._logs if row.integration_id == integration_id]

        # Stable sort keeps insertion order for identical timestamps reversed
        rows = list(reversed(rows))
        rows.sort(key=lambda row: row.created_at, reverse=True)
        if limit is not None:
            rows = rows[:limit]
        return rows
