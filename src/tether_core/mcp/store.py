"""Connection store for persisting connection metadata across restarts."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from tether_core.errors import create_error
from tether_core.types import ConnectionStatus

from .types import Connection

logger = logging.getLogger(__name__)


def _restore(data: dict[str, Any]) -> Connection:
    """Rebuild a record as it must look after a restart."""
    connection = Connection.from_dict(data)
    # Processes never survive a restart
    connection.status = ConnectionStatus.DISCONNECTED
    connection.pid = None
    return connection


def serialize_connections(connections: dict[str, Connection]) -> dict[str, dict[str, Any]]:
    """Persistable form of the connection map (``pid`` stripped)."""
    return {cid: conn.to_dict(include_runtime=False) for cid, conn in connections.items()}


class ConnectionStore(ABC):
    """Abstract base class for connection metadata storage."""

    @abstractmethod
    async def load(self) -> dict[str, Connection]:
        """Load all records, each forced to ``disconnected`` without a pid."""

    @abstractmethod
    async def save(self, connections: dict[str, Connection]) -> None:
        """Replace the stored records with ``connections``."""


class InMemoryConnectionStore(ConnectionStore):
    """Connection store kept in memory (tests, ephemeral runs)."""

    def __init__(self) -> None:
        self._data: dict[str, dict[str, Any]] = {}

    @property
    def data(self) -> dict[str, dict[str, Any]]:
        """Last saved payload."""
        return self._data

    async def load(self) -> dict[str, Connection]:
        return {cid: _restore(record) for cid, record in self._data.items()}

    async def save(self, connections: dict[str, Connection]) -> None:
        # JSON round-trip so later mutations of the records are not visible
        self._data = json.loads(json.dumps(serialize_connections(connections)))


class JSONFileConnectionStore(ConnectionStore):
    """Connection store backed by one JSON file: ``{id: record}``."""

    def __init__(self, path: str | Path):
        """Initialize store.

        Args:
            path: JSON file location (parent directories are created on save)
        """
        self.path = Path(path)

    async def load(self) -> dict[str, Connection]:
        """Load records; a missing or unreadable file yields no records."""
        raw = await asyncio.to_thread(self._read)
        if raw is None:
            return {}

        connections: dict[str, Connection] = {}
        for cid, record in raw.items():
            try:
                connections[cid] = _restore(record)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping invalid saved connection '{cid}': {e}")

        logger.info(f"MCP: Loaded {len(connections)} saved connections")
        return connections

    async def save(self, connections: dict[str, Connection]) -> None:
        """Write all records.

        Raises:
            TetherError(STORE_FAILED): If the file cannot be written
        """
        payload = serialize_connections(connections)
        try:
            await asyncio.to_thread(self._write, payload)
        except OSError as e:
            raise create_error("STORE_FAILED", path=str(self.path), detail=str(e)) from e

    def _read(self) -> dict[str, Any] | None:
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read saved connections from {self.path}: {e}")
            return None

        if not isinstance(data, dict):
            logger.warning(f"Ignoring saved connections in {self.path}: not a JSON object")
            return None
        return data

    def _write(self, payload: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
        os.replace(tmp_path, self.path)
