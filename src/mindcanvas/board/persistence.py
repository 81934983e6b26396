"""Board persistence: local YAML cache, remote HTTP store and the save gateway.

The local cache is written first and read first. A remote write that fails
leaves the document dirty and is reported as a warning, never raised into
the caller's mutation path.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx
import yaml

from mindcanvas.board.document import DocumentChange, GraphDocument
from mindcanvas.board.interchange import BoardRecord, export_board, parse_board
from mindcanvas.errors import PersistenceFailure, ValidationError
from mindcanvas.logging import get_logger
from mindcanvas.sync.debounce import Clock, Debouncer, monotonic_ms

log = get_logger("persistence")

_SAFE_ID = re.compile(r"[^A-Za-z0-9._-]")


class LocalBoardCache:
    """YAML mirror of boards under ``<root>/boards/<id>.yaml``."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    @property
    def boards_dir(self) -> Path:
        return self.root / "boards"

    def path_for(self, board_id: str) -> Path:
        return self.boards_dir / f"{_SAFE_ID.sub('_', board_id)}.yaml"

    def read(self, board_id: str) -> BoardRecord | None:
        """Load a cached board. Unreadable or invalid entries count as missing."""
        path = self.path_for(board_id)
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
            return parse_board(data)
        except (OSError, yaml.YAMLError, ValidationError) as e:
            log.warning("Ignoring cached board %s at %s: %s", board_id, path, e)
            return None

    def write(self, board_id: str, payload: dict[str, Any]) -> Path:
        """Atomically write a board payload.

        Raises:
            PersistenceFailure: The file could not be written.
        """
        path = self.path_for(board_id)
        temp_path = path.with_name(path.name + ".tmp")
        try:
            self.boards_dir.mkdir(parents=True, exist_ok=True)
            with open(temp_path, "w", encoding="utf-8") as f:
                yaml.safe_dump(payload, f, default_flow_style=False, allow_unicode=True, sort_keys=False)
            temp_path.replace(path)
        except OSError as e:
            if temp_path.is_file():
                temp_path.unlink()
            raise PersistenceFailure(board_id, "cache-write", str(e)) from e
        log.debug("Cached board %s to %s", board_id, path)
        return path

    def delete(self, board_id: str) -> bool:
        path = self.path_for(board_id)
        if path.exists():
            path.unlink()
            return True
        return False


class RemoteBoardStore:
    """HTTP board store: ``GET``/``PUT {base_url}/boards/{id}``.

    Args:
        base_url: API root, e.g. ``https://example.com/api``.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def url_for(self, board_id: str) -> str:
        return f"{self.base_url}/boards/{board_id}"

    async def _request(self, method: str, board_id: str, operation: str, json: Any = None) -> httpx.Response:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(method, self.url_for(board_id), json=json)
        except httpx.HTTPError as e:
            raise PersistenceFailure(board_id, operation, str(e)) from e
        return response

    async def fetch(self, board_id: str) -> BoardRecord | None:
        """Fetch a board. Returns None on 404.

        Raises:
            PersistenceFailure: Transport error, non-2xx status or bad payload.
        """
        response = await self._request("GET", board_id, "fetch")
        if response.status_code == 404:
            return None
        if response.is_error:
            raise PersistenceFailure(board_id, "fetch", f"HTTP {response.status_code}")
        try:
            return parse_board(response.json())
        except (ValueError, ValidationError) as e:
            raise PersistenceFailure(board_id, "fetch", f"invalid board payload: {e}") from e

    async def save(self, board_id: str, payload: dict[str, Any]) -> None:
        body = {"name": payload.get("name"), "nodes": payload["nodes"], "edges": payload["edges"]}
        response = await self._request("PUT", board_id, "save", json=body)
        if response.is_error:
            raise PersistenceFailure(board_id, "save", f"HTTP {response.status_code}")


@dataclass(frozen=True, slots=True)
class SaveResult:
    """Outcome of ``PersistenceGateway.save``."""

    cached: bool
    remote: bool | None  # None when no remote store is configured
    error: PersistenceFailure | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class PersistenceGateway:
    """Keeps the local cache in step with a document and saves on request.

    Every document change schedules a debounced cache write. ``save()``
    flushes to the cache and then to the remote store, marking the
    document saved only when every configured target succeeded.
    """

    def __init__(
        self,
        document: GraphDocument,
        cache: LocalBoardCache,
        remote: RemoteBoardStore | None = None,
        *,
        debounce_ms: float = 1000,
        clock: Clock = monotonic_ms,
    ) -> None:
        self.document = document
        self.cache = cache
        self.remote = remote
        self._autosave = Debouncer(debounce_ms, self._write_cache_quietly, clock=clock)
        self._unsubscribe = document.on_change(self._on_change)

    def close(self) -> None:
        self._autosave.cancel()
        self._unsubscribe()

    @property
    def pending(self) -> bool:
        return self._autosave.pending

    def tick(self, now: float | None = None) -> bool:
        return self._autosave.tick(now)

    def flush(self) -> bool:
        return self._autosave.flush()

    def _on_change(self, change: DocumentChange) -> None:
        if change.operation != "set_board":
            self._autosave.schedule()

    def _write_cache_quietly(self) -> None:
        try:
            self.cache.write(self.document.board_id, export_board(self.document))
        except PersistenceFailure as e:
            log.warning("Autosave failed: %s", e)

    async def save(self) -> SaveResult:
        """Write to the cache, then the remote store. Never raises."""
        self._autosave.cancel()
        board_id = self.document.board_id
        revision = self.document.revision
        payload = export_board(self.document)

        try:
            self.cache.write(board_id, payload)
        except PersistenceFailure as e:
            log.warning("Saving board %s failed: %s", board_id, e)
            return SaveResult(cached=False, remote=None, error=e)

        if self.remote is None:
            self.document.mark_saved()
            return SaveResult(cached=True, remote=None)

        try:
            await self.remote.save(board_id, payload)
        except PersistenceFailure as e:
            log.warning("Saving board %s failed, keeping unsaved changes: %s", board_id, e)
            return SaveResult(cached=True, remote=False, error=e)

        # Edits made while the request was in flight stay unsaved
        if self.document.revision == revision:
            self.document.mark_saved()
        log.info("Saved board %s", board_id)
        return SaveResult(cached=True, remote=True)
