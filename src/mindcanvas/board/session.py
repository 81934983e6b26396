"""The explicit session object that owns the one open board.

A BoardSession replaces a process-global store: it holds the active
GraphDocument plus the collaborators wired to it (sync coordinator,
persistence gateway) and exposes the board-level operations.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from mindcanvas.board.document import GraphDocument
from mindcanvas.board.history import HistoryManager
from mindcanvas.board.interchange import BoardRecord, export_board, parse_board
from mindcanvas.board.persistence import (
    LocalBoardCache,
    PersistenceGateway,
    RemoteBoardStore,
    SaveResult,
)
from mindcanvas.config.schema import Config
from mindcanvas.context.serializer import ContextSerializer, NodeContext
from mindcanvas.errors import BoardError, PersistenceFailure
from mindcanvas.layout.engine import LayoutDirection, LayoutEngine, LayoutResult, apply_layout
from mindcanvas.layout.placement import PlacementSolver
from mindcanvas.logging import get_logger
from mindcanvas.suggestions.materializer import MaterializationResult, SuggestionMaterializer
from mindcanvas.sync.coordinator import RenderListener, SyncCoordinator
from mindcanvas.sync.debounce import Clock, monotonic_ms

log = get_logger("session")

ConfirmDiscard = Callable[[GraphDocument], "bool | Awaitable[bool]"]


class NoBoardOpen(BoardError):
    """An operation needs an open board but none is open."""


class BoardSession:
    """Owns the active board and its collaborators.

    Args:
        config: Loaded configuration; defaults apply when omitted.
        cache: Local board cache. Defaults to ``persistence.cache_dir`` or
            ``.mc`` under the working directory.
        remote: Remote store. Built from ``persistence.api_base`` when unset.
        clock: Millisecond clock shared by the timing collaborators.
        on_render: Receives render patches from the sync coordinator.
    """

    def __init__(
        self,
        *,
        config: Config | None = None,
        cache: LocalBoardCache | None = None,
        remote: RemoteBoardStore | None = None,
        clock: Clock = monotonic_ms,
        on_render: RenderListener | None = None,
    ) -> None:
        self.config = config or Config()
        persistence = self.config.persistence
        self.cache = cache or LocalBoardCache(Path(persistence.cache_dir or ".mc").expanduser())
        if remote is None and persistence.api_base:
            remote = RemoteBoardStore(persistence.api_base, timeout=persistence.timeout)
        self.remote = remote
        self._clock = clock
        self._on_render = on_render

        self.document: GraphDocument | None = None
        self.sync: SyncCoordinator | None = None
        self.gateway: PersistenceGateway | None = None
        self.layout_engine = LayoutEngine(self.config.layout)
        self.placement = PlacementSolver(self.config.placement)

    # -- lifecycle -----------------------------------------------------------

    def require_document(self) -> GraphDocument:
        if self.document is None:
            raise NoBoardOpen("No board is open")
        return self.document

    def _new_document(self, board_id: str) -> GraphDocument:
        return GraphDocument.default(board_id, history=HistoryManager(max_depth=self.config.history.max_depth))

    def _attach(self, document: GraphDocument) -> None:
        self._detach()
        self.document = document
        self.sync = SyncCoordinator(document, config=self.config.sync, clock=self._clock, on_render=self._on_render)
        self.gateway = PersistenceGateway(
            document,
            self.cache,
            self.remote,
            debounce_ms=self.config.persistence.autosave_debounce_ms,
            clock=self._clock,
        )

    def _detach(self) -> None:
        if self.sync is not None:
            self.sync.close()
        if self.gateway is not None:
            self.gateway.close()
        self.sync = None
        self.gateway = None

    def close(self) -> None:
        self._detach()
        self.document = None

    async def open_board(self, board_id: str, confirm_discard: ConfirmDiscard | None = None) -> bool:
        """Switch to ``board_id``.

        When the current board has unsaved changes, ``confirm_discard`` is
        asked first, also when ``board_id`` is the board already open, since
        reopening reloads it from cache or remote. Declining (or giving no callback) keeps the current
        board open and returns False.

        Loads the local cache first, then lets the remote copy supersede it.
        A board found in neither place starts as the default seed board.
        """
        current = self.document
        if current is not None and current.is_dirty:
            allowed = False
            if confirm_discard is not None:
                answer = confirm_discard(current)
                allowed = bool(await answer) if inspect.isawaitable(answer) else bool(answer)
            if not allowed:
                log.info("Kept board %s open, switch to %s declined", current.board_id, board_id)
                return False

        document = self._new_document(board_id)
        cached = self.cache.read(board_id)
        if cached is not None:
            self._load_record(document, board_id, cached)
        self._attach(document)

        record = await self._fetch_remote(board_id)
        if record is not None:
            if document.is_dirty:
                log.warning("Board %s changed while loading, keeping local copy", board_id)
            else:
                self._load_record(document, board_id, record)
                self._cache_quietly(document)
        elif cached is None:
            log.info("Board %s not found, starting a new board", board_id)

        log.info("Opened board %s (%d nodes)", board_id, len(document))
        return True

    async def _fetch_remote(self, board_id: str) -> BoardRecord | None:
        if self.remote is None:
            return None
        try:
            return await self.remote.fetch(board_id)
        except PersistenceFailure as e:
            log.warning("Could not fetch board %s: %s", board_id, e)
            return None

    def _load_record(self, document: GraphDocument, board_id: str, record: BoardRecord) -> None:
        name = record.name or document.board_name
        document.set_board(board_id, name, record.nodes, record.edges)

    def _cache_quietly(self, document: GraphDocument) -> None:
        try:
            self.cache.write(document.board_id, export_board(document))
        except PersistenceFailure as e:
            log.warning("Could not cache board %s: %s", document.board_id, e)

    async def save(self) -> SaveResult:
        if self.gateway is None:
            raise NoBoardOpen("No board is open")
        return await self.gateway.save()

    def tick(self, now: float | None = None) -> None:
        """Advance sync and autosave timers."""
        if self.sync is not None:
            self.sync.tick(now)
        if self.gateway is not None:
            self.gateway.tick(now)

    # -- import / export -----------------------------------------------------

    def export_board(self) -> dict[str, Any]:
        return export_board(self.require_document())

    def import_board(self, payload: Any) -> BoardRecord:
        """Replace the open board's contents with an imported file.

        The current board id is kept and the name falls back to the current
        name. The result is unsaved.

        Raises:
            ValidationError: The payload is malformed; the board is unchanged.
        """
        document = self.require_document()
        record = parse_board(payload)
        name = record.name or document.board_name
        document.set_board(document.board_id, name, record.nodes, record.edges)
        document.update_board_name(name)
        log.info("Imported %d node(s), %d edge(s)", len(record.nodes), len(record.edges))
        return record

    # -- board operations ----------------------------------------------------

    def apply_layout(self, direction: LayoutDirection | str = LayoutDirection.AUTO) -> LayoutResult:
        return apply_layout(self.require_document(), direction, engine=self.layout_engine)

    def context_for(self, node_id: str) -> NodeContext:
        return ContextSerializer(self.require_document()).serialize(node_id)

    def materialize_suggestions(self, node_id: str, suggestions: Any) -> MaterializationResult:
        materializer = SuggestionMaterializer(
            self.require_document(),
            config=self.config.suggestions,
            layout_config=self.config.layout,
            placement=self.placement,
        )
        return materializer.materialize(node_id, suggestions)
