"""Editing session: one channel, one store and the view state around them."""

from __future__ import annotations

from collections.abc import Callable

from loguru import logger

from ..config.settings import EditorSettings, load_settings
from .channel import Connector, SessionChannel
from .dispatcher import EditDispatcher
from .exceptions import ConnectionClosedError, PeerError
from .highlight import HighlightIndex
from .layout import LayoutRegistry, TransitionTimer, Viewport
from .models import StructuralModel
from .projection import FunctionPanel, RenderProjection, Selection, project
from .protocol import SnapshotMessage
from .store import ModelStore, StoreResult


class EditorSession:
    """Wires the watcher channel, store, dispatcher and view state together.

    Example:
        session = EditorSession(load_settings(port=5874))
        await session.open()
        session.dispatcher.dispatch(AddField(struct_ref("main", "main.go", "Server")))
        frame = session.render()
        await session.close()
    """

    def __init__(
        self,
        settings: EditorSettings | None = None,
        connector: Connector | None = None,
        on_notify: Callable[[str], None] | None = None,
        on_snapshot: Callable[[StructuralModel], None] | None = None,
    ):
        """Initialize session (does not connect).

        Args:
            settings: Editor settings; loaded from the environment if omitted
            connector: Websocket connector override
            on_notify: Called with user-facing error messages from the watcher
            on_snapshot: Called with the model after each applied snapshot
        """
        self.settings = settings or load_settings()
        self.store = ModelStore()
        self.viewport = Viewport()
        self.layout = LayoutRegistry()
        self.highlights = HighlightIndex()
        self.functions = FunctionPanel()
        self.selection = Selection()
        self.transition = TransitionTimer(self.settings.transition_window)
        self.transition.notify(self.store.model)
        self.store.subscribe(self.transition.notify)

        self.closed_error: ConnectionClosedError | None = None
        self._on_notify = on_notify
        self._on_snapshot_applied = on_snapshot

        self.channel = SessionChannel(
            self.settings.websocket_url,
            on_snapshot=self._handle_snapshot,
            on_peer_error=self._handle_peer_error,
            on_closed=self._handle_closed,
            connector=connector,
            queue_size=self.settings.send_queue_size,
        )
        self.dispatcher = EditDispatcher(
            self.store, self.channel, attach_packages=self.settings.attach_packages
        )

    @property
    def model(self) -> StructuralModel:
        return self.store.model

    async def open(self) -> None:
        await self.channel.open()

    async def close(self) -> None:
        await self.channel.close()
        self.transition.cancel()

    def clear(self) -> StoreResult:
        """Tear the model down to the loading placeholder."""
        self.layout.clear()
        self.selection = Selection()
        return self.dispatcher.clear()

    def search(self, query: str) -> None:
        self.highlights.set_query(query)

    def select_package(self, package: str) -> None:
        self.selection = Selection.of_package(package)

    def select_file(self, package: str, file: str) -> None:
        self.selection = Selection.of_file(package, file)

    def render(self) -> RenderProjection:
        return project(
            self.store.model,
            self.viewport,
            self.layout,
            self.highlights,
            transition=self.transition,
            selection=self.selection,
            panel=self.functions,
        )

    # ── Channel callbacks ───────────────────────────────────────────────

    def _handle_snapshot(self, message: SnapshotMessage) -> None:
        result = self.dispatcher.receive_snapshot(message)
        if not result.ok:
            logger.warning(f"Snapshot rejected, keeping previous model: {result.error}")
            return
        kind = "scoped" if message.scoped else "full"
        logger.debug(f"Applied {kind} snapshot ({len(result.model.packages)} packages)")
        if self._on_snapshot_applied:
            self._on_snapshot_applied(result.model)

    def _handle_peer_error(self, error: PeerError) -> None:
        if self._on_notify:
            self._on_notify(str(error))

    def _handle_closed(self, error: ConnectionClosedError | None) -> None:
        self.closed_error = error
        if error is not None:
            logger.warning("Watcher connection lost; model frozen until reconnect")
