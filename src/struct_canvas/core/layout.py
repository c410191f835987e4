"""Viewport, layout registry and edge geometry for the diagram.

Node positions are not computed here. Each rendered struct publishes its
measured geometry (in diagram coordinates) to a ``LayoutRegistry``; edge
anchors are then the node centers composed with the current viewport
transform (pan offset, plus zoom in mini-map mode).

Edges whose endpoints do not resolve are skipped for the current pass:

- dangling: the NodeRef no longer names a struct in the model
- unmeasured: the struct exists but has not published geometry yet

Both are expected to heal on a later pass (after a snapshot or layout),
so neither fails the render.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Callable
from dataclasses import dataclass, field

from loguru import logger

from ..config.defaults import ARROW_MARKER_ID, DEFAULT_TRANSITION_WINDOW, MINI_MAP_SCALE
from .exceptions import GeometryMiss, NodeReferenceError
from .models import Edge, NodeRef, StructuralModel
from .store import find_struct

_INVALID_SELECTOR_CHARS = re.compile(r"[^\w\s-]")

NodeKey = tuple[str, str, str | None]


def _fmt(value: float) -> str:
    # 2 decimals at most, no trailing zeros: 50.0 -> "50", 12.5 -> "12.5"
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


@dataclass(frozen=True)
class Point:
    x: float
    y: float

    def __sub__(self, other: Point) -> Point:
        return Point(self.x - other.x, self.y - other.y)

    def __add__(self, other: Point) -> Point:
        return Point(self.x + other.x, self.y + other.y)


@dataclass(frozen=True)
class NodeGeometry:
    """Measured bounding box of a rendered node, in diagram coordinates."""

    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2, self.y + self.height / 2)


def struct_selector(package: str, file: str, struct: str) -> str:
    """Presentation-safe identifier for a struct node.

    Every character outside ``[\\w\\s-]`` becomes ``-``.

    Example:
        >>> struct_selector("main", "main.go", "Server")
        'main-main-go-Server'
    """
    return _INVALID_SELECTOR_CHARS.sub("-", f"{package}-{file}-{struct}")


# ── Viewport ────────────────────────────────────────────────────────────


@dataclass
class Viewport:
    """Pan/drag state of the diagram.

    A drag anchors at ``pointer - pan`` on pointer down; each move while
    dragging sets ``pan = pointer - anchor``; release or leave ends it.
    """

    pan: Point = field(default_factory=lambda: Point(0.0, 0.0))
    dragging: bool = False
    drag_anchor: Point | None = None
    mini_map: bool = False

    @property
    def scale(self) -> float:
        return MINI_MAP_SCALE if self.mini_map else 1.0

    def pointer_down(self, x: float, y: float) -> None:
        self.dragging = True
        self.drag_anchor = Point(x, y) - self.pan

    def pointer_move(self, x: float, y: float) -> None:
        if not self.dragging or self.drag_anchor is None:
            return
        self.pan = Point(x, y) - self.drag_anchor

    def pointer_up(self) -> None:
        self.dragging = False
        self.drag_anchor = None

    def pointer_leave(self) -> None:
        self.pointer_up()

    @property
    def transform(self) -> str:
        """CSS transform applied to the diagram container."""
        parts = [f"translate({_fmt(self.pan.x)}px, {_fmt(self.pan.y)}px)"]
        if self.mini_map:
            parts.append(f"scale({MINI_MAP_SCALE:g})")
        return " ".join(parts)

    def to_screen(self, point: Point) -> Point:
        """Map a diagram-space point into the current viewport."""
        return Point(point.x * self.scale + self.pan.x, point.y * self.scale + self.pan.y)


class TransitionTimer:
    """One-shot "transitioning" flag raised whenever the model changes.

    A change restarts a single debounced timer on the running event loop;
    the flag clears when the window elapses without further changes.
    """

    def __init__(
        self,
        window: float = DEFAULT_TRANSITION_WINDOW,
        on_change: Callable[[bool], None] | None = None,
    ):
        self.window = window
        self._on_change = on_change
        self._transitioning = False
        self._last_model: StructuralModel | None = None
        self._handle: asyncio.TimerHandle | None = None

    @property
    def transitioning(self) -> bool:
        return self._transitioning

    def notify(self, model: StructuralModel) -> bool:
        """Record the current model; start the transition if it changed.

        Returns:
            True if the model reference changed
        """
        if model is self._last_model:
            return False
        first = self._last_model is None
        self._last_model = model
        if first:
            return False

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Synchronous edits (no loop) have nothing to animate.
            logger.debug("Model changed outside an event loop; no transition")
            return True

        if self._handle is not None:
            self._handle.cancel()
        self._set(True)
        self._handle = loop.call_later(self.window, self._expire)
        return True

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._set(False)

    def _expire(self) -> None:
        self._handle = None
        self._set(False)

    def _set(self, value: bool) -> None:
        if value != self._transitioning:
            self._transitioning = value
            if self._on_change:
                self._on_change(value)


# ── Layout registry ─────────────────────────────────────────────────────


class LayoutRegistry:
    """Measured geometry of rendered struct nodes keyed by NodeRef identity."""

    def __init__(self) -> None:
        self._nodes: dict[NodeKey, NodeGeometry] = {}

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, ref: NodeRef) -> bool:
        return ref.key in self._nodes

    def publish(self, ref: NodeRef, geometry: NodeGeometry) -> None:
        self._nodes[ref.key] = geometry

    def forget(self, ref: NodeRef) -> None:
        self._nodes.pop(ref.key, None)

    def clear(self) -> None:
        self._nodes.clear()

    def get(self, ref: NodeRef) -> NodeGeometry | None:
        return self._nodes.get(ref.key)

    def center(self, ref: NodeRef) -> Point:
        """Center of ``ref``'s node in diagram coordinates.

        Raises:
            GeometryMiss: If the node has not been measured
        """
        geometry = self._nodes.get(ref.key)
        if geometry is None:
            raise GeometryMiss(f"No geometry published for {ref}", {"ref": str(ref)})
        return geometry.center


# ── Edges ───────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class EdgePath:
    """Drawable edge: cubic C-curve from source center to target center."""

    edge: Edge
    start: Point
    end: Point
    marker: str = ARROW_MARKER_ID

    @property
    def d(self) -> str:
        """SVG path data; control points share the horizontal midpoint."""
        mid_x = (self.start.x + self.end.x) / 2
        return (
            f"M{_fmt(self.start.x)},{_fmt(self.start.y)} "
            f"C{_fmt(mid_x)},{_fmt(self.start.y)} {_fmt(mid_x)},{_fmt(self.end.y)} "
            f"{_fmt(self.end.x)},{_fmt(self.end.y)}"
        )


@dataclass
class EdgeLayout:
    """Result of one edge resolution pass."""

    paths: list[EdgePath] = field(default_factory=list)
    dangling: int = 0
    unmeasured: int = 0

    @property
    def skipped(self) -> int:
        return self.dangling + self.unmeasured


def _endpoint_resolves(ref: NodeRef | None, model: StructuralModel) -> bool:
    if ref is None or not (ref.package_name and ref.file_name and ref.struct_name):
        return False
    return find_struct(model, ref) is not None


def is_dangling(edge: Edge, model: StructuralModel) -> bool:
    """True if either endpoint of ``edge`` no longer names a struct in ``model``."""
    return not (_endpoint_resolves(edge.from_, model) and _endpoint_resolves(edge.to, model))


def resolve_anchor(
    ref: NodeRef | None,
    model: StructuralModel,
    registry: LayoutRegistry,
    viewport: Viewport,
) -> Point:
    """On-screen anchor (node center) of an edge endpoint.

    Raises:
        NodeReferenceError: If the endpoint is missing or names no struct
        GeometryMiss: If the struct has not been measured yet
    """
    if not _endpoint_resolves(ref, model):
        raise NodeReferenceError(f"Edge endpoint {ref} does not resolve", {"ref": str(ref)})
    return viewport.to_screen(registry.center(ref))


def resolve_edges(
    model: StructuralModel, registry: LayoutRegistry, viewport: Viewport
) -> EdgeLayout:
    """Resolve every model edge to a drawable path for the current viewport."""
    layout = EdgeLayout()
    for edge in model.edges:
        try:
            start = resolve_anchor(edge.from_, model, registry, viewport)
            end = resolve_anchor(edge.to, model, registry, viewport)
        except NodeReferenceError as e:
            logger.debug(f"Skipping dangling edge: {e}")
            layout.dangling += 1
            continue
        except GeometryMiss as e:
            logger.debug(f"Skipping unmeasured edge: {e}")
            layout.unmeasured += 1
            continue
        layout.paths.append(EdgePath(edge, start, end))
    return layout
