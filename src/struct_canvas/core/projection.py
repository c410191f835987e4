"""Render projection consumed by the presentation layer.

``project()`` combines the current model, viewport, layout registry and
highlight index into one value describing what to draw: edge paths,
highlight markers, the container transform, selection and the global
function panel.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .highlight import HighlightIndex, HighlightSet, collect_highlights
from .layout import EdgeLayout, LayoutRegistry, TransitionTimer, Viewport, resolve_edges
from .models import GlobalFunction, StructuralModel


@dataclass(frozen=True)
class Selection:
    """Clicked package/file. Selecting a package clears the file."""

    package: str | None = None
    file: str | None = None

    @classmethod
    def of_package(cls, package: str) -> Selection:
        return cls(package=package)

    @classmethod
    def of_file(cls, package: str, file: str) -> Selection:
        return cls(package=package, file=file)

    def is_package_selected(self, package: str) -> bool:
        return self.package == package

    def is_file_selected(self, package: str, file: str) -> bool:
        return self.package == package and self.file == file


@dataclass(frozen=True)
class FunctionGroup:
    """Global functions of one package, with their model indexes."""

    package: str
    functions: tuple[tuple[int, GlobalFunction], ...]
    expanded: bool


class FunctionPanel:
    """Expand/collapse state of the global function panel (collapsed by default)."""

    def __init__(self) -> None:
        self._expanded: set[str] = set()

    def toggle(self, package: str) -> bool:
        """Flip a package group; returns the new expanded state."""
        if package in self._expanded:
            self._expanded.remove(package)
            return False
        self._expanded.add(package)
        return True

    def is_expanded(self, package: str) -> bool:
        return package in self._expanded

    def groups(self, model: StructuralModel) -> list[FunctionGroup]:
        """Group functions by package in first-seen order."""
        grouped: dict[str, list[tuple[int, GlobalFunction]]] = {}
        for i, function in enumerate(model.global_functions):
            grouped.setdefault(function.package, []).append((i, function))
        return [
            FunctionGroup(package, tuple(functions), self.is_expanded(package))
            for package, functions in grouped.items()
        ]


@dataclass(frozen=True)
class RenderProjection:
    model: StructuralModel
    loading: bool
    transform: str
    dragging: bool
    transitioning: bool
    edges: EdgeLayout
    highlights: HighlightSet
    selection: Selection = Selection()
    function_groups: list[FunctionGroup] = field(default_factory=list)


def project(
    model: StructuralModel,
    viewport: Viewport,
    registry: LayoutRegistry,
    index: HighlightIndex,
    transition: TransitionTimer | None = None,
    selection: Selection | None = None,
    panel: FunctionPanel | None = None,
) -> RenderProjection:
    """Build the render projection for one frame."""
    return RenderProjection(
        model=model,
        loading=model.is_loading,
        transform=viewport.transform,
        dragging=viewport.dragging,
        transitioning=transition.transitioning if transition else False,
        edges=resolve_edges(model, registry, viewport),
        highlights=collect_highlights(model, index),
        selection=selection or Selection(),
        function_groups=(panel or FunctionPanel()).groups(model),
    )
