"""Tests for the render projection, selection and global function panel."""

from struct_canvas.core.highlight import HighlightIndex
from struct_canvas.core.layout import LayoutRegistry, NodeGeometry, TransitionTimer, Viewport
from struct_canvas.core.models import LOADING_MODEL
from struct_canvas.core.projection import FunctionPanel, Selection, project


class TestSelection:
    def test_package_selection_clears_file(self):
        selection = Selection.of_file("main", "main.go")
        assert selection.is_file_selected("main", "main.go")

        selection = Selection.of_package("main")
        assert selection.is_package_selected("main")
        assert selection.file is None
        assert not selection.is_file_selected("main", "main.go")

    def test_file_selection_is_scoped_to_package(self):
        selection = Selection.of_file("main", "main.go")
        assert not selection.is_file_selected("util", "main.go")


class TestFunctionPanel:
    def test_groups_in_first_seen_order(self, model):
        groups = FunctionPanel().groups(model)

        assert [g.package for g in groups] == ["main", "util"]
        assert [i for i, _ in groups[0].functions] == [0]
        assert not any(g.expanded for g in groups)

    def test_toggle(self, model):
        panel = FunctionPanel()

        assert panel.toggle("util") is True
        assert [g.expanded for g in panel.groups(model)] == [False, True]
        assert panel.toggle("util") is False
        assert not panel.is_expanded("util")


class TestProject:
    def test_loading_placeholder(self):
        frame = project(LOADING_MODEL, Viewport(), LayoutRegistry(), HighlightIndex())

        assert frame.loading
        assert frame.edges.paths == []
        assert frame.function_groups == []
        assert not frame.transitioning

    def test_full_frame(self, model, server_ref, conn_ref):
        registry = LayoutRegistry()
        registry.publish(server_ref, NodeGeometry(0, 0, 100, 50))
        registry.publish(conn_ref, NodeGeometry(200, 100, 100, 50))
        viewport = Viewport()
        viewport.pointer_down(0, 0)
        viewport.pointer_move(5, 5)

        frame = project(
            model,
            viewport,
            registry,
            HighlightIndex("conn"),
            transition=TransitionTimer(),
            selection=Selection.of_package("util"),
        )

        assert not frame.loading
        assert frame.dragging
        assert frame.transform == "translate(5px, 5px)"
        assert frame.edges.paths[0].d == "M55,30 C155,30 155,130 255,130"
        assert frame.highlights.total == 2
        assert frame.selection.is_package_selected("util")
        assert len(frame.function_groups) == 2
