"""Tests for search highlighting."""

from struct_canvas.core.highlight import HighlightIndex, collect_highlights
from struct_canvas.core.models import GlobalFunction, Method, Parameter, StructField, TypeRef


class TestHighlightIndex:
    def test_case_insensitive_substring(self):
        index = HighlightIndex("Conn")

        assert index.is_highlighted("connection")
        assert index.is_highlighted("*CONN")
        assert not index.is_highlighted("Server")

    def test_substring_in_name(self):
        assert HighlightIndex("oo").is_highlighted("Foo")

    def test_empty_query_matches_nothing(self):
        index = HighlightIndex("")

        assert not index.is_highlighted("anything")
        assert not index.is_highlighted("")

    def test_empty_text_never_matches(self):
        assert not HighlightIndex("a").is_highlighted("")
        assert not HighlightIndex("a").is_highlighted(None)

    def test_set_query(self):
        index = HighlightIndex("x")
        index.set_query(None)
        assert index.query == ""

        index.set_query("ID")
        assert index.query == "id"

    def test_field_matches_name_or_type(self):
        index = HighlightIndex("int")

        assert index.field_matches(StructField(name="count", type=TypeRef(literal="int")))
        assert index.field_matches(StructField(name="interval", type=TypeRef(literal="x")))
        assert not index.field_matches(StructField(name="name", type=TypeRef(literal="string")))

    def test_method_matches_name_or_return_type(self):
        index = HighlightIndex("err")

        assert index.method_matches(Method(name="Close", return_type=(TypeRef(literal="error"),)))
        assert not index.method_matches(Method(name="Close"))

    def test_function_matches_parameter_types(self):
        index = HighlightIndex("duration")
        function = GlobalFunction(
            name="Sleep",
            parameters=(Parameter(name="d", type=TypeRef(literal="time.Duration")),),
        )

        assert index.function_matches(function)


class TestCollectHighlights:
    def test_struct_and_field_matches(self, model):
        marks = collect_highlights(model, HighlightIndex("conn"))

        assert marks.structs == {("main", "main.go", "Conn")}
        assert marks.fields == {(("main", "main.go", "Server"), 1)}
        assert marks.methods == set()
        assert marks.total == 2

    def test_types_and_functions(self, model):
        marks = collect_highlights(model, HighlightIndex("STRING"))

        assert (("main", "main.go", "Server"), 0) in marks.fields
        assert marks.functions == {0}

    def test_packages_and_files(self, model):
        marks = collect_highlights(model, HighlightIndex("util"))

        assert marks.packages == {"util"}
        assert marks.files == {("util", "util.go")}

    def test_empty_query(self, model):
        marks = collect_highlights(model, HighlightIndex())

        assert not marks
        assert marks.total == 0
