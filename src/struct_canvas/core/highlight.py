"""Search highlighting over the structural model.

Highlighting is purely presentational: matching entities get a marker,
nothing is ever filtered out, so changing the query never re-lays out the
diagram.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .models import GlobalFunction, Method, NodeRef, StructField, StructuralModel


class HighlightIndex:
    """Case-insensitive substring predicate built from the search box."""

    def __init__(self, query: str = ""):
        self._query = ""
        self.set_query(query)

    @property
    def query(self) -> str:
        return self._query

    def set_query(self, query: str | None) -> None:
        self._query = (query or "").lower()

    def is_highlighted(self, text: str | None) -> bool:
        """True if ``text`` contains the query. An empty query matches nothing."""
        if not self._query or not text:
            return False
        return self._query in text.lower()

    def field_matches(self, struct_field: StructField) -> bool:
        return self.is_highlighted(struct_field.name) or self.is_highlighted(
            struct_field.type.literal
        )

    def method_matches(self, method: Method) -> bool:
        return self.is_highlighted(method.name) or any(
            self.is_highlighted(t.literal) for t in method.return_type
        )

    def function_matches(self, function: GlobalFunction) -> bool:
        return (
            self.is_highlighted(function.name)
            or any(self.is_highlighted(p.type.literal) for p in function.parameters)
            or any(self.is_highlighted(t.literal) for t in function.return_type)
        )


@dataclass
class HighlightSet:
    """Highlighted entities of one model, by identity.

    Packages are keyed by name, files by ``(package, file)``, structs by
    ``NodeRef.key``, fields and methods by ``(NodeRef.key, index)`` and
    global functions by their index in ``model.global_functions``.
    """

    packages: set[str] = field(default_factory=set)
    files: set[tuple[str, str]] = field(default_factory=set)
    structs: set[tuple[str, str, str | None]] = field(default_factory=set)
    fields: set[tuple[tuple[str, str, str | None], int]] = field(default_factory=set)
    methods: set[tuple[tuple[str, str, str | None], int]] = field(default_factory=set)
    functions: set[int] = field(default_factory=set)

    def __bool__(self) -> bool:
        return any(
            (self.packages, self.files, self.structs, self.fields, self.methods, self.functions)
        )

    @property
    def total(self) -> int:
        return (
            len(self.packages)
            + len(self.files)
            + len(self.structs)
            + len(self.fields)
            + len(self.methods)
            + len(self.functions)
        )


def collect_highlights(model: StructuralModel, index: HighlightIndex) -> HighlightSet:
    """Mark every entity of ``model`` matching ``index``."""
    result = HighlightSet()
    if not index.query:
        return result

    for package in model.packages:
        if index.is_highlighted(package.name):
            result.packages.add(package.name)
        for file in package.files:
            if index.is_highlighted(file.name):
                result.files.add((package.name, file.name))
            for struct in file.structs:
                key = NodeRef(
                    package_name=package.name, file_name=file.name, struct_name=struct.name
                ).key
                if index.is_highlighted(struct.name):
                    result.structs.add(key)
                for i, struct_field in enumerate(struct.fields):
                    if index.field_matches(struct_field):
                        result.fields.add((key, i))
                for i, method in enumerate(struct.methods):
                    if index.method_matches(method):
                        result.methods.add((key, i))

    for i, function in enumerate(model.global_functions):
        if index.function_matches(function):
            result.functions.add(i)
    return result
