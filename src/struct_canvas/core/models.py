"""Structural model of a watched codebase.

The model is an immutable tree: packages → files → structs → fields/methods,
plus global functions and struct-to-struct edges. Every sequence is a tuple
and every model is frozen, so a transformation can only produce a new tree.
Untouched sub-trees are shared by reference between successive models,
which keeps change detection a matter of ``is`` checks.

Field names follow Python conventions; the watcher's camelCase keys are
accepted through aliases and produced again by ``to_wire()``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..config.defaults import LOADING_NAME, PRIMITIVE_KINDS


class WireModel(BaseModel):
    """Base for all model nodes exchanged with the watcher."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # The watcher serializes empty slices as null; fall back to defaults.
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data

    def to_wire(self) -> dict[str, Any]:
        """Dump using the watcher's key names."""
        return self.model_dump(by_alias=True, mode="json")


class TypeRef(WireModel):
    """A type as displayed in the diagram."""

    literal: str = ""
    structs: tuple[str, ...] = Field(
        default=(), description="Struct names referenced by this type"
    )

    @property
    def kind(self) -> str:
        """Primitive kind of the type, or ``"other"``."""
        return self.literal if self.literal in PRIMITIVE_KINDS else "other"


class StructField(WireModel):
    name: str = ""
    type: TypeRef = Field(default_factory=TypeRef)


class Parameter(WireModel):
    name: str = ""
    type: TypeRef = Field(default_factory=TypeRef)


class Method(WireModel):
    name: str = ""
    parameters: tuple[Parameter, ...] = ()
    return_type: tuple[TypeRef, ...] = Field(default=(), alias="returnType")


class Struct(WireModel):
    name: str
    fields: tuple[StructField, ...] = ()
    methods: tuple[Method, ...] = ()


class File(WireModel):
    name: str
    structs: tuple[Struct, ...] = ()


class Package(WireModel):
    name: str
    files: tuple[File, ...] = ()


class GlobalFunction(WireModel):
    """Free function declared at package level."""

    name: str = ""
    package: str = ""
    file: str = ""
    parameters: tuple[Parameter, ...] = ()
    return_type: tuple[TypeRef, ...] = Field(default=(), alias="returnType")


class NodeRef(WireModel):
    """Address of a package/file/struct location in the model.

    ``struct_name`` is optional for file-level addresses (e.g. AddStruct).
    ``field_type_name`` is informational only; edges carry the field that
    produced them but it plays no part in resolution.
    """

    package_name: str = Field(default="", alias="packageName")
    file_name: str = Field(default="", alias="fileName")
    struct_name: str | None = Field(default=None, alias="structName")
    field_type_name: str | None = Field(default=None, alias="fieldTypeName")

    @property
    def key(self) -> tuple[str, str, str | None]:
        """Identity tuple used for lookups and geometry registration."""
        return (self.package_name, self.file_name, self.struct_name)

    def with_struct(self, struct_name: str | None) -> NodeRef:
        return self.model_copy(update={"struct_name": struct_name})

    def __str__(self) -> str:
        parts = [self.package_name, self.file_name]
        if self.struct_name is not None:
            parts.append(self.struct_name)
        return "/".join(parts)


class Edge(WireModel):
    """Directed struct-to-struct relationship, used purely for drawing."""

    from_: NodeRef | None = Field(default=None, alias="from")
    to: NodeRef | None = None


class StructuralModel(WireModel):
    """Root aggregate pushed by the watcher."""

    packages: tuple[Package, ...] = ()
    edges: tuple[Edge, ...] = ()
    global_functions: tuple[GlobalFunction, ...] = Field(
        default=(), alias="globalFunctions"
    )

    @property
    def is_loading(self) -> bool:
        """True for the placeholder model or a model with no packages."""
        return self is LOADING_MODEL or not self.packages


def struct_ref(package: str, file: str, struct: str | None = None) -> NodeRef:
    """Shorthand constructor for a NodeRef."""
    return NodeRef(package_name=package, file_name=file, struct_name=struct)


# Placeholder shown until the first snapshot arrives.
LOADING_MODEL = StructuralModel(
    packages=(Package(name=LOADING_NAME, files=(File(name=LOADING_NAME),)),),
)
