"""User edit intents and their outbound wire form.

Every intent is addressed by a ``NodeRef``. Struct-level intents need a
struct name in the ref; ``AddStruct`` is file-level and ignores it.

Text intents (renames and retypes) address a single editable leaf and are
edited in two phases by the dispatcher: live (local only) and commit
(local + outbound). Structural intents are applied and sent at once.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Any, ClassVar

from .models import NodeRef


class IntentKind(StrEnum):
    """Wire ``type`` tag of each outbound command."""

    DELETE_STRUCT = "DELETE_STRUCT"
    RENAME_STRUCT = "CHANGE_STRUCT_NAME"
    ADD_FIELD = "ADD_STRUCT_FIELD"
    REMOVE_FIELD = "REMOVE_STRUCT_FIELD"
    RENAME_FIELD = "CHANGE_STRUCT_FIELD_NAME"
    RETYPE_FIELD = "CHANGE_STRUCT_FIELD_TYPE"
    ADD_STRUCT = "ADD_STRUCT"
    RENAME_METHOD = "CHANGE_STRUCT_METHOD_NAME"
    RETYPE_METHOD_RETURN = "CHANGE_STRUCT_METHOD_RETURN_TYPE"


class LeafKind(StrEnum):
    STRUCT_NAME = "struct_name"
    FIELD_NAME = "field_name"
    FIELD_TYPE = "field_type"
    METHOD_NAME = "method_name"
    METHOD_RETURN = "method_return"


@dataclass(frozen=True)
class LeafKey:
    """Identity of one editable text leaf.

    ``ref`` is the struct address as known to the watcher, i.e. before any
    uncommitted rename of that struct.
    """

    ref: NodeRef
    kind: LeafKind
    index: int | None = None
    type_index: int | None = None


@dataclass(frozen=True)
class _Intent:
    ref: NodeRef

    kind: ClassVar[IntentKind]

    def to_wire(self) -> dict[str, Any]:
        """Build the outbound command for this intent."""
        payload: dict[str, Any] = {
            "type": self.kind.value,
            "package": self.ref.package_name,
            "file": self.ref.file_name,
        }
        if self.ref.struct_name is not None:
            payload["name"] = self.ref.struct_name
        payload.update(self._extra_wire())
        return payload

    def _extra_wire(self) -> dict[str, Any]:
        return {}


# ── Structural intents ──────────────────────────────────────────────────


@dataclass(frozen=True)
class DeleteStruct(_Intent):
    kind: ClassVar[IntentKind] = IntentKind.DELETE_STRUCT


@dataclass(frozen=True)
class AddField(_Intent):
    kind: ClassVar[IntentKind] = IntentKind.ADD_FIELD


@dataclass(frozen=True)
class RemoveField(_Intent):
    key: int = 0

    kind: ClassVar[IntentKind] = IntentKind.REMOVE_FIELD

    def _extra_wire(self) -> dict[str, Any]:
        return {"key": self.key}


@dataclass(frozen=True)
class AddStruct(_Intent):
    kind: ClassVar[IntentKind] = IntentKind.ADD_STRUCT

    def to_wire(self) -> dict[str, Any]:
        # File-level command: never carries a struct name.
        payload = super().to_wire()
        payload.pop("name", None)
        return payload


# ── Text intents ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class _TextIntent(_Intent):
    @property
    def leaf(self) -> LeafKey:
        raise NotImplementedError

    @property
    def value(self) -> str:
        raise NotImplementedError

    def with_value(self, value: str) -> _TextIntent:
        raise NotImplementedError

    def with_ref(self, ref: NodeRef) -> _TextIntent:
        return replace(self, ref=ref)


@dataclass(frozen=True)
class RenameStruct(_TextIntent):
    new_name: str = ""

    kind: ClassVar[IntentKind] = IntentKind.RENAME_STRUCT

    @property
    def leaf(self) -> LeafKey:
        return LeafKey(self.ref, LeafKind.STRUCT_NAME)

    @property
    def value(self) -> str:
        return self.new_name

    def with_value(self, value: str) -> RenameStruct:
        return replace(self, new_name=value)

    def _extra_wire(self) -> dict[str, Any]:
        return {"newName": self.new_name}


@dataclass(frozen=True)
class RenameField(_TextIntent):
    key: int = 0
    new_name: str = ""

    kind: ClassVar[IntentKind] = IntentKind.RENAME_FIELD

    @property
    def leaf(self) -> LeafKey:
        return LeafKey(self.ref, LeafKind.FIELD_NAME, self.key)

    @property
    def value(self) -> str:
        return self.new_name

    def with_value(self, value: str) -> RenameField:
        return replace(self, new_name=value)

    def _extra_wire(self) -> dict[str, Any]:
        return {"key": self.key, "newFieldName": self.new_name}


@dataclass(frozen=True)
class RetypeField(_TextIntent):
    key: int = 0
    new_type: str = ""

    kind: ClassVar[IntentKind] = IntentKind.RETYPE_FIELD

    @property
    def leaf(self) -> LeafKey:
        return LeafKey(self.ref, LeafKind.FIELD_TYPE, self.key)

    @property
    def value(self) -> str:
        return self.new_type

    def with_value(self, value: str) -> RetypeField:
        return replace(self, new_type=value)

    def _extra_wire(self) -> dict[str, Any]:
        return {"key": self.key, "newFieldType": self.new_type}


@dataclass(frozen=True)
class RenameMethod(_TextIntent):
    method_index: int = 0
    new_name: str = ""

    kind: ClassVar[IntentKind] = IntentKind.RENAME_METHOD

    @property
    def leaf(self) -> LeafKey:
        return LeafKey(self.ref, LeafKind.METHOD_NAME, self.method_index)

    @property
    def value(self) -> str:
        return self.new_name

    def with_value(self, value: str) -> RenameMethod:
        return replace(self, new_name=value)

    def _extra_wire(self) -> dict[str, Any]:
        return {"methodIndex": self.method_index, "newMethodName": self.new_name}


@dataclass(frozen=True)
class RetypeMethodReturn(_TextIntent):
    method_index: int = 0
    type_index: int = 0
    new_type: str = ""

    kind: ClassVar[IntentKind] = IntentKind.RETYPE_METHOD_RETURN

    @property
    def leaf(self) -> LeafKey:
        return LeafKey(
            self.ref, LeafKind.METHOD_RETURN, self.method_index, self.type_index
        )

    @property
    def value(self) -> str:
        return self.new_type

    def with_value(self, value: str) -> RetypeMethodReturn:
        return replace(self, new_type=value)

    def _extra_wire(self) -> dict[str, Any]:
        return {
            "methodIndex": self.method_index,
            "typeIndex": self.type_index,
            "newReturnType": self.new_type,
        }


TextIntent = RenameStruct | RenameField | RetypeField | RenameMethod | RetypeMethodReturn
StructuralIntent = DeleteStruct | AddField | RemoveField | AddStruct
EditIntent = TextIntent | StructuralIntent

TEXT_INTENTS = (RenameStruct, RenameField, RetypeField, RenameMethod, RetypeMethodReturn)


def is_text_intent(intent: object) -> bool:
    """True for intents edited in two phases (live, then commit)."""
    return isinstance(intent, TEXT_INTENTS)
