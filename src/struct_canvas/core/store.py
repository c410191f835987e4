"""Structural store: pure, path-addressed transformations over the model.

``apply(model, transformation)`` never mutates its input and never raises a
store error past its boundary. Failures come back inside ``StoreResult``
with the input model untouched.

Addressing works in two steps. ``resolve()`` turns a ``NodeRef`` into a
``NodePath`` of indexes once per transformation, then the transformation
rebuilds only the packages → file → struct path it changes. Every sibling
along the way is reused as is, so ``old.packages[i] is new.packages[i]`` for
each untouched package (and likewise further down the tree).
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

from loguru import logger

from ..config.defaults import PLACEHOLDER_NAME, PLACEHOLDER_TYPE
from .exceptions import NodeReferenceError, StoreError, UniquenessViolation
from .intents import (
    AddField,
    AddStruct,
    DeleteStruct,
    EditIntent,
    RemoveField,
    RenameField,
    RenameMethod,
    RenameStruct,
    RetypeField,
    RetypeMethodReturn,
)
from .models import (
    LOADING_MODEL,
    Edge,
    File,
    GlobalFunction,
    NodeRef,
    Struct,
    StructField,
    StructuralModel,
    TypeRef,
)

T = TypeVar("T")


# ── Transformations beyond user intents ─────────────────────────────────


@dataclass(frozen=True)
class ReplaceModel:
    """Substitute the entire model (full snapshot)."""

    model: StructuralModel


@dataclass(frozen=True)
class ReplaceFile:
    """Substitute one existing file's struct list (file-scoped snapshot)."""

    ref: NodeRef
    structs: tuple[Struct, ...]


@dataclass(frozen=True)
class ReplaceRelations:
    """Substitute edges and/or global functions; ``None`` keeps the current ones."""

    edges: tuple[Edge, ...] | None = None
    global_functions: tuple[GlobalFunction, ...] | None = None


@dataclass(frozen=True)
class ClearModel:
    """Reset to the loading placeholder."""


Transformation = EditIntent | ReplaceModel | ReplaceFile | ReplaceRelations | ClearModel


@dataclass(frozen=True)
class StoreResult:
    """Outcome of a store transformation.

    On failure ``model`` is the input model and ``error`` says why.
    """

    model: StructuralModel
    error: StoreError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class NodePath:
    """Index path to a file or struct inside a model."""

    package_index: int
    file_index: int
    struct_index: int | None = None


# ── Resolution ──────────────────────────────────────────────────────────


def _find_unique(items: Sequence[Any], name: str, scope: str, ref: NodeRef) -> int | None:
    matches = [i for i, item in enumerate(items) if item.name == name]
    if len(matches) > 1:
        raise UniquenessViolation(
            f"Ambiguous {scope} name '{name}' while resolving {ref}",
            {"ref": str(ref), "scope": scope, "count": len(matches)},
        )
    return matches[0] if matches else None


def resolve_file(model: StructuralModel, ref: NodeRef) -> NodePath:
    """Resolve the package and file of ``ref``.

    Raises:
        NodeReferenceError: If the package or file does not exist
        UniquenessViolation: If a name matches more than once
    """
    package_index = _find_unique(model.packages, ref.package_name, "package", ref)
    if package_index is None:
        raise NodeReferenceError(
            f"Package '{ref.package_name}' not found", {"ref": str(ref)}
        )
    files = model.packages[package_index].files
    file_index = _find_unique(files, ref.file_name, "file", ref)
    if file_index is None:
        raise NodeReferenceError(
            f"File '{ref.file_name}' not found in package '{ref.package_name}'",
            {"ref": str(ref)},
        )
    return NodePath(package_index, file_index)


def resolve(model: StructuralModel, ref: NodeRef) -> NodePath:
    """Resolve ``ref`` down to its struct.

    Raises:
        NodeReferenceError: If any component of the path does not exist
        UniquenessViolation: If a name matches more than once
    """
    path = resolve_file(model, ref)
    if ref.struct_name is None:
        raise NodeReferenceError(f"No struct named in reference {ref}", {"ref": str(ref)})
    structs = model.packages[path.package_index].files[path.file_index].structs
    struct_index = _find_unique(structs, ref.struct_name, "struct", ref)
    if struct_index is None:
        raise NodeReferenceError(
            f"Struct '{ref.struct_name}' not found in {ref.package_name}/{ref.file_name}",
            {"ref": str(ref)},
        )
    return NodePath(path.package_index, path.file_index, struct_index)


def find_struct(model: StructuralModel, ref: NodeRef) -> Struct | None:
    """Return the struct addressed by ``ref`` or ``None`` if it does not resolve."""
    try:
        path = resolve(model, ref)
    except StoreError:
        return None
    return model.packages[path.package_index].files[path.file_index].structs[
        path.struct_index
    ]


def _item_at(items: Sequence[T], index: int, what: str, ref: NodeRef) -> T:
    if not 0 <= index < len(items):
        raise NodeReferenceError(
            f"{what} index {index} out of range for {ref} ({len(items)} items)",
            {"ref": str(ref), "index": index},
        )
    return items[index]


# ── Validation ──────────────────────────────────────────────────────────


def _check_unique(names: Iterable[str], scope: str) -> None:
    seen: set[str] = set()
    for name in names:
        if name in seen:
            raise UniquenessViolation(
                f"Duplicate {scope} name '{name}'", {"scope": scope, "name": name}
            )
        seen.add(name)


def validate_model(model: StructuralModel) -> None:
    """Check package/file/struct name uniqueness.

    Raises:
        UniquenessViolation: On the first duplicate found
    """
    _check_unique((p.name for p in model.packages), "package")
    for package in model.packages:
        _check_unique((f.name for f in package.files), f"file in package {package.name}")
        for file in package.files:
            _check_unique(
                (s.name for s in file.structs),
                f"struct in {package.name}/{file.name}",
            )


# ── Copy-on-write helpers ───────────────────────────────────────────────


def _replace_at(items: tuple[T, ...], index: int, item: T) -> tuple[T, ...]:
    return items[:index] + (item,) + items[index + 1 :]


def _remove_at(items: tuple[T, ...], index: int) -> tuple[T, ...]:
    return items[:index] + items[index + 1 :]


def _update_file(
    model: StructuralModel, path: NodePath, update: Callable[[File], File]
) -> StructuralModel:
    package = model.packages[path.package_index]
    file = package.files[path.file_index]
    new_file = update(file)
    if new_file is file:
        return model
    new_package = package.model_copy(
        update={"files": _replace_at(package.files, path.file_index, new_file)}
    )
    return model.model_copy(
        update={"packages": _replace_at(model.packages, path.package_index, new_package)}
    )


def _update_struct(
    model: StructuralModel, path: NodePath, update: Callable[[Struct], Struct]
) -> StructuralModel:
    def update_file(file: File) -> File:
        struct = file.structs[path.struct_index]
        new_struct = update(struct)
        if new_struct is struct:
            return file
        return file.model_copy(
            update={"structs": _replace_at(file.structs, path.struct_index, new_struct)}
        )

    return _update_file(model, path, update_file)


def _unique_placeholder(existing: Iterable[str]) -> str:
    taken = set(existing)
    if PLACEHOLDER_NAME not in taken:
        return PLACEHOLDER_NAME
    suffix = 2
    while f"{PLACEHOLDER_NAME}{suffix}" in taken:
        suffix += 1
    return f"{PLACEHOLDER_NAME}{suffix}"


# ── Handlers ────────────────────────────────────────────────────────────


def _replace_model(model: StructuralModel, t: ReplaceModel) -> StructuralModel:
    validate_model(t.model)
    return t.model


def _replace_file(model: StructuralModel, t: ReplaceFile) -> StructuralModel:
    path = resolve_file(model, t.ref)
    _check_unique((s.name for s in t.structs), f"struct in {t.ref}")
    structs = tuple(t.structs)
    return _update_file(model, path, lambda f: f.model_copy(update={"structs": structs}))


def _replace_relations(model: StructuralModel, t: ReplaceRelations) -> StructuralModel:
    update: dict[str, Any] = {}
    if t.edges is not None:
        update["edges"] = tuple(t.edges)
    if t.global_functions is not None:
        update["global_functions"] = tuple(t.global_functions)
    return model.model_copy(update=update) if update else model


def _clear_model(model: StructuralModel, t: ClearModel) -> StructuralModel:
    return LOADING_MODEL


def _delete_struct(model: StructuralModel, t: DeleteStruct) -> StructuralModel:
    try:
        path = resolve(model, t.ref)
    except NodeReferenceError:
        # Already gone is fine as long as the file itself exists.
        resolve_file(model, t.ref)
        return model
    return _update_file(
        model,
        path,
        lambda f: f.model_copy(update={"structs": _remove_at(f.structs, path.struct_index)}),
    )


def _rename_struct(model: StructuralModel, t: RenameStruct) -> StructuralModel:
    path = resolve(model, t.ref)
    if t.new_name == t.ref.struct_name:
        return model
    siblings = model.packages[path.package_index].files[path.file_index].structs
    if any(s.name == t.new_name for i, s in enumerate(siblings) if i != path.struct_index):
        raise UniquenessViolation(
            f"Struct '{t.new_name}' already exists in {t.ref.package_name}/{t.ref.file_name}",
            {"ref": str(t.ref), "name": t.new_name},
        )
    return _update_struct(model, path, lambda s: s.model_copy(update={"name": t.new_name}))


def _add_field(model: StructuralModel, t: AddField) -> StructuralModel:
    path = resolve(model, t.ref)
    field = StructField(name=PLACEHOLDER_NAME, type=TypeRef(literal=PLACEHOLDER_TYPE))
    return _update_struct(
        model, path, lambda s: s.model_copy(update={"fields": s.fields + (field,)})
    )


def _remove_field(model: StructuralModel, t: RemoveField) -> StructuralModel:
    path = resolve(model, t.ref)

    def update(struct: Struct) -> Struct:
        _item_at(struct.fields, t.key, "Field", t.ref)
        return struct.model_copy(update={"fields": _remove_at(struct.fields, t.key)})

    return _update_struct(model, path, update)


def _rename_field(model: StructuralModel, t: RenameField) -> StructuralModel:
    path = resolve(model, t.ref)

    def update(struct: Struct) -> Struct:
        field = _item_at(struct.fields, t.key, "Field", t.ref)
        if field.name == t.new_name:
            return struct
        new_field = field.model_copy(update={"name": t.new_name})
        return struct.model_copy(
            update={"fields": _replace_at(struct.fields, t.key, new_field)}
        )

    return _update_struct(model, path, update)


def _retype_field(model: StructuralModel, t: RetypeField) -> StructuralModel:
    path = resolve(model, t.ref)

    def update(struct: Struct) -> Struct:
        field = _item_at(struct.fields, t.key, "Field", t.ref)
        if field.type.literal == t.new_type:
            return struct
        new_type = field.type.model_copy(update={"literal": t.new_type})
        new_field = field.model_copy(update={"type": new_type})
        return struct.model_copy(
            update={"fields": _replace_at(struct.fields, t.key, new_field)}
        )

    return _update_struct(model, path, update)


def _add_struct(model: StructuralModel, t: AddStruct) -> StructuralModel:
    path = resolve_file(model, t.ref)

    def update(file: File) -> File:
        name = _unique_placeholder(s.name for s in file.structs)
        return file.model_copy(update={"structs": file.structs + (Struct(name=name),)})

    return _update_file(model, path, update)


def _rename_method(model: StructuralModel, t: RenameMethod) -> StructuralModel:
    path = resolve(model, t.ref)

    def update(struct: Struct) -> Struct:
        method = _item_at(struct.methods, t.method_index, "Method", t.ref)
        if method.name == t.new_name:
            return struct
        new_method = method.model_copy(update={"name": t.new_name})
        return struct.model_copy(
            update={"methods": _replace_at(struct.methods, t.method_index, new_method)}
        )

    return _update_struct(model, path, update)


def _retype_method_return(model: StructuralModel, t: RetypeMethodReturn) -> StructuralModel:
    path = resolve(model, t.ref)

    def update(struct: Struct) -> Struct:
        method = _item_at(struct.methods, t.method_index, "Method", t.ref)
        return_type = _item_at(method.return_type, t.type_index, "Return type", t.ref)
        if return_type.literal == t.new_type:
            return struct
        new_type = return_type.model_copy(update={"literal": t.new_type})
        new_method = method.model_copy(
            update={"return_type": _replace_at(method.return_type, t.type_index, new_type)}
        )
        return struct.model_copy(
            update={"methods": _replace_at(struct.methods, t.method_index, new_method)}
        )

    return _update_struct(model, path, update)


_HANDLERS: dict[type, Callable[[StructuralModel, Any], StructuralModel]] = {
    ReplaceModel: _replace_model,
    ReplaceFile: _replace_file,
    ReplaceRelations: _replace_relations,
    ClearModel: _clear_model,
    DeleteStruct: _delete_struct,
    RenameStruct: _rename_struct,
    AddField: _add_field,
    RemoveField: _remove_field,
    RenameField: _rename_field,
    RetypeField: _retype_field,
    AddStruct: _add_struct,
    RenameMethod: _rename_method,
    RetypeMethodReturn: _retype_method_return,
}


# ── Public API ──────────────────────────────────────────────────────────


def apply(model: StructuralModel, transformation: Transformation) -> StoreResult:
    """Apply one transformation to ``model``.

    Args:
        model: Current model (never mutated)
        transformation: Edit intent or snapshot transformation

    Returns:
        StoreResult with the new model, or the unchanged model and an error
    """
    name = type(transformation).__name__
    handler = _HANDLERS.get(type(transformation))
    if handler is None:
        error = StoreError(f"Unsupported transformation: {name}")
        logger.warning(str(error))
        return StoreResult(model, error)

    try:
        new_model = handler(model, transformation)
    except StoreError as e:
        logger.warning(f"Rejected {name}: {e}")
        return StoreResult(model, e)

    logger.debug(f"Applied {name}")
    return StoreResult(new_model)


def apply_all(
    model: StructuralModel, transformations: Iterable[Transformation]
) -> StoreResult:
    """Apply transformations in order, all or nothing.

    The first failure aborts the batch and the input model is returned with
    that error.
    """
    current = model
    for transformation in transformations:
        result = apply(current, transformation)
        if not result.ok:
            return StoreResult(model, result.error)
        current = result.model
    return StoreResult(current)


def merge_snapshot(
    model: StructuralModel, snapshot: StructuralModel, scoped: bool = False
) -> StoreResult:
    """Merge an inbound snapshot into ``model``.

    A full snapshot replaces the model. A scoped (``fileChanged``) snapshot
    replaces each file it carries, plus edges and global functions when the
    message included them. If any carried package or file is unknown
    locally, the snapshot replaces the whole model instead.
    """
    if not scoped:
        return apply(model, ReplaceModel(snapshot))

    transformations: list[Transformation] = [
        ReplaceFile(NodeRef(package_name=package.name, file_name=file.name), file.structs)
        for package in snapshot.packages
        for file in package.files
    ]
    provided = snapshot.model_fields_set
    transformations.append(
        ReplaceRelations(
            edges=snapshot.edges if "edges" in provided else None,
            global_functions=(
                snapshot.global_functions if "global_functions" in provided else None
            ),
        )
    )

    result = apply_all(model, transformations)
    if isinstance(result.error, NodeReferenceError):
        logger.info(f"Scoped snapshot addresses unknown file ({result.error}); replacing model")
        return apply(model, ReplaceModel(snapshot))
    return result


class ModelStore:
    """Holder of the current model for one editing session.

    All changes go through ``apply()``; listeners are called with the new
    model whenever the model reference changes.
    """

    def __init__(self, model: StructuralModel = LOADING_MODEL):
        self._model = model
        self._listeners: list[Callable[[StructuralModel], None]] = []

    @property
    def model(self) -> StructuralModel:
        return self._model

    def subscribe(self, listener: Callable[[StructuralModel], None]) -> Callable[[], None]:
        """Register a change listener; returns a function that unregisters it."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def apply(self, transformation: Transformation) -> StoreResult:
        return self._commit(apply(self._model, transformation))

    def apply_all(self, transformations: Iterable[Transformation]) -> StoreResult:
        return self._commit(apply_all(self._model, transformations))

    def merge_snapshot(self, snapshot: StructuralModel, scoped: bool = False) -> StoreResult:
        return self._commit(merge_snapshot(self._model, snapshot, scoped))

    def reset(self) -> StoreResult:
        return self.apply(ClearModel())

    def _commit(self, result: StoreResult) -> StoreResult:
        if result.ok and result.model is not self._model:
            self._model = result.model
            for listener in list(self._listeners):
                listener(self._model)
        return result
