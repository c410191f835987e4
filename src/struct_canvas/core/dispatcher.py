"""Edit dispatcher: optimistic local edits plus outbound commands.

Structural edits (add/remove field, add/delete struct) are applied to the
store and sent to the watcher in one step.

Text edits (renames and retypes) have two phases:

* live   – every keystroke; applied to the store, leaf marked dirty, nothing sent
* commit – blur or Enter; final value applied, dirty marker cleared, command sent

While a leaf is dirty, inbound snapshots do not overwrite it: the snapshot is
merged, then every dirty leaf's live value is re-applied on top, and the
snapshot's value is remembered as the leaf's authoritative value (used by
``abandon()``). Everything else in the snapshot lands immediately.

Intents are addressed with the names the watcher knows. A struct being
renamed live keeps its original name in ``LeafKey.ref`` until commit, and
structural intents on it are applied under the live name. After a struct
rename commit, pending leaves of that struct are re-keyed to the new name but
remember the old one until a snapshot shows the watcher has caught up.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Protocol

from loguru import logger

from .intents import (
    DeleteStruct,
    EditIntent,
    LeafKey,
    LeafKind,
    TextIntent,
    is_text_intent,
)
from .models import NodeRef, Package, StructuralModel
from .protocol import SnapshotMessage
from .store import ModelStore, ReplaceModel, StoreResult, apply, find_struct, merge_snapshot


class CommandSender(Protocol):
    def send(self, intent: EditIntent, packages: tuple[Package, ...] | None = None) -> bool: ...


@dataclass
class LiveEdit:
    """Uncommitted text edit for one leaf."""

    intent: TextIntent
    authoritative: str | None
    # Struct address before a committed rename the watcher has not confirmed yet
    origin: NodeRef | None = None


def read_leaf(model: StructuralModel, leaf: LeafKey) -> str | None:
    """Current text of ``leaf`` in ``model``, or ``None`` if it does not resolve."""
    struct = find_struct(model, leaf.ref)
    if struct is None:
        return None
    if leaf.kind is LeafKind.STRUCT_NAME:
        return struct.name

    items = struct.fields if leaf.kind in (LeafKind.FIELD_NAME, LeafKind.FIELD_TYPE) else struct.methods
    if leaf.index is None or not 0 <= leaf.index < len(items):
        return None
    item = items[leaf.index]

    if leaf.kind is LeafKind.FIELD_NAME or leaf.kind is LeafKind.METHOD_NAME:
        return item.name
    if leaf.kind is LeafKind.FIELD_TYPE:
        return item.type.literal
    return_types = item.return_type
    if leaf.type_index is None or not 0 <= leaf.type_index < len(return_types):
        return None
    return return_types[leaf.type_index].literal


class EditDispatcher:
    """Turns edit intents into store transformations and watcher commands."""

    def __init__(
        self,
        store: ModelStore,
        channel: CommandSender | None = None,
        attach_packages: bool = False,
    ):
        """Initialize dispatcher.

        Args:
            store: Model store of the session
            channel: Outbound command sender; ``None`` edits locally only
            attach_packages: Attach the optimistic package list to commands
        """
        self.store = store
        self.channel = channel
        self.attach_packages = attach_packages
        self._live: dict[LeafKey, LiveEdit] = {}

    @property
    def dirty_leaves(self) -> frozenset[LeafKey]:
        return frozenset(self._live)

    def is_dirty(self, leaf: LeafKey) -> bool:
        return leaf in self._live

    # ── Edits ───────────────────────────────────────────────────────────

    def dispatch(self, intent: EditIntent) -> StoreResult:
        """Apply an intent locally and send it.

        Text intents dispatched this way are committed directly.
        """
        if is_text_intent(intent):
            return self.commit(intent)

        result = self.store.apply(replace(intent, ref=self._local_ref(intent.ref)))
        if result.ok:
            if isinstance(intent, DeleteStruct):
                self._forget(intent.ref)
            self._send(intent)
        return result

    def edit_live(self, intent: TextIntent) -> StoreResult:
        """Reflect one keystroke of a text edit locally without sending it."""
        if not is_text_intent(intent):
            raise TypeError(f"{type(intent).__name__} is not a text edit")

        leaf = intent.leaf
        entry = self._live.get(leaf)
        target = self._target(self.store.model, intent.ref, entry)
        if entry is not None:
            authoritative = entry.authoritative
        else:
            authoritative = read_leaf(self.store.model, replace(leaf, ref=target))

        result = self.store.apply(intent.with_ref(target))
        if result.ok:
            self._live[leaf] = LiveEdit(intent, authoritative, entry.origin if entry else None)
        return result

    def commit(self, intent: TextIntent) -> StoreResult:
        """Apply the final value of a text edit and send it to the watcher.

        A rejected commit (e.g. a struct name clash) restores the leaf's
        authoritative value and sends nothing.
        """
        leaf = intent.leaf
        entry = self._live.get(leaf)
        local = intent.with_ref(self._target(self.store.model, intent.ref, entry))
        self._live.pop(leaf, None)

        result = self.store.apply(local)
        if not result.ok:
            if entry is not None:
                self._restore(entry, local.ref)
            return result

        self._send(intent)
        if leaf.kind is LeafKind.STRUCT_NAME:
            self._rekey(leaf.ref, leaf.ref.with_struct(intent.value))
        return result

    def abandon(self, leaf: LeafKey) -> StoreResult | None:
        """Drop an uncommitted edit and restore the authoritative value.

        Returns:
            StoreResult of the restore, or None if the leaf was not dirty
        """
        if leaf not in self._live:
            return None
        entry = self._live[leaf]
        local_ref = self._target(self.store.model, leaf.ref, entry)
        del self._live[leaf]
        return self._restore(entry, local_ref)

    def clear(self) -> StoreResult:
        """Drop all live edits and reset the model to the loading placeholder."""
        self._live.clear()
        return self.store.reset()

    # ── Inbound ─────────────────────────────────────────────────────────

    def receive_snapshot(self, message: SnapshotMessage) -> StoreResult:
        """Merge a watcher snapshot, keeping dirty leaves at their live value."""
        merged = merge_snapshot(self.store.model, message.model, message.scoped)
        if not merged.ok:
            return merged
        if not self._live:
            return self.store.apply(ReplaceModel(merged.model))
        return self.store.apply(ReplaceModel(self._reconcile(merged.model, message.model)))

    def _reconcile(self, merged: StructuralModel, snapshot: StructuralModel) -> StructuralModel:
        model = merged
        # Struct renames first so field/method leaves find their struct's live name.
        ordered = sorted(
            self._live.items(), key=lambda item: item[0].kind is not LeafKind.STRUCT_NAME
        )
        for leaf, entry in ordered:
            if entry.origin is not None and find_struct(snapshot, leaf.ref) is not None:
                entry.origin = None

            inbound = read_leaf(snapshot, leaf)
            if inbound is None and entry.origin is not None:
                inbound = read_leaf(snapshot, replace(leaf, ref=entry.origin))
            if inbound is not None:
                entry.authoritative = inbound

            if leaf.kind is LeafKind.STRUCT_NAME and find_struct(model, leaf.ref) is not None:
                ref = leaf.ref
            else:
                ref = self._target(model, leaf.ref, entry)

            result = apply(model, entry.intent.with_ref(ref))
            if result.ok:
                model = result.model
            else:
                logger.warning(f"Dropping live edit of {leaf.kind} on {leaf.ref}: {result.error}")
                del self._live[leaf]
        return model

    # ── Internals ───────────────────────────────────────────────────────

    def _local_ref(self, ref: NodeRef) -> NodeRef:
        """Address of ``ref``'s struct in the local model (after live renames)."""
        entry = self._live.get(LeafKey(ref, LeafKind.STRUCT_NAME))
        return ref.with_struct(entry.intent.value) if entry else ref

    def _target(self, model: StructuralModel, ref: NodeRef, entry: LiveEdit | None) -> NodeRef:
        """Local address of a leaf's struct, falling back to its pre-rename name."""
        local = self._local_ref(ref)
        if entry is None or entry.origin is None or find_struct(model, local) is not None:
            return local
        return entry.origin if find_struct(model, entry.origin) is not None else local

    def _restore(self, entry: LiveEdit, local_ref: NodeRef) -> StoreResult | None:
        if entry.authoritative is None:
            return None
        restore = entry.intent.with_value(entry.authoritative).with_ref(local_ref)
        return self.store.apply(restore)

    def _rekey(self, old: NodeRef, new: NodeRef) -> None:
        for leaf in [leaf for leaf in self._live if leaf.ref == old]:
            entry = self._live.pop(leaf)
            new_leaf = LeafKey(new, leaf.kind, leaf.index, leaf.type_index)
            self._live[new_leaf] = LiveEdit(
                entry.intent.with_ref(new), entry.authoritative, entry.origin or old
            )

    def _forget(self, ref: NodeRef) -> None:
        for leaf in [leaf for leaf in self._live if leaf.ref == ref]:
            del self._live[leaf]

    def _send(self, intent: EditIntent) -> bool:
        if self.channel is None:
            logger.debug(f"No channel; {intent.kind} applied locally only")
            return False
        packages = self.store.model.packages if self.attach_packages else None
        sent = self.channel.send(intent, packages)
        if not sent:
            logger.warning(f"{intent.kind} for {intent.ref} was applied locally but not sent")
        return sent
