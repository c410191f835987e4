"""Typed exception hierarchy for struct-canvas.

Hierarchy
---------
StructCanvasError (base)
├── StoreError              – structural store transformation failures
│   ├── NodeReferenceError  – a NodeRef or item index does not resolve
│   └── UniquenessViolation – duplicate name within a package/file scope
├── ChannelError            – session channel failures
│   ├── ProtocolError       – malformed inbound message
│   ├── PeerError           – explicit error payload sent by the watcher
│   └── ConnectionClosedError
├── GeometryMiss            – edge endpoint has no measured geometry yet
└── ConfigError             – configuration / validation errors

Store errors are never raised through ``store.apply()``; they travel inside
a ``StoreResult`` so callers can decide whether to retry, ignore or surface
them.
"""

from typing import Any


class StructCanvasError(Exception):
    """Base exception for struct-canvas."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.context = context or {}


# ── Store layer ─────────────────────────────────────────────────────────


class StoreError(StructCanvasError):
    """A store transformation was rejected."""

    pass


class NodeReferenceError(StoreError):
    """NodeRef (package, file, struct) or item index failed to resolve.

    Named ``NodeReferenceError`` to avoid shadowing the built-in
    ``ReferenceError``.
    """

    pass


# Alias matching the error kind name used by the watcher protocol docs.
ReferenceError = NodeReferenceError  # noqa: A001


class UniquenessViolation(StoreError):
    """Duplicate package, file or struct name within a single scope."""

    pass


# ── Channel layer ───────────────────────────────────────────────────────


class ChannelError(StructCanvasError):
    """Session channel errors."""

    pass


class ProtocolError(ChannelError):
    """Inbound message could not be decoded; it is dropped."""

    pass


class PeerError(ChannelError):
    """Watcher reported an error (``{"error": "..."}``). Non-fatal."""

    pass


class ConnectionClosedError(ChannelError):
    """Connection to the watcher closed unexpectedly."""

    pass


# ── Layout layer ────────────────────────────────────────────────────────


class GeometryMiss(StructCanvasError):
    """Edge endpoint has not been measured yet.

    Expected during the first layout passes; edges hitting this are omitted
    for a single render pass.
    """

    pass


# ── Configuration layer ─────────────────────────────────────────────────


class ConfigError(StructCanvasError):
    """Configuration / validation errors."""

    pass
