"""Core functionality for struct-canvas."""

from .exceptions import (
    ChannelError,
    ConfigError,
    ConnectionClosedError,
    GeometryMiss,
    NodeReferenceError,
    PeerError,
    ProtocolError,
    StoreError,
    StructCanvasError,
    UniquenessViolation,
)

__all__ = [
    "ChannelError",
    "ConfigError",
    "ConnectionClosedError",
    "GeometryMiss",
    "NodeReferenceError",
    "PeerError",
    "ProtocolError",
    "StoreError",
    "StructCanvasError",
    "UniquenessViolation",
]
