"""Wire codec for the watcher websocket protocol.

Inbound messages (JSON objects):
    {"packages": [...], "edges": [...], "globalFunctions": [...]}   full snapshot
    {"fileChanged": true, "packages": [...], ...}                   scoped snapshot
    {"error": "..."}                                                watcher error
    {"clearLayout": true}                                           refresh marker

Outbound commands are one JSON object per edit intent, see
``EditIntent.to_wire()``.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

import orjson
from pydantic import ValidationError

from .exceptions import ProtocolError
from .intents import EditIntent
from .models import Package, StructuralModel


@dataclass(frozen=True)
class SnapshotMessage:
    """Structural snapshot pushed by the watcher."""

    model: StructuralModel
    scoped: bool = False


@dataclass(frozen=True)
class ErrorMessage:
    """Error reported by the watcher, e.g. a failed source rewrite."""

    error: str


@dataclass(frozen=True)
class ClearLayoutMessage:
    """Sent by the watcher right before it re-parses and broadcasts."""


InboundMessage = SnapshotMessage | ErrorMessage | ClearLayoutMessage


def decode_message(raw: str | bytes) -> InboundMessage:
    """Decode one inbound websocket frame.

    Raises:
        ProtocolError: If the frame is not a recognizable message
    """
    try:
        data = orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise ProtocolError(f"Invalid JSON from watcher: {e}") from e

    if not isinstance(data, dict):
        raise ProtocolError(
            f"Expected a JSON object from watcher, got {type(data).__name__}"
        )

    if data.get("error"):
        return ErrorMessage(error=str(data["error"]))

    scoped = bool(data.get("fileChanged"))
    if scoped or data.get("packages") is not None:
        try:
            model = StructuralModel.model_validate(data)
        except ValidationError as e:
            raise ProtocolError(
                f"Malformed snapshot: {e.error_count()} validation error(s)",
                {"errors": e.errors(include_url=False)},
            ) from e
        return SnapshotMessage(model=model, scoped=scoped)

    if data.get("clearLayout"):
        return ClearLayoutMessage()

    raise ProtocolError(
        "Unrecognized message from watcher", {"keys": sorted(data.keys())}
    )


def encode_command(
    intent: EditIntent, packages: Iterable[Package] | None = None
) -> str:
    """Encode an edit intent as an outbound command.

    Args:
        intent: Edit to forward to the watcher
        packages: Optional package list to attach (``packages`` key)

    Returns:
        JSON text frame
    """
    payload: dict[str, Any] = intent.to_wire()
    if packages is not None:
        payload["packages"] = [package.to_wire() for package in packages]
    return orjson.dumps(payload).decode()
