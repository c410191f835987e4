"""Shared fixtures: a small two-package model as the watcher would push it."""

import asyncio

import orjson
import pytest
from websockets.exceptions import ConnectionClosedError

from struct_canvas.core.models import StructuralModel, struct_ref

SNAPSHOT = {
    "packages": [
        {
            "name": "main",
            "files": [
                {
                    "name": "main.go",
                    "structs": [
                        {
                            "name": "Server",
                            "fields": [
                                {"name": "addr", "type": {"literal": "string"}},
                                {
                                    "name": "conn",
                                    "type": {"literal": "*Conn", "structs": ["Conn"]},
                                },
                            ],
                            "methods": [
                                {
                                    "name": "Start",
                                    "parameters": None,
                                    "returnType": [{"literal": "error"}],
                                }
                            ],
                        },
                        {
                            "name": "Conn",
                            "fields": [{"name": "id", "type": {"literal": "int"}}],
                            "methods": None,
                        },
                    ],
                },
                {"name": "config.go", "structs": [{"name": "Config"}]},
            ],
        },
        {
            "name": "util",
            "files": [{"name": "util.go", "structs": [{"name": "Helper"}]}],
        },
    ],
    "edges": [
        {
            "from": {
                "packageName": "main",
                "fileName": "main.go",
                "structName": "Server",
                "fieldTypeName": "conn",
            },
            "to": {"packageName": "main", "fileName": "main.go", "structName": "Conn"},
        }
    ],
    "globalFunctions": [
        {
            "name": "NewServer",
            "package": "main",
            "file": "main.go",
            "parameters": [{"name": "addr", "type": {"literal": "string"}}],
            "returnType": [{"literal": "*Server", "structs": ["Server"]}],
        },
        {
            "name": "Must",
            "package": "util",
            "file": "util.go",
            "parameters": None,
            "returnType": None,
        },
    ],
}


@pytest.fixture
def snapshot_data() -> dict:
    return SNAPSHOT


@pytest.fixture
def model() -> StructuralModel:
    return StructuralModel.model_validate(SNAPSHOT)


@pytest.fixture
def server_ref():
    return struct_ref("main", "main.go", "Server")


@pytest.fixture
def conn_ref():
    return struct_ref("main", "main.go", "Conn")


_END = object()


class FakeWebSocket:
    """In-memory stand-in for a websockets client connection."""

    def __init__(self):
        self.incoming: asyncio.Queue = asyncio.Queue()
        self.sent: list[str] = []
        self.closed = False

    def push(self, payload) -> None:
        """Queue an inbound frame (dicts are JSON-encoded)."""
        frame = payload if isinstance(payload, str) else orjson.dumps(payload).decode()
        self.incoming.put_nowait(frame)

    def drop(self) -> None:
        """Simulate the watcher going away without a close frame."""
        self.incoming.put_nowait(ConnectionClosedError(None, None))

    async def send(self, frame: str) -> None:
        self.sent.append(frame)

    async def close(self) -> None:
        self.closed = True
        self.incoming.put_nowait(_END)

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self.incoming.get()
        if item is _END:
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise item
        return item


@pytest.fixture
def make_ws():
    return FakeWebSocket
