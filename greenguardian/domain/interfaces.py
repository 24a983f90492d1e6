from __future__ import annotations
from datetime import datetime
from typing import Any, Callable, Optional, Protocol, runtime_checkable
from .models import ActionEvent, ActuatorCommand, SnapshotRecord


RootCallback = Callable[[dict[str, Any]], None]


@runtime_checkable
class RealtimeStore(Protocol):
    async def start(self) -> None:
        ...

    async def stop(self) -> None:
        ...

    async def get_root(self) -> dict[str, Any]:
        ...

    async def set_value(self, key: str, value: Any) -> None:
        ...

    def subscribe(self, callback: RootCallback) -> Callable[[], None]:
        ...


@runtime_checkable
class CommandSink(Protocol):
    async def send(self, command: ActuatorCommand) -> None:
        ...


@runtime_checkable
class Repository(Protocol):
    async def init(self) -> None:
        ...

    async def insert_snapshot(self, record: SnapshotRecord) -> None:
        ...

    async def insert_action(self, action: ActionEvent) -> None:
        ...

    async def query_snapshots(self, start_ts: str, end_ts: str, limit: int) -> list[SnapshotRecord]:
        ...

    async def query_actions(self, start_ts: str, end_ts: str, limit: int) -> list[ActionEvent]:
        ...

    async def save_schedule(self, user_id: str, day: int, entries: list[dict], saved_at: datetime) -> None:
        ...

    async def get_schedule(self, user_id: str, day: int) -> Optional[list[dict]]:
        ...
