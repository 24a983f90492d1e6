from __future__ import annotations
import json
import aiosqlite
from datetime import datetime
from typing import List, Optional
from ..domain.models import ActionEvent, SnapshotRecord


class SQLiteRepository:
    def __init__(self, path: str) -> None:
        self._path = path

    async def init(self) -> None:
        async with aiosqlite.connect(self._path) as db:
            await db.execute(
                """
                CREATE TABLE IF NOT EXISTS snapshots (
                    ts_utc TEXT NOT NULL,
                    temperature REAL,
                    humidity REAL,
                    soil_moisture REAL,
                    light_intensity REAL
                )
                """
            )
            await db.execute(
                """
                CREATE TABLE IF NOT EXISTS actions (
                    ts_utc TEXT NOT NULL,
                    actuator_id TEXT NOT NULL,
                    state INTEGER NOT NULL,
                    reason TEXT NOT NULL,
                    source TEXT NOT NULL
                )
                """
            )
            await db.execute(
                """
                CREATE TABLE IF NOT EXISTS schedules (
                    user_id TEXT NOT NULL,
                    day INTEGER NOT NULL,
                    entries TEXT NOT NULL,
                    saved_at TEXT NOT NULL,
                    PRIMARY KEY (user_id, day)
                )
                """
            )
            await db.execute("CREATE INDEX IF NOT EXISTS idx_snapshots_ts ON snapshots(ts_utc)")
            await db.execute("CREATE INDEX IF NOT EXISTS idx_actions_ts ON actions(ts_utc)")
            await db.commit()

    async def insert_snapshot(self, r: SnapshotRecord) -> None:
        async with aiosqlite.connect(self._path) as db:
            await db.execute(
                "INSERT INTO snapshots(ts_utc,temperature,humidity,soil_moisture,light_intensity) VALUES (?,?,?,?,?)",
                (r.ts_utc.isoformat(), r.temperature, r.humidity, r.soil_moisture, r.light_intensity),
            )
            await db.commit()

    async def insert_action(self, a: ActionEvent) -> None:
        async with aiosqlite.connect(self._path) as db:
            await db.execute(
                "INSERT INTO actions(ts_utc,actuator_id,state,reason,source) VALUES (?,?,?,?,?)",
                (a.ts_utc.isoformat(), a.actuator_id, 1 if a.state else 0, a.reason, a.source),
            )
            await db.commit()

    async def query_snapshots(self, start_ts: str, end_ts: str, limit: int) -> List[SnapshotRecord]:
        async with aiosqlite.connect(self._path) as db:
            cur = await db.execute(
                """
                SELECT ts_utc,temperature,humidity,soil_moisture,light_intensity
                FROM snapshots
                WHERE ts_utc >= ? AND ts_utc <= ?
                ORDER BY ts_utc DESC
                LIMIT ?
                """,
                (start_ts, end_ts, limit),
            )
            rows = await cur.fetchall()
        out = [
            SnapshotRecord(
                ts_utc=datetime.fromisoformat(ts),
                temperature=t,
                humidity=h,
                soil_moisture=sm,
                light_intensity=li,
            )
            for ts, t, h, sm, li in rows
        ]
        return list(reversed(out))

    async def query_actions(self, start_ts: str, end_ts: str, limit: int) -> List[ActionEvent]:
        async with aiosqlite.connect(self._path) as db:
            cur = await db.execute(
                """
                SELECT ts_utc,actuator_id,state,reason,source
                FROM actions
                WHERE ts_utc >= ? AND ts_utc <= ?
                ORDER BY ts_utc DESC
                LIMIT ?
                """,
                (start_ts, end_ts, limit),
            )
            rows = await cur.fetchall()
        out = [
            ActionEvent(
                ts_utc=datetime.fromisoformat(ts),
                actuator_id=aid,
                state=bool(st),
                reason=reason,
                source=src,
            )
            for ts, aid, st, reason, src in rows
        ]
        return list(reversed(out))

    async def save_schedule(self, user_id: str, day: int, entries: list[dict], saved_at: datetime) -> None:
        async with aiosqlite.connect(self._path) as db:
            await db.execute(
                "INSERT INTO schedules(user_id, day, entries, saved_at) VALUES (?, ?, ?, ?) "
                "ON CONFLICT(user_id, day) DO UPDATE SET entries=excluded.entries, saved_at=excluded.saved_at",
                (user_id, day, json.dumps(entries), saved_at.isoformat()),
            )
            await db.commit()

    async def get_schedule(self, user_id: str, day: int) -> Optional[list[dict]]:
        async with aiosqlite.connect(self._path) as db:
            cur = await db.execute(
                "SELECT entries FROM schedules WHERE user_id = ? AND day = ?",
                (user_id, day),
            )
            row = await cur.fetchone()
        if row is None:
            return None
        return json.loads(row[0])
