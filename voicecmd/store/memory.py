"""In-process DataStore for local runs and tests."""

import asyncio
import copy
import itertools
from typing import Any

from .client import ENTITY_PATHS, DataAccessError
from ..tools.dates import format_date
from ..utils.timezone import today as local_today


class InMemoryDataStore:
    def __init__(self, seed: dict[str, list[dict]] | None = None):
        self._ids = itertools.count(1)
        self.records: dict[str, list[dict]] = {entity: [] for entity in ENTITY_PATHS}
        self.lessons: dict[tuple[Any, int], dict] = {}
        # (method, entity, record_id) per call, in order
        self.calls: list[tuple] = []
        # method name -> exception to raise on the next call
        self.failures: dict[str, Exception] = {}
        self.delay: float = 0
        for entity, rows in (seed or {}).items():
            for row in rows:
                self._insert(entity, dict(row))

    def _insert(self, entity: str, fields: dict) -> dict:
        record_id = fields.get("id")
        if record_id is None:
            taken = {r["id"] for r in self._rows(entity)}
            record_id = next(i for i in self._ids if i not in taken)
        record = {**fields, "id": record_id}
        self._rows(entity).append(record)
        return record

    def _rows(self, entity: str) -> list[dict]:
        if entity not in self.records:
            raise DataAccessError(f"Unknown entity {entity!r}")
        return self.records[entity]

    def _find(self, entity: str, record_id: Any) -> dict:
        for row in self._rows(entity):
            if row["id"] == record_id:
                return row
        raise DataAccessError(f"{entity} {record_id} does not exist")

    async def _enter(self, method: str, entity: str | None = None, record_id: Any = None) -> None:
        self.calls.append((method, entity, record_id))
        if self.delay:
            await asyncio.sleep(self.delay)
        error = self.failures.pop(method, None)
        if error:
            raise error

    def called(self, method: str) -> bool:
        return any(call[0] == method for call in self.calls)

    async def list(self, entity: str, filters: dict | None = None) -> list[dict]:
        await self._enter("list", entity)
        rows = self._rows(entity)
        for key, value in (filters or {}).items():
            if value is not None:
                rows = [r for r in rows if r.get(key) == value]
        return copy.deepcopy(rows)

    async def create(self, entity: str, fields: dict) -> dict:
        await self._enter("create", entity)
        return copy.deepcopy(self._insert(entity, dict(fields)))

    async def update(self, entity: str, record_id: Any, fields: dict) -> dict:
        await self._enter("update", entity, record_id)
        record = self._find(entity, record_id)
        record.update(fields)
        return copy.deepcopy(record)

    async def delete(self, entity: str, record_id: Any) -> None:
        await self._enter("delete", entity, record_id)
        record = self._find(entity, record_id)
        self._rows(entity).remove(record)

    async def update_lesson(self, course_id: Any, lesson_number: int, fields: dict) -> dict:
        await self._enter("update_lesson", "course", course_id)
        self._find("course", course_id)
        lesson = self.lessons.setdefault((course_id, lesson_number), {"number": lesson_number})
        lesson.update(fields)
        return dict(lesson)

    async def dashboard_stats(self) -> dict:
        await self._enter("dashboard_stats")
        today = format_date(local_today())
        tasks = self.records["task"]
        goals = [g for g in self.records["goal"] if g.get("status") == "active"]
        return {
            "tasksToday": sum(1 for t in tasks if t.get("deadline") == today and t.get("status") != "done"),
            "activeCourses": sum(1 for c in self.records["course"] if c.get("status") == "in-progress"),
            "readingItems": sum(1 for r in self.records["reading"] if r.get("status") in ("to-read", "reading")),
            "goalsProgress": round(sum(g.get("progress", 0) for g in goals) / len(goals)) if goals else 0,
        }
