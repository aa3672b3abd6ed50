from datetime import date

import pytest

from voicecmd.store.memory import InMemoryDataStore
from voicecmd.store.runs import clear_runs

# A Monday
REF = date(2025, 2, 10)


@pytest.fixture(autouse=True)
def _no_openai(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    clear_runs()
    yield
    clear_runs()


@pytest.fixture
def store():
    return InMemoryDataStore(seed={
        "task": [
            {"id": 1, "title": "Review Report", "status": "todo", "priority": "medium", "deadline": "2025-02-10"},
            {"id": 2, "title": "Call Client", "status": "todo", "priority": "high", "deadline": "2025-02-11"},
            {"id": 3, "title": "Pay Rent", "status": "todo", "priority": "low", "deadline": "2025-02-03"},
            {"id": 4, "title": "Review Budget", "status": "done", "priority": "low", "deadline": "2025-02-01"},
        ],
        "course": [
            {"id": 10, "name": "JavaScript Course", "status": "in-progress", "progress": 20},
        ],
        "reading": [
            {"id": 20, "title": "Clean Code", "status": "to-read"},
        ],
        "goal": [
            {"id": 30, "title": "Learn React", "status": "active", "progress": 40},
        ],
    })
