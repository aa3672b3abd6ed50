"""Bounded in-process log of voice runs (transcript, command, outcome)."""

import os
from collections import OrderedDict

from ..utils.timezone import now as local_now

_RUNS: "OrderedDict[str, dict]" = OrderedDict()


def _max_runs() -> int:
    return int(os.getenv("RUN_LOG_MAX", "200"))


def create_run(run_id: str, input_type: str, raw_input: str, run_type: str = "voice_command") -> dict:
    ts = local_now().isoformat()
    run = {
        "run_id": run_id,
        "run_type": run_type,
        "input_type": input_type,
        "raw_input": raw_input,
        "status": "created",
        "created_at": ts,
        "updated_at": ts,
    }
    _RUNS[run_id] = run
    while len(_RUNS) > _max_runs():
        _RUNS.popitem(last=False)
    return run


def update_run(run_id: str, **fields) -> dict | None:
    run = _RUNS.get(run_id)
    if run is None:
        return None
    run.update(fields)
    run["updated_at"] = local_now().isoformat()
    return run


def get_run(run_id: str) -> dict | None:
    return _RUNS.get(run_id)


def list_runs(limit: int = 20, run_type: str | None = None) -> list[dict]:
    """Most recent first."""
    runs = [r for r in reversed(_RUNS.values()) if run_type is None or r["run_type"] == run_type]
    return runs[:max(limit, 0)]


def clear_runs() -> None:
    _RUNS.clear()
