"""engine.logging

Small helpers for storing run logs.

A run log is JSON-serializable so it can be exported/imported later.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List

from core.state import Allocations, GameState, Metrics, RoundResult, metrics_delta, metrics_to_dict

RUN_EXPORT_VERSION = 1


def round_log(*, round_no: int, metrics_before: Metrics, allocations: Allocations, result: RoundResult) -> Dict[str, Any]:
    return {
        "round": int(round_no),
        "allocations": {str(k): int(v) for k, v in allocations.items()},
        "before": metrics_to_dict(metrics_before),
        "after": metrics_to_dict(result.metrics_after),
        "delta": metrics_to_dict(metrics_delta(metrics_before, result.metrics_after)),
        "synergies": [s.to_dict() for s in result.active_synergies],
        "disasters": [d.to_dict() for d in result.triggered_disasters],
    }


def make_run_export(*, seed: int, config: Dict[str, Any], initial_state: GameState, round_logs: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "version": RUN_EXPORT_VERSION,
        "seed": int(seed),
        "config": dict(config),
        "initial_state": initial_state.to_dict(),
        "round_logs": list(round_logs),
    }


def dumps_run_export(obj: Dict[str, Any]) -> str:
    return json.dumps(obj, ensure_ascii=False, indent=2, sort_keys=True)
