"""JSONL audit trail for bridge sessions (``logs/ops_events.jsonl``).

One record per line: ``timestamp``, ``operator``, ``host``, ``component``,
``action``, ``status``, then ``message`` and ``details`` when given.
"""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

REPO_ROOT = Path(__file__).resolve().parents[2]
LOG_DIR_ENV = "MYO_OSC_LOG_DIR"
LOG_FILENAME = "ops_events.jsonl"


def resolve_log_dir() -> Path:
    raw = os.environ.get(LOG_DIR_ENV)
    if not raw:
        return REPO_ROOT / "logs"
    candidate = Path(raw).expanduser()
    return candidate if candidate.is_absolute() else REPO_ROOT / candidate


def _operator() -> str:
    for var in ("OPERATOR_ID", "USER", "USERNAME"):
        if os.environ.get(var):
            return os.environ[var]
    return "unknown"


class AuditLogger:
    """Append-only event log shared by the bridge and its helper scripts."""

    def __init__(self, log_dir: Path | None = None, *, component: str = "myo-osc"):
        log_dir = Path(log_dir) if log_dir is not None else resolve_log_dir()
        log_dir.mkdir(parents=True, exist_ok=True)
        self.log_path = log_dir / LOG_FILENAME
        self.component = component
        self.operator = _operator()
        self.host = os.environ.get("HOSTNAME", "unknown_host")

    def write(self, action: str, status: str = "info", message: str | None = None, details: Any = None) -> None:
        event: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "operator": self.operator,
            "host": self.host,
            "component": self.component,
            "action": action,
            "status": status,
        }
        if message:
            event["message"] = message
        if details is not None:
            event["details"] = details
        with self.log_path.open("a", encoding="utf-8") as fh:
            fh.write(json.dumps(event, ensure_ascii=False) + "\n")


def read_events(log_dir: Path | None = None) -> List[Dict[str, Any]]:
    """Load every record written so far; an absent log reads as empty."""

    log_dir = Path(log_dir) if log_dir is not None else resolve_log_dir()
    log_path = log_dir / LOG_FILENAME
    if not log_path.exists():
        return []
    with log_path.open(encoding="utf-8") as fh:
        return [json.loads(line) for line in fh if line.strip()]
