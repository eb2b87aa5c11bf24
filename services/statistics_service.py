from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict

from models.reply import CycleReport

LOGGER = logging.getLogger(__name__)
COUNTERS = ("cycles", "aborted_cycles", "replied", "skipped", "failed", "duplicate_risk")


class StatisticsService:
    """Very small JSON-backed store of cycle counters."""

    def __init__(self, stats_file: Path):
        self._stats_file = stats_file
        self._stats_file.parent.mkdir(parents=True, exist_ok=True)
        self._stats_file.touch(exist_ok=True)
        if not self._stats_file.read_text(encoding="utf-8").strip():
            self._write({})

    def _read(self) -> Dict:
        try:
            return json.loads(self._stats_file.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            LOGGER.warning("Stats file was corrupt, resetting %s", self._stats_file)
            self._write({})
            return {}

    def _write(self, payload: Dict) -> None:
        self._stats_file.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def record_cycle(self, report: CycleReport) -> None:
        stats = self._read()
        increments = {
            "cycles": 1,
            "aborted_cycles": int(report.aborted),
            "replied": report.replied,
            "skipped": report.skipped,
            "failed": report.failed,
            "duplicate_risk": report.duplicate_risk,
        }
        for key in COUNTERS:
            stats[key] = stats.get(key, 0) + increments[key]
        self._write(stats)

    def snapshot(self) -> Dict:
        return self._read()
