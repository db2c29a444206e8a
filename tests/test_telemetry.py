from __future__ import annotations

import json
from pathlib import Path

from telemetry.logger import MemoryTelemetry, TelemetryLogger


def test_publish_appends_jsonl(tmp_path: Path) -> None:
    path = tmp_path / "logs" / "telemetry.jsonl"
    sink = TelemetryLogger(str(path))
    sink.publish("drivetrain/heading_deg", 12.5)
    sink.publish("drivetrain/pose", {"x": 1.0, "y": 2.0, "heading_deg": 0.0})
    sink.close()

    lines = path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    first = json.loads(lines[0])
    assert first["key"] == "drivetrain/heading_deg"
    assert first["value"] == 12.5
    assert json.loads(lines[1])["value"]["y"] == 2.0


def test_publish_after_close_is_ignored(tmp_path: Path) -> None:
    path = tmp_path / "telemetry.jsonl"
    sink = TelemetryLogger(str(path))
    sink.close()
    sink.publish("ignored", object())

    assert path.read_text(encoding="utf-8") == ""


def test_memory_sink_history_is_bounded() -> None:
    sink = MemoryTelemetry(max_records=3)
    for k in range(5):
        sink.publish("drivetrain/heading_deg", float(k))

    assert [r["value"] for r in sink.records] == [2.0, 3.0, 4.0]
    assert sink.latest["drivetrain/heading_deg"] == 4.0
