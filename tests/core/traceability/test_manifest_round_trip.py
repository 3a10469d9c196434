# tests/core/traceability/test_manifest_round_trip.py
"""
Testes de persistência do Manifest (save → load).

Invariantes:
    - o JSON gravado é determinístico (chaves ordenadas, indentação 2)
    - load reconstrói exatamente a mesma estrutura
"""

import json
from datetime import datetime, timezone

from pipegen.core.traceability import (
    add_event,
    create_manifest,
    load_manifest,
    phase_finished,
    phase_started,
    record_run,
    save_manifest,
)


def test_save_load_round_trip(tmp_path):
    t0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
    m = create_manifest(
        analysis_name="demo",
        pipeline_name="p",
        created_at=t0,
        pipegen_version="0.1.0",
        pipeline_hash="a",
        table_hash="b",
        config_hash="c",
        script_hash="d",
    )
    add_event(m, event_type="script_written", ts=t0, phase="create", payload={"warnings": ["unused table column: é"]})
    phase_started(m, phase="setup", command="make -f Makefile setupall", ts=t0)
    phase_finished(m, phase="setup", ts=t0, returncode=0)
    record_run(m, state="succeeded", ts=t0, returncode=0, error_markers=0)

    path = tmp_path / "nested" / "manifest.json"
    save_manifest(m, path)

    text = path.read_text(encoding="utf-8")
    assert text == json.dumps(m.to_dict(), ensure_ascii=False, indent=2, sort_keys=True)
    assert "é" in text

    loaded = load_manifest(path)
    assert loaded.to_dict() == m.to_dict()
    assert loaded.last_run["state"] == "succeeded"
