# tests/core/traceability/test_manifest_runs.py
"""
Testes do resumo de execuções (`runs`) no Manifest.

Invariantes:
    - cada `record_run` acrescenta um resumo numerado a partir de 1
    - o resumo é espelhado no Event Log como `run_finished`
"""

from datetime import datetime, timedelta, timezone

from pipegen.core.traceability import create_manifest, record_run

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _manifest():
    return create_manifest(
        analysis_name="demo",
        pipeline_name="p",
        created_at=T0,
        pipegen_version="0.1.0",
        pipeline_hash="",
        table_hash="",
        config_hash="",
        script_hash="",
    )


def test_runs_are_numbered_and_mirrored_in_events():
    m = _manifest()
    record_run(m, state="failed", ts=T0, returncode=2, error_markers=1)
    second = record_run(m, state="succeeded", ts=T0 + timedelta(minutes=5), returncode=0, error_markers=0)

    assert [r["number"] for r in m.runs] == [1, 2]
    assert m.last_run is second
    assert second["finished_at"] == "2024-01-01T00:05:00+00:00"
    assert [e["event_type"] for e in m.events] == ["run_finished", "run_finished"]
    assert m.events[0]["payload"]["error_markers"] == 1


def test_cancelled_run_is_flagged():
    m = _manifest()
    record_run(m, state="failed", ts=T0, returncode=None, error_markers=0, cancelled=True)
    assert m.last_run["cancelled"] is True
    assert m.last_run["returncode"] is None
