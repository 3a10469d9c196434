# tests/core/traceability/test_manifest_event_log.py
"""
Testes do Event Log do Manifest.

Invariantes:
    - eventos são anexados na ordem das chamadas
    - `phase` e `payload` só aparecem quando informados
"""

from datetime import datetime, timedelta, timezone

from pipegen.core.traceability import add_event, create_manifest


def _manifest():
    return create_manifest(
        analysis_name="demo",
        pipeline_name="p",
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        pipegen_version="0.1.0",
        pipeline_hash="",
        table_hash="",
        config_hash="",
        script_hash="",
    )


def test_events_keep_call_order():
    m = _manifest()
    t0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
    add_event(m, event_type="script_written", ts=t0, phase="create", payload={"rows": 2})
    add_event(m, event_type="run_finished", ts=t0 + timedelta(seconds=3))

    assert m.events == [
        {
            "event_type": "script_written",
            "timestamp": "2024-01-01T00:00:00+00:00",
            "phase": "create",
            "payload": {"rows": 2},
        },
        {"event_type": "run_finished", "timestamp": "2024-01-01T00:00:03+00:00"},
    ]
