# tests/core/traceability/test_manifest_phase_updates.py
"""
Testes de atualização incremental de fases no Manifest.

Os testes asseguram que:
- `phase_started` registra comando, status `running` e evento
- `phase_finished` calcula a duração a partir do início
- `phase_failed` registra o ErrorPayload serializado
- uma fase repetida sobrescreve o estado, mas o Event Log guarda tudo
"""

from datetime import datetime, timedelta, timezone

from pipegen.core.errors import driver_timeout
from pipegen.core.traceability import create_manifest, phase_failed, phase_finished, phase_started

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


def test_started_then_finished():
    m = _manifest()
    phase_started(m, phase="setup", command="make -f Makefile setupall", ts=T0)
    assert m.phases["setup"]["status"] == "running"

    phase_finished(m, phase="setup", ts=T0 + timedelta(milliseconds=1500), returncode=0)
    p = m.phases["setup"]
    assert p["status"] == "succeeded"
    assert p["duration_ms"] == 1500
    assert p["returncode"] == 0
    assert p["command"] == "make -f Makefile setupall"
    assert [e["event_type"] for e in m.events] == ["phase_started", "phase_finished"]
    assert m.events[1]["payload"] == {"status": "succeeded", "returncode": 0, "duration_ms": 1500}


def test_failed_records_error_payload():
    m = _manifest()
    error = driver_timeout(command="make -f Makefile all", phase="main", timeout_seconds=10).to_dict()
    phase_started(m, phase="main", command="make -f Makefile all", ts=T0)
    phase_failed(m, phase="main", ts=T0 + timedelta(seconds=10), error=error)

    assert m.phases["main"]["status"] == "failed"
    assert m.phases["main"]["error"]["type"] == "DRIVER_TIMEOUT"
    assert m.events[-1] == {
        "event_type": "phase_failed",
        "timestamp": "2024-01-01T00:00:10+00:00",
        "phase": "main",
        "payload": {"error": error},
    }


def test_repeated_phase_overwrites_state_but_keeps_events():
    m = _manifest()
    for rc, status in ((2, "failed"), (0, "succeeded")):
        phase_started(m, phase="main", command="make all", ts=T0)
        phase_finished(m, phase="main", ts=T0, returncode=rc, status=status)

    assert m.phases["main"]["status"] == "succeeded"
    assert m.phases["main"]["returncode"] == 0
    assert len(m.events) == 4


def test_finished_without_start_has_zero_duration():
    m = _manifest()
    phase_finished(m, phase="clean", ts=T0, returncode=0)
    assert m.phases["clean"]["status"] == "succeeded"
    assert m.phases["clean"]["duration_ms"] == 0
