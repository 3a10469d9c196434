# tests/core/engine/test_execution_context.py
"""
Testes do ExecutionContext (log estruturado em memória e warnings por fase).
"""

from datetime import datetime, timezone

from pipegen.core.engine import ExecutionContext


def _ctx():
    return ExecutionContext(analysis="demo", created_at=datetime.now(timezone.utc), config={"execution": {}})


def test_log_appends_structured_event():
    ctx = _ctx()
    ctx.log(phase="setup", level="info", message="phase started", command="make -f Makefile setupall")
    [event] = ctx.events
    assert event["analysis"] == "demo"
    assert event["phase"] == "setup"
    assert event["level"] == "info"
    assert event["command"] == "make -f Makefile setupall"
    assert datetime.fromisoformat(event["timestamp"]).tzinfo is not None


def test_events_for_filters_by_phase_in_order():
    ctx = _ctx()
    ctx.log(phase="setup", level="info", message="a")
    ctx.log(phase="main", level="info", message="b")
    ctx.log(phase="setup", level="error", message="c")
    assert [e["message"] for e in ctx.events_for("setup")] == ["a", "c"]
    assert ctx.events_for("clean") == []


def test_warnings_grouped_by_phase():
    ctx = _ctx()
    ctx.add_warning(phase="create", message="unused table column: notes")
    ctx.add_warning(phase="create", message="unused table column: extra")
    assert ctx.warnings == {"create": ["unused table column: notes", "unused table column: extra"]}


def test_warning_is_also_logged_as_event():
    ctx = _ctx()
    ctx.add_warning(phase="create", message="unused table column: notes")
    [event] = ctx.events_for("create")
    assert event["level"] == "warning"
    assert ctx.warnings_for("create") == ["unused table column: notes"]
    assert ctx.warnings_for("main") == []


def test_reserved_fields_are_not_overwritten_by_extras():
    ctx = _ctx()
    ctx.log(phase="main", level="error", message="make failed", analysis="other", returncode=2)
    event = ctx.last_event()
    assert event["analysis"] == "demo"
    assert event["returncode"] == 2
    assert ctx.errors() == [event]


def test_last_event_by_phase():
    ctx = _ctx()
    assert ctx.last_event() is None
    ctx.log(phase="setup", level="info", message="phase started")
    ctx.log(phase="setup", level="info", message="phase finished")
    ctx.log(phase="main", level="info", message="phase started")
    assert ctx.last_event("setup")["message"] == "phase finished"
    assert ctx.last_event("clean") is None
