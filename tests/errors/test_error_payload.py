# tests/errors/test_error_payload.py
"""
Testes do modelo canônico de erro (ErrorPayload).

Os testes asseguram que:
- exceções tipadas do Pipegen são mapeadas para códigos estáveis
- message, details e hint são preservados
- exceções genéricas viram DRIVER_EXECUTION_ERROR sem stack trace
"""

import json

import pytest

from pipegen.core import errors as E
from pipegen.core.exceptions import (
    AnalysisAlreadyRunning,
    FormatCycle,
    IncompatibleFormat,
    InvalidTable,
    MissingRequiredInput,
    PortOccupied,
    UnknownBlock,
)


@pytest.mark.parametrize(
    "exc_type,code",
    [
        (FormatCycle, E.FORMAT_CYCLE),
        (IncompatibleFormat, E.GRAPH_INCOMPATIBLE_FORMAT),
        (PortOccupied, E.GRAPH_PORT_OCCUPIED),
        (UnknownBlock, E.GRAPH_INVALID_DEFINITION),
        (InvalidTable, E.TABLE_INVALID),
        (MissingRequiredInput, E.GENERATION_MISSING_REQUIRED_INPUT),
    ],
)
def test_typed_exceptions_map_to_stable_codes(exc_type, code):
    payload = E.exception_to_payload(exc_type(message="boom", details={"k": 1}, hint="fix it"))
    assert payload.type == code
    assert payload.message == "boom"
    assert payload.details == {"k": 1}
    assert payload.hint == "fix it"
    assert payload.decision_required is False


def test_unmapped_pipegen_exception_uses_class_name():
    payload = E.exception_to_payload(AnalysisAlreadyRunning(message="busy", details={}))
    assert payload.type == "AnalysisAlreadyRunning"


def test_generic_exception_is_wrapped():
    payload = E.exception_to_payload(RuntimeError("disk on fire"))
    assert payload.type == E.DRIVER_EXECUTION_ERROR
    assert payload.message == "disk on fire"
    assert payload.details == {"exception_class": "RuntimeError"}
    assert "Traceback" not in json.dumps(payload.to_dict())


def test_driver_factories():
    spawn = E.driver_spawn_failed(command="make -f Makefile all", phase="main", reason="No such file")
    assert spawn.type == E.DRIVER_SPAWN_FAILED
    assert spawn.details == {"command": "make -f Makefile all", "phase": "main", "reason": "No such file"}
    assert spawn.hint

    unparsable = E.driver_unparsable_output(command="make target_ratio", phase="poll", output="x" * 500)
    assert unparsable.type == E.DRIVER_UNPARSABLE_OUTPUT
    assert len(unparsable.details["output"]) == 200

    log_io = E.driver_log_io(path="/a/STDOUT.txt", phase="main", reason="Is a directory")
    assert log_io.type == E.DRIVER_LOG_IO
    assert log_io.details == {"path": "/a/STDOUT.txt", "phase": "main", "reason": "Is a directory"}


def test_payload_is_json_serializable():
    payload = E.driver_timeout(command="make all", phase="main", timeout_seconds=1.5)
    data = json.loads(json.dumps(payload.to_dict()))
    assert data == {
        "type": "DRIVER_TIMEOUT",
        "message": payload.message,
        "details": {"command": "make all", "phase": "main", "timeout_seconds": 1.5},
        "hint": payload.hint,
        "decision_required": False,
    }
