# tests/core/traceability/test_manifest_create.py
"""
Testes de criação do Manifest de análise.

Os testes asseguram que:
- o Manifest é criado com metadados da análise e hashes das entradas
- `phases` e `events` existem desde a criação e iniciam vazios
- nenhum evento é registrado implicitamente

Invariantes:
    - `analysis.name`, `analysis.created_at` e `analysis.pipegen_version` estão sempre presentes
    - `inputs` contém os quatro hashes (pipeline, tabela, configuração, script)

Limites explícitos:
    - Não valida persistência em disco (ver test_manifest_round_trip)
"""

from datetime import datetime, timedelta, timezone

import pytest

try:
    from pipegen.core.traceability.manifest import AnalysisManifest, create_manifest
except Exception as e:  # noqa: BLE001
    create_manifest = None
    AnalysisManifest = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(
            "Missing manifest module. Implement src/pipegen/core/traceability/manifest.py\n"
            f"Import error: {_IMPORT_ERR}"
        )


def _manifest(created_at):
    return create_manifest(
        analysis_name="demo",
        pipeline_name="convert-demo",
        created_at=created_at,
        pipegen_version="0.1.0",
        pipeline_hash="p" * 64,
        table_hash="t" * 64,
        config_hash="c" * 64,
        script_hash="s" * 64,
    )


def test_create_manifest_minimal_structure():
    _require_imports()
    m = _manifest(datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc))

    assert isinstance(m, AnalysisManifest)
    assert m.analysis == {
        "name": "demo",
        "pipeline": "convert-demo",
        "created_at": "2024-03-01T12:00:00+00:00",
        "pipegen_version": "0.1.0",
    }
    assert m.inputs["script_hash"] == "s" * 64
    assert sorted(m.inputs) == ["config_hash", "pipeline_hash", "script_hash", "table_hash"]
    assert m.phases == {}
    assert m.runs == []
    assert m.last_run is None
    assert m.events == []


def test_timestamps_are_normalized_to_utc():
    _require_imports()
    naive = _manifest(datetime(2024, 3, 1, 12, 0))
    assert naive.analysis["created_at"] == "2024-03-01T12:00:00+00:00"

    local = _manifest(datetime(2024, 3, 1, 9, 0, tzinfo=timezone(timedelta(hours=-3))))
    assert local.analysis["created_at"] == "2024-03-01T12:00:00+00:00"
