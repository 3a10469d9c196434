# src/pipegen/core/pipeline/serialization.py
"""
Persistência de pipelines em JSON.

Formato de fio:

    {
      "workflowName": "demo",
      "sources": [
        {"dataTableField": "infile", "id": 0,
         "output": {"name": "", "format": "text", "required": true},
         "position": {"X": 10, "Y": 20}}
      ],
      "sinks": [
        {"dataTableField": "outfile", "id": 2,
         "input": {"name": "", "format": "csv", "required": true},
         "position": {"X": 10, "Y": 200}}
      ],
      "modules": [
        {"moduleName": "convert", "id": 1, "position": {"X": 10, "Y": 100}}
      ],
      "connections": [
        {"start": "sources[0]", "stop": "modules[1].in"},
        {"start": "modules[1].out", "stop": "sinks[2]"}
      ]
    }

Decisões:
    - Saída determinística: mesma ordem de blocos e conexões, JSON com
      indentação de dois espaços e newline final
    - Load tudo-ou-nada: qualquer falha descarta o pipeline parcial
    - Conexões carregadas passam pela mesma validação de `connect`
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Dict, List

from pipegen.core.exceptions import InvalidPipelineDefinition, PipegenException
from pipegen.core.toolbox import Toolbox

from .blocks import Module
from .graph import Pipeline
from .types import BlockKind, PortRef, Position


_ENDPOINT = re.compile(r"^(sources|sinks|modules)\[(\d+)\](?:\.(.+))?$")

_COLLECTIONS = {
    "sources": BlockKind.SOURCE,
    "sinks": BlockKind.SINK,
    "modules": BlockKind.MODULE,
}


def _position_to_dict(p: Position) -> Dict[str, int]:
    return {"X": p.x, "Y": p.y}


def _position_from_dict(data: Any, where: str) -> Position:
    if not isinstance(data, dict):
        raise InvalidPipelineDefinition(message=f"{where}.position must be a mapping", details={})
    x, y = data.get("X"), data.get("Y")
    if not all(isinstance(v, int) and not isinstance(v, bool) for v in (x, y)):
        raise InvalidPipelineDefinition(
            message=f"{where}.position must have integer X and Y",
            details={"position": data},
        )
    return Position(x, y)


def _endpoint_text(pipeline: Pipeline, ref: PortRef, direction: str) -> str:
    if ref.kind == BlockKind.SOURCE:
        return f"sources[{ref.block_id}]"
    if ref.kind == BlockKind.SINK:
        return f"sinks[{ref.block_id}]"
    module = pipeline.block(BlockKind.MODULE, ref.block_id)
    port = module.output(ref.index) if direction == "output" else module.input(ref.index)
    return f"modules[{ref.block_id}].{port.name}"


def _endpoint_ref(pipeline: Pipeline, text: Any, direction: str) -> PortRef:
    m = _ENDPOINT.match(text) if isinstance(text, str) else None
    if not m:
        raise InvalidPipelineDefinition(
            message=f"invalid connection endpoint: {text!r}",
            details={"endpoint": text},
        )
    collection, raw_id, port_name = m.group(1), int(m.group(2)), m.group(3)
    kind = _COLLECTIONS[collection]

    allowed = (BlockKind.SOURCE, BlockKind.MODULE) if direction == "output" else (BlockKind.SINK, BlockKind.MODULE)
    if kind not in allowed:
        raise InvalidPipelineDefinition(
            message=f"{collection} cannot be a connection {'start' if direction == 'output' else 'stop'}",
            details={"endpoint": text},
        )

    if kind != BlockKind.MODULE:
        if port_name is not None:
            raise InvalidPipelineDefinition(
                message=f"invalid connection endpoint: {text!r}",
                details={"endpoint": text},
            )
        return PortRef(kind, raw_id, 0)

    if port_name is None:
        raise InvalidPipelineDefinition(
            message=f"module endpoint must name a port: {text!r}",
            details={"endpoint": text},
        )
    module: Module = pipeline.block(BlockKind.MODULE, raw_id)  # type: ignore[assignment]
    index = module.output_index(port_name) if direction == "output" else module.input_index(port_name)
    return PortRef(kind, raw_id, index)


def pipeline_to_dict(pipeline: Pipeline) -> Dict[str, Any]:
    def port(param) -> Dict[str, Any]:
        return {"name": "", "format": param.format.name, "required": param.required}

    return {
        "workflowName": pipeline.name,
        "sources": [
            {
                "dataTableField": s.column,
                "id": s.id,
                "output": port(s.parameter),
                "position": _position_to_dict(s.position),
            }
            for s in pipeline.sources
        ],
        "sinks": [
            {
                "dataTableField": s.column,
                "id": s.id,
                "input": port(s.parameter),
                "position": _position_to_dict(s.position),
            }
            for s in pipeline.sinks
        ],
        "modules": [
            {"moduleName": m.name, "id": m.id, "position": _position_to_dict(m.position)}
            for m in pipeline.modules
        ],
        "connections": [
            {
                "start": _endpoint_text(pipeline, c.start, "output"),
                "stop": _endpoint_text(pipeline, c.stop, "input"),
            }
            for c in pipeline.connections
        ],
    }


def dumps_pipeline(pipeline: Pipeline) -> str:
    return json.dumps(pipeline_to_dict(pipeline), ensure_ascii=False, indent=2) + "\n"


def _require_list(data: Dict[str, Any], key: str) -> List[Any]:
    value = data.get(key)
    if not isinstance(value, list):
        raise InvalidPipelineDefinition(
            message=f"pipeline '{key}' must be a list",
            details={"key": key},
        )
    return value


def _port_from_dict(data: Any, where: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise InvalidPipelineDefinition(message=f"{where} port must be a mapping", details={})
    if not isinstance(data.get("format"), str):
        raise InvalidPipelineDefinition(message=f"{where} port must declare a format", details={})
    required = data.get("required", True)
    if not isinstance(required, bool):
        raise InvalidPipelineDefinition(message=f"{where} port required must be boolean", details={})
    return {"format": data["format"], "required": required}


def _column(data: Dict[str, Any], where: str) -> str:
    column = data.get("dataTableField")
    if not isinstance(column, str) or not column.strip():
        raise InvalidPipelineDefinition(message=f"{where}.dataTableField is required", details={})
    return column


def _block_id(data: Dict[str, Any], where: str) -> int:
    block_id = data.get("id")
    if isinstance(block_id, bool) or not isinstance(block_id, int):
        raise InvalidPipelineDefinition(message=f"{where}.id must be an integer", details={"id": block_id})
    return block_id


def pipeline_from_dict(data: Any, toolbox: Toolbox) -> Pipeline:
    """
    Reconstrói um `Pipeline` a partir do formato de fio.

    Raises:
        InvalidPipelineDefinition: qualquer falha estrutural, de referência
            (módulo/formato desconhecido) ou de conexão (formato
            incompatível, porta ocupada, ciclo). A exceção original é
            preservada em `details["cause"]` e no encadeamento.
    """
    if not isinstance(data, dict):
        raise InvalidPipelineDefinition(message="pipeline must be a mapping", details={})

    name = data.get("workflowName")
    if not isinstance(name, str):
        raise InvalidPipelineDefinition(message="workflowName is required", details={})

    pipeline = Pipeline(name, toolbox.formats)
    where = "pipeline"
    try:
        for i, s in enumerate(_require_list(data, "sources")):
            where = f"sources[{i}]"
            if not isinstance(s, dict):
                raise InvalidPipelineDefinition(message=f"{where} must be a mapping", details={})
            port = _port_from_dict(s.get("output"), where)
            pipeline.add_source(
                _column(s, where),
                port["format"],
                required=port["required"],
                position=_position_from_dict(s.get("position"), where),
                block_id=_block_id(s, where),
            )

        for i, s in enumerate(_require_list(data, "sinks")):
            where = f"sinks[{i}]"
            if not isinstance(s, dict):
                raise InvalidPipelineDefinition(message=f"{where} must be a mapping", details={})
            port = _port_from_dict(s.get("input"), where)
            pipeline.add_sink(
                _column(s, where),
                port["format"],
                required=port["required"],
                position=_position_from_dict(s.get("position"), where),
                block_id=_block_id(s, where),
            )

        for i, m in enumerate(_require_list(data, "modules")):
            where = f"modules[{i}]"
            if not isinstance(m, dict):
                raise InvalidPipelineDefinition(message=f"{where} must be a mapping", details={})
            module_name = m.get("moduleName")
            if not isinstance(module_name, str) or module_name not in toolbox.modules:
                raise InvalidPipelineDefinition(
                    message=f"{where} references unknown module '{module_name}'",
                    details={"module": module_name},
                )
            pipeline.add_module(
                toolbox.modules[module_name],
                position=_position_from_dict(m.get("position"), where),
                block_id=_block_id(m, where),
            )

        for i, c in enumerate(_require_list(data, "connections")):
            where = f"connections[{i}]"
            if not isinstance(c, dict):
                raise InvalidPipelineDefinition(message=f"{where} must be a mapping", details={})
            pipeline.connect(
                _endpoint_ref(pipeline, c.get("start"), "output"),
                _endpoint_ref(pipeline, c.get("stop"), "input"),
            )
    except InvalidPipelineDefinition:
        raise
    except PipegenException as e:
        raise InvalidPipelineDefinition(
            message=f"{where}: {e.message}",
            details={"where": where, "cause": e.__class__.__name__, **e.details},
            hint=e.hint,
        ) from e

    pipeline.mark_saved()
    return pipeline


def loads_pipeline(text: str, toolbox: Toolbox) -> Pipeline:
    try:
        data = json.loads(text)
    except ValueError as e:
        raise InvalidPipelineDefinition(message=f"invalid pipeline JSON: {e}", details={}) from e
    return pipeline_from_dict(data, toolbox)


def load_pipeline(path: str | Path, toolbox: Toolbox) -> Pipeline:
    p = Path(path)
    if not p.is_file():
        raise InvalidPipelineDefinition(message=f"pipeline file not found: {p}", details={"path": str(p)})
    return loads_pipeline(p.read_text(encoding="utf-8"), toolbox)


def save_pipeline(pipeline: Pipeline, path: str | Path) -> Path:
    """Grava o pipeline e limpa a flag de alterações não salvas."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(dumps_pipeline(pipeline), encoding="utf-8")
    pipeline.mark_saved()
    return p
