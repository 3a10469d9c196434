# src/pipegen/core/engine/descriptor.py
"""
Descritor persistido de uma análise.

Formato JSON:

    {"toolbox": "<nome>", "analysis": "<nome>", "pipeline": "<nome>",
     "tablePath": "<caminho da tabela>"}

`tablePath` relativo é resolvido a partir da raiz do toolbox. Reabrir
uma análise recarrega toolbox, pipeline e tabela e regenera o script em
`<toolbox>/data/<análise>/`.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from pipegen.core.config import load_toolbox_config
from pipegen.core.exceptions import InvalidAnalysisDescriptor
from pipegen.core.pipeline import load_pipeline
from pipegen.core.table import DataTable
from pipegen.core.toolbox import Toolbox, load_toolbox

from .driver import Analysis

_FIELDS = ("toolbox", "analysis", "pipeline", "tablePath")


@dataclass(frozen=True)
class AnalysisDescriptor:
    toolbox: str
    analysis: str
    pipeline: str
    table_path: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "toolbox": self.toolbox,
            "analysis": self.analysis,
            "pipeline": self.pipeline,
            "tablePath": self.table_path,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "AnalysisDescriptor":
        if not isinstance(data, dict):
            raise InvalidAnalysisDescriptor(
                message="analysis descriptor must be a JSON object",
                details={"received": type(data).__name__},
            )
        bad = [k for k in _FIELDS if not isinstance(data.get(k), str) or not data.get(k).strip()]
        if bad:
            raise InvalidAnalysisDescriptor(
                message=f"analysis descriptor has missing or empty fields: {', '.join(bad)}",
                details={"fields": bad},
            )
        return cls(
            toolbox=data["toolbox"],
            analysis=data["analysis"],
            pipeline=data["pipeline"],
            table_path=data["tablePath"],
        )


def describe_analysis(analysis: Analysis, toolbox: Toolbox) -> AnalysisDescriptor:
    """Descritor de uma análise criada a partir de uma tabela carregada de arquivo."""
    if analysis.table.source is None:
        raise InvalidAnalysisDescriptor(
            message="analysis table was not loaded from a file",
            details={"analysis": analysis.name},
            hint="Load the table with DataTable.load before saving the analysis.",
        )
    return AnalysisDescriptor(
        toolbox=toolbox.name,
        analysis=analysis.name,
        pipeline=analysis.pipeline.name,
        table_path=str(analysis.table.source),
    )


def save_descriptor(descriptor: AnalysisDescriptor, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(descriptor.to_dict(), ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
    return path


def load_descriptor(path: Path) -> AnalysisDescriptor:
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as e:
        raise InvalidAnalysisDescriptor(
            message=f"cannot read analysis descriptor: {path}",
            details={"path": str(path), "reason": str(e)},
        ) from e
    except json.JSONDecodeError as e:
        raise InvalidAnalysisDescriptor(
            message=f"analysis descriptor is not valid JSON: {path}",
            details={"path": str(path), "line": e.lineno, "column": e.colno},
        ) from e
    return AnalysisDescriptor.from_dict(data)


def open_analysis(
    descriptor: AnalysisDescriptor,
    toolbox_root: str | Path,
    *,
    config: Optional[Dict[str, Any]] = None,
) -> Analysis:
    """
    Reconstrói uma análise a partir do descritor.

    Sem `config` explícita, usa `load_toolbox_config(toolbox_root)`.

    Raises:
        InvalidAnalysisDescriptor: descritor aponta para outro toolbox.
        InvalidToolboxDefinition / InvalidPipelineDefinition / InvalidTable:
            artefatos referenciados inválidos.
    """
    toolbox = load_toolbox(toolbox_root)
    if toolbox.name != descriptor.toolbox:
        raise InvalidAnalysisDescriptor(
            message=f"descriptor belongs to toolbox '{descriptor.toolbox}', not '{toolbox.name}'",
            details={"expected": descriptor.toolbox, "found": toolbox.name},
        )

    pipeline = load_pipeline(toolbox.pipeline_path(descriptor.pipeline), toolbox)

    table_path = Path(descriptor.table_path)
    if not table_path.is_absolute():
        table_path = toolbox.root / table_path
    table = DataTable.load(table_path)

    return Analysis.create(
        descriptor.analysis,
        pipeline,
        table,
        toolbox.analysis_dir(descriptor.analysis),
        config=load_toolbox_config(toolbox.root) if config is None else config,
    )
