# src/pipegen/core/toolbox/loader.py
"""Loader canônico de toolbox (YAML/JSON).

Layout de um diretório de toolbox:

    <toolbox>/
        config/formats.json     catálogo de formatos (obrigatório)
        config/ABOUT.txt        texto livre (opcional)
        config/pipegen.yaml     overrides de execução (opcional, ver `config.load_toolbox_config`)
        modules/*.json|yaml     uma definição de módulo por arquivo
        pipelines/              pipelines salvos
        analyses/<análise>.json descritores de análise
        data/<análise>/         raízes de saída das análises

Notas:
- O formato de cada arquivo é inferido pela extensão.
- Arquivos terminados em `~` (cópias de backup de editores) são ignorados.
- O carregamento é tudo-ou-nada: qualquer definição inválida aborta o load.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from pipegen.core.exceptions import InvalidToolboxDefinition, PipegenException

from .definitions import ModuleDef, module_def_from_dict
from .formats import FormatRegistry, formats_from_catalog


FORMATS_FILE = Path("config") / "formats.json"
ABOUT_FILE = Path("config") / "ABOUT.txt"
MODULES_DIR = "modules"
PIPELINES_DIR = "pipelines"
ANALYSES_DIR = "analyses"
DATA_DIR = "data"

_STRUCTURED_SUFFIXES = {".json", ".yaml", ".yml"}


def read_structured_file(path: Path) -> Any:
    """Lê um arquivo JSON/YAML e retorna o conteúdo parseado.

    Raises:
        InvalidToolboxDefinition: arquivo ausente, extensão não suportada ou
            falha de parsing.
    """
    if not path.exists():
        raise InvalidToolboxDefinition(
            message=f"file not found: {path}",
            details={"path": str(path)},
        )

    suffix = path.suffix.lower()
    if suffix not in _STRUCTURED_SUFFIXES:
        raise InvalidToolboxDefinition(
            message=f"unsupported file format: {suffix}",
            details={"path": str(path)},
        )

    raw = path.read_text(encoding="utf-8")
    try:
        if suffix == ".json":
            return json.loads(raw)
        return yaml.safe_load(raw)
    except (ValueError, yaml.YAMLError) as e:
        raise InvalidToolboxDefinition(
            message=f"failed to parse {path.name}: {e}",
            details={"path": str(path)},
        ) from e


@dataclass
class Toolbox:
    """Catálogo carregado: formatos, módulos e metadados do diretório."""

    name: str
    root: Path
    formats: FormatRegistry
    modules: Dict[str, ModuleDef] = field(default_factory=dict)
    about: str = ""

    def module(self, name: str) -> ModuleDef:
        if name not in self.modules:
            raise KeyError(name)
        return self.modules[name]

    @property
    def pipelines_dir(self) -> Path:
        return self.root / PIPELINES_DIR

    def pipeline_path(self, pipeline_name: str) -> Path:
        return self.pipelines_dir / f"{pipeline_name}.json"

    def analysis_dir(self, analysis_name: str) -> Path:
        return self.root / DATA_DIR / analysis_name

    def analysis_descriptor_path(self, analysis_name: str) -> Path:
        return self.root / ANALYSES_DIR / f"{analysis_name}.json"

    def describe(self) -> str:
        lines: List[str] = ["FORMATS:"]
        for i, f in enumerate(self.formats.catalog()):
            parent = f" extends {f.parent}" if f.parent else ""
            lines.append(f"[{i}] {f.name} ({f.suffix or '-'}){parent}")
        lines.append("")
        lines.append("MODULES:")
        for i, name in enumerate(sorted(self.modules)):
            lines.append(f"[{i}] {self.modules[name].describe()}")
        lines.append("")
        lines.append("ABOUT:")
        lines.append(self.about)
        return "\n".join(lines)


def load_modules(modules_dir: Path, formats: FormatRegistry) -> Dict[str, ModuleDef]:
    if not modules_dir.is_dir():
        raise InvalidToolboxDefinition(
            message=f"modules directory not found: {modules_dir}",
            details={"path": str(modules_dir)},
        )

    modules: Dict[str, ModuleDef] = {}
    for path in sorted(modules_dir.iterdir()):
        if not path.is_file() or path.name.endswith("~"):
            continue
        if path.suffix.lower() not in _STRUCTURED_SUFFIXES:
            continue
        try:
            module = module_def_from_dict(read_structured_file(path), formats)
        except PipegenException as e:
            raise InvalidToolboxDefinition(
                message=f"invalid module definition in {path.name}: {e}",
                details={"path": str(path), "cause": e.__class__.__name__, **e.details},
            ) from e
        if module.name in modules:
            raise InvalidToolboxDefinition(
                message=f"duplicate module name: {module.name}",
                details={"path": str(path), "module": module.name},
            )
        modules[module.name] = module

    return dict(sorted(modules.items()))


def load_toolbox(root: str | Path, *, name: Optional[str] = None) -> Toolbox:
    """Carrega um toolbox completo a partir do diretório raiz.

    Raises:
        InvalidFormatDefinition / FormatCycle: catálogo de formatos inválido.
        InvalidToolboxDefinition: arquivos ausentes ou módulos inválidos.
    """
    root_path = Path(root)
    if not root_path.is_dir():
        raise InvalidToolboxDefinition(
            message=f"toolbox directory not found: {root_path}",
            details={"path": str(root_path)},
        )

    formats = FormatRegistry.load(formats_from_catalog(read_structured_file(root_path / FORMATS_FILE)))
    modules = load_modules(root_path / MODULES_DIR, formats)

    about_path = root_path / ABOUT_FILE
    about = about_path.read_text(encoding="utf-8") if about_path.exists() else ""

    return Toolbox(
        name=name or root_path.name,
        root=root_path,
        formats=formats,
        modules=modules,
        about=about,
    )
