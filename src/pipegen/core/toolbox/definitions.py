# src/pipegen/core/toolbox/definitions.py
"""
Definições de parâmetros e módulos do toolbox.

Um `Parameter` descreve uma porta declarada: nome, formato e
obrigatoriedade. Sources e Sinks possuem uma única porta, de nome vazio.

Um `ModuleDef` descreve um módulo reutilizável: nome, entradas e saídas
ordenadas e o template de comando. Todo nome de porta declarado deve
aparecer no template como `{nome}`, e todo placeholder do template deve
corresponder a uma porta declarada.

Formato de fio (JSON/YAML):

    {
      "moduleName": "convert",
      "enclosedCommand": "convert {in} {out}",
      "inputs":  [{"name": "in",  "format": "text", "required": true}],
      "outputs": [{"name": "out", "format": "csv",  "required": true}]
    }

Limites explícitos:
    - Não lê arquivos (ver `toolbox.loader`)
    - Não conhece instâncias de blocos nem conexões
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from pipegen.core.exceptions import InvalidModuleDefinition, InvalidParameterDefinition

from .formats import Format, FormatRegistry
from .template import CommandTemplate


def _is_non_empty_str(x: Any) -> bool:
    return isinstance(x, str) and bool(x.strip())


@dataclass(frozen=True)
class Parameter:
    """Porta declarada: nome, formato e obrigatoriedade."""

    name: str
    format: Format
    required: bool = True

    @property
    def is_arg(self) -> bool:
        return self.format.is_arg

    @property
    def suffix(self) -> str:
        return self.format.suffix

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "format": self.format.name, "required": self.required}


def parameter_from_dict(
    data: Any,
    formats: FormatRegistry,
    *,
    allow_empty_name: bool = False,
) -> Parameter:
    """Valida e materializa um `Parameter` a partir do formato de fio."""
    if not isinstance(data, dict):
        raise InvalidParameterDefinition(message="parameter must be a mapping", details={})

    name = data.get("name")
    if not isinstance(name, str) or (not allow_empty_name and not name.strip()):
        raise InvalidParameterDefinition(
            message="parameter name is required",
            details={"name": name},
        )

    format_name = data.get("format")
    if not _is_non_empty_str(format_name) or format_name not in formats:
        raise InvalidParameterDefinition(
            message=f"parameter '{name}' references unknown format '{format_name}'",
            details={"name": name, "format": format_name},
        )

    required = data.get("required")
    if not isinstance(required, bool):
        raise InvalidParameterDefinition(
            message=f"parameter '{name}' required must be boolean",
            details={"name": name, "required": required},
        )

    return Parameter(name=name, format=formats.get(format_name), required=required)


@dataclass(frozen=True)
class ModuleDef:
    """Definição imutável de um módulo do toolbox."""

    name: str
    inputs: Tuple[Parameter, ...]
    outputs: Tuple[Parameter, ...]
    command: CommandTemplate

    def input_names(self) -> List[str]:
        return [p.name for p in self.inputs]

    def output_names(self) -> List[str]:
        return [p.name for p in self.outputs]

    def describe(self) -> str:
        """Assinatura legível: `<obrigatório>` e `[opcional]` no lugar das portas."""
        markers: Dict[str, str] = {}
        for p in self.inputs + self.outputs:
            markers[p.name] = f"<{p.name}>" if p.required else f"[{p.name}]"
        text = CommandTemplate(self.command.text).fill(markers)
        return f"{self.name} '{text}'"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "moduleName": self.name,
            "enclosedCommand": self.command.text,
            "inputs": [p.to_dict() for p in self.inputs],
            "outputs": [p.to_dict() for p in self.outputs],
        }


def module_def_from_dict(data: Any, formats: FormatRegistry) -> ModuleDef:
    """
    Valida e materializa um `ModuleDef`.

    Raises:
        InvalidModuleDefinition: estrutura inválida, portas duplicadas ou
            template inconsistente com as portas declaradas.
        InvalidParameterDefinition: porta com formato desconhecido.
    """
    if not isinstance(data, dict):
        raise InvalidModuleDefinition(message="module definition must be a mapping", details={})

    name = data.get("moduleName")
    if not _is_non_empty_str(name):
        raise InvalidModuleDefinition(message="moduleName is required", details={})

    command = data.get("enclosedCommand")
    if not _is_non_empty_str(command):
        raise InvalidModuleDefinition(
            message=f"module '{name}' enclosedCommand is required",
            details={"module": name},
        )

    ports: Dict[str, List[Parameter]] = {}
    for direction in ("inputs", "outputs"):
        raw = data.get(direction)
        if not isinstance(raw, list):
            raise InvalidModuleDefinition(
                message=f"module '{name}' {direction} must be a list",
                details={"module": name},
            )
        ports[direction] = [parameter_from_dict(p, formats) for p in raw]

    declared = [p.name for p in ports["inputs"] + ports["outputs"]]
    duplicates = sorted({n for n in declared if declared.count(n) > 1})
    if duplicates:
        raise InvalidModuleDefinition(
            message=f"module '{name}' declares duplicate ports: {', '.join(duplicates)}",
            details={"module": name, "duplicates": duplicates},
        )

    template = CommandTemplate(command)
    placeholders = template.placeholders()
    missing = [n for n in declared if n not in placeholders]
    undeclared = [n for n in placeholders if n not in declared]
    if missing or undeclared:
        raise InvalidModuleDefinition(
            message=f"module '{name}' command template does not match its ports",
            details={"module": name, "missing": missing, "undeclared": undeclared},
            hint="Every declared port must appear exactly as {name} in enclosedCommand.",
        )

    return ModuleDef(
        name=name,
        inputs=tuple(ports["inputs"]),
        outputs=tuple(ports["outputs"]),
        command=template,
    )
