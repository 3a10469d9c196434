# src/pipegen/core/config/loader.py
"""
Carregamento da configuração de execução.

Duas entradas:

    load_config(defaults_path=..., local_path=...)
        arquivo de defaults obrigatório + override local opcional

    load_toolbox_config(toolbox_root)
        `DEFAULT_CONFIG` + override opcional em `<toolbox>/config/pipegen.{yaml,yml,json}`;
        é a configuração usada ao reabrir análises de um toolbox

O formato é inferido pela extensão (YAML via PyYAML `safe_load`, ou
JSON). Documento vazio vale `{}`.

Limites explícitos:
    - Não valida valores (ver `settings`)
"""

from __future__ import annotations

import json
from copy import deepcopy
from pathlib import Path
from typing import Any, Callable, Dict, Optional, TextIO

import yaml

from .errors import DefaultsNotFoundError, InvalidConfigRootTypeError, UnsupportedConfigFormatError
from .merge import deep_merge
from .settings import DEFAULT_CONFIG


TOOLBOX_CONFIG_FILES = ("pipegen.yaml", "pipegen.yml", "pipegen.json")

_READERS: Dict[str, Callable[[TextIO], Any]] = {
    ".yaml": yaml.safe_load,
    ".yml": yaml.safe_load,
    ".json": json.load,
}


def _read(path: Path) -> Dict[str, Any]:
    reader = _READERS.get(path.suffix.lower())
    if reader is None:
        raise UnsupportedConfigFormatError(f"unsupported config format: {path.suffix or path.name}", path=path)
    with path.open("r", encoding="utf-8") as f:
        data = reader(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidConfigRootTypeError(
            f"config root must be a mapping, got {type(data).__name__}: {path}",
            path=path,
        )
    return data


def load_config(*, defaults_path: str | Path, local_path: Optional[str | Path] = None) -> Dict[str, Any]:
    """
    Configuração efetiva: defaults sobrepostos pelo arquivo local, se existir.

    Raises:
        DefaultsNotFoundError: o arquivo de defaults não existe.
        UnsupportedConfigFormatError / InvalidConfigRootTypeError: arquivo ilegível.
        ConfigTypeConflictError: override incompatível com os defaults.
    """
    defaults = Path(defaults_path)
    if not defaults.is_file():
        raise DefaultsNotFoundError(f"defaults file not found: {defaults}", path=defaults)
    config = _read(defaults)

    if local_path is not None and Path(local_path).is_file():
        config = deep_merge(config, _read(Path(local_path)))
    return config


def load_toolbox_config(toolbox_root: str | Path) -> Dict[str, Any]:
    """Usa o primeiro de `TOOLBOX_CONFIG_FILES` presente em `<toolbox>/config/`."""
    config_dir = Path(toolbox_root) / "config"
    for name in TOOLBOX_CONFIG_FILES:
        candidate = config_dir / name
        if candidate.is_file():
            return deep_merge(DEFAULT_CONFIG, _read(candidate))
    return deepcopy(DEFAULT_CONFIG)
