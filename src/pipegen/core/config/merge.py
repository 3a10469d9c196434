# src/pipegen/core/config/merge.py
"""
Deep-merge de configuração (defaults ← override).

    - mapeamento com mapeamento → merge recursivo
    - None em qualquer lado → o override vence (opcionais como
      `execution.cluster_wrapper` e `execution.command` partem de None)
    - lista → substituída inteira
    - int com float → o override vence (timeouts aceitam ambos)
    - demais tipos divergentes → `ConfigTypeConflictError`

As entradas nunca são mutadas; o resultado não compartilha objetos com elas.
"""

from __future__ import annotations

from copy import deepcopy
from typing import Any, Dict

from .errors import ConfigTypeConflictError


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _compatible(base: Any, override: Any) -> bool:
    if base is None or override is None or isinstance(override, list):
        return True
    if _is_number(base) and _is_number(override):
        return True
    return type(base) is type(override)


def _merge(base: Dict[str, Any], override: Dict[str, Any], prefix: str) -> Dict[str, Any]:
    merged = deepcopy(base)
    for key, value in override.items():
        dotted = f"{prefix}{key}"
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _merge(current, value, f"{dotted}.")
        elif key not in merged or _compatible(current, value):
            merged[key] = deepcopy(value)
        else:
            raise ConfigTypeConflictError(
                f"type conflict at '{dotted}': {type(current).__name__} vs {type(value).__name__}",
                key=dotted,
            )
    return merged


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Retorna `base` sobreposto por `override`.

    Raises:
        ConfigTypeConflictError: tipos incompatíveis na mesma chave
            (`key` traz o caminho pontilhado).
    """
    return _merge(base, override, "")
