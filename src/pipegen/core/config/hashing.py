# src/pipegen/core/config/hashing.py
"""
Hashes SHA-256 gravados no Manifest da análise.

    compute_config_hash  configuração efetiva (JSON canônico)
    compute_text_hash    textos já determinísticos (pipeline serializado, Makefile)
    compute_bytes_hash   conteúdo bruto de arquivos (tabela da análise)
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Dict


def canonical_json(data: Any) -> str:
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def compute_bytes_hash(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def compute_text_hash(text: str) -> str:
    return compute_bytes_hash(text.encode("utf-8"))


def compute_config_hash(config: Dict[str, Any]) -> str:
    """
    Hash da configuração efetiva, independente da ordem das chaves.

    Raises:
        TypeError: `config` não é um dicionário.
    """
    if not isinstance(config, dict):
        raise TypeError(f"config must be a dict, got {type(config).__name__}")
    return compute_text_hash(canonical_json(config))
