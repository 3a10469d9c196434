# src/pipegen/core/table/table.py
"""
Tabela de dados de uma análise.

Formato de arquivo: texto delimitado por `|`, primeira linha com os
cabeçalhos, uma linha por registro. Células são aparadas (trim) e lidas
literalmente: sem aspas, sem coerção de tipos, sem NA.

Regras de validade:
    - arquivo existente e com ao menos a linha de cabeçalhos
    - todas as linhas com o mesmo número de colunas
    - cabeçalhos únicos
    - coluna `id` presente, com valores únicos

Colunas cujo cabeçalho tem a forma `$(nome)` são variáveis de make:
não se ligam a Sources/Sinks; seus valores substituem as ocorrências
textuais de `$(nome)` em outras células da mesma linha.

Limites explícitos:
    - Não conhece pipelines (ver `pipeline.graph.missing_data`)
    - Não escreve arquivos
"""

from __future__ import annotations

import csv
import re
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pandas as pd

from pipegen.core.config import compute_bytes_hash
from pipegen.core.exceptions import InvalidTable


ID_COLUMN = "id"
DELIMITER = "|"

_MAKE_VARIABLE = re.compile(r"^\$\(.*\)$")
_MAKE_REFERENCE = re.compile(r"\$\([^()]*\)")


def is_make_variable(header: str) -> bool:
    return bool(_MAKE_VARIABLE.match(header))


def _duplicates(values: Sequence[str]) -> List[str]:
    seen: List[str] = []
    dupes: List[str] = []
    for v in values:
        if v in seen and v not in dupes:
            dupes.append(v)
        seen.append(v)
    return dupes


class DataTable:
    """
    Tabela validada, indexada pela coluna `id`.

    Construída via `DataTable.load` (arquivo) ou `DataTable.from_rows`
    (programático); ambas passam pelas mesmas validações. A ordem das
    linhas e das colunas é a ordem de origem. As linhas são indexadas
    por `id` uma única vez, na construção.
    """

    def __init__(self, frame: pd.DataFrame, *, source: Optional[Path] = None, fingerprint: Optional[str] = None):
        self._frame = frame
        self._rows: Dict[str, Dict[str, str]] = {r[ID_COLUMN]: r for r in frame.to_dict(orient="records")}
        self.source = source
        self.fingerprint = fingerprint

    # -----------------------------
    # Construção
    # -----------------------------
    @classmethod
    def from_rows(cls, headers: Sequence[str], rows: Sequence[Sequence[str]], **kwargs) -> "DataTable":
        headers = [str(h).strip() for h in headers]
        if not headers or headers == [""]:
            raise InvalidTable(message="table has no header row", details={})

        width = len(headers)
        for i, row in enumerate(rows, start=1):
            if len(row) != width:
                raise InvalidTable(
                    message=f"row {i} has {len(row)} cells, expected {width}",
                    details={"row": i, "cells": len(row), "expected": width},
                )

        dupes = _duplicates(headers)
        if dupes:
            raise InvalidTable(
                message=f"duplicate table headers: {', '.join(dupes)}",
                details={"duplicates": dupes},
            )

        if ID_COLUMN not in headers:
            raise InvalidTable(
                message=f"table has no '{ID_COLUMN}' column",
                details={"headers": headers},
                hint=f"Add a column named '{ID_COLUMN}' with one unique value per row.",
            )

        cells = [[str(c).strip() for c in row] for row in rows]
        frame = pd.DataFrame(cells, columns=headers, dtype=str)

        ids = frame[ID_COLUMN].tolist()
        dupes = _duplicates(ids)
        if dupes:
            raise InvalidTable(
                message=f"duplicate row ids: {', '.join(dupes)}",
                details={"duplicates": dupes},
            )
        if any(not i for i in ids):
            raise InvalidTable(message="row ids must not be empty", details={})

        return cls(frame, **kwargs)

    @classmethod
    def load(cls, path: str | Path) -> "DataTable":
        """
        Lê e valida um arquivo de tabela delimitado por `|`.

        Linhas totalmente vazias são ignoradas.

        Raises:
            InvalidTable: arquivo ausente/vazio ou qualquer regra de validade violada.
        """
        p = Path(path)
        if not p.is_file():
            raise InvalidTable(message=f"table file not found: {p}", details={"path": str(p)})

        raw = p.read_bytes()
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidTable(message=f"table file is not valid UTF-8: {p}", details={"path": str(p)}) from e

        reader = csv.reader(text.splitlines(), delimiter=DELIMITER, quoting=csv.QUOTE_NONE)
        lines = [line for line in reader if any(cell.strip() for cell in line)]
        if not lines:
            raise InvalidTable(message=f"table file is empty: {p}", details={"path": str(p)})

        try:
            return cls.from_rows(
                lines[0],
                lines[1:],
                source=p,
                fingerprint=compute_bytes_hash(raw),
            )
        except InvalidTable as e:
            raise InvalidTable(
                message=f"{p.name}: {e.message}",
                details={"path": str(p), **e.details},
                hint=e.hint,
            ) from e

    # -----------------------------
    # Consulta
    # -----------------------------
    @property
    def frame(self) -> pd.DataFrame:
        return self._frame.copy()

    @property
    def headers(self) -> List[str]:
        return [str(c) for c in self._frame.columns]

    @property
    def row_ids(self) -> List[str]:
        return list(self._rows)

    def __len__(self) -> int:
        return len(self._frame)

    def has_column(self, header: str) -> bool:
        return header in self._frame.columns

    def column(self, header: str) -> List[str]:
        if header not in self._frame.columns:
            raise KeyError(header)
        return self._frame[header].tolist()

    def has_row(self, row_id: str) -> bool:
        return row_id in self._rows

    def row(self, row_id: str) -> Dict[str, str]:
        return dict(self._rows[row_id])

    def value(self, header: str, row_id: str) -> str:
        """Célula (header, row_id). KeyError se a coluna ou a linha não existir."""
        if not self.has_column(header):
            raise KeyError(header)
        return self._rows[row_id][header]

    def make_variables(self) -> List[str]:
        """Cabeçalhos no formato `$(nome)`, na ordem da tabela."""
        return [h for h in self.headers if is_make_variable(h)]

    def is_make_variable(self, header: str) -> bool:
        return is_make_variable(header)

    def data_columns(self) -> List[str]:
        """Colunas ligáveis a Sources/Sinks: exclui `id` e variáveis de make."""
        return [h for h in self.headers if h != ID_COLUMN and not is_make_variable(h)]

    def substitute_make_variables(self, text: str, row_id: str) -> str:
        """Substitui `$(nome)` pelos valores da linha; referências desconhecidas ficam intactas."""
        variables = self.make_variables()
        if not variables:
            return text
        row = self._rows[row_id]
        return _MAKE_REFERENCE.sub(lambda m: row[m.group(0)] if m.group(0) in variables else m.group(0), text)

    def __repr__(self) -> str:
        return f"DataTable(rows={len(self)}, headers={self.headers!r})"
