"""Pipegen — Table (core).

Tabela de dados delimitada por `|`, indexada pela coluna `id`, com
suporte a colunas de variáveis de make (`$(nome)`).
"""

from .table import DELIMITER, ID_COLUMN, DataTable, is_make_variable  # noqa: F401
