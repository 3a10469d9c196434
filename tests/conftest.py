# tests/conftest.py
"""
Fixtures compartilhados para testes do Pipegen.

Este módulo define fixtures reutilizáveis que fornecem:
- configurações YAML mínimas (defaults + override local)
- um catálogo de formatos pequeno, com herança (`csv` estende `text`)
- definições de módulos representativas (conversão, sumário com
  argumento opcional, divisão com duas saídas, concatenação)
- o pipeline canônico de conversão `infile → convert → outfile`
- um diretório de toolbox completo em `tmp_path`

Decisões arquiteturais:
    - Imports do core são feitos de forma lazy dentro das fixtures para
      falhar com mensagens claras quando um subpacote está ausente
    - Ids de blocos do pipeline canônico são fixos (0, 1, 2) porque o
      alocador é único por pipeline e segue a ordem de criação
    - Tabelas são construídas via `DataTable.from_rows` (sem I/O)

Invariantes:
    - Fixtures não executam processos externos
    - Dados retornados são determinísticos e isolados por teste

Limites explícitos:
    - Não substituem testes de integração do driver
    - Não validam o comportamento das APIs que constroem
"""

import copy
import json
from pathlib import Path

import pytest


FORMATS_CATALOG = {
    "formatDefs": [
        {"text": {"suffix": ".txt", "color": [200, 200, 200]}},
        {"csv": {"suffix": ".csv", "extends": "text"}},
        {"fastq": {"suffix": ".fq"}},
        {"fastqgz": {"suffix": ".fq.gz", "extends": "fastq"}},
    ]
}

MODULE_DEFS = {
    "convert": {
        "moduleName": "convert",
        "enclosedCommand": "convert {in} {out}",
        "inputs": [{"name": "in", "format": "text", "required": True}],
        "outputs": [{"name": "out", "format": "csv", "required": True}],
    },
    "summarize": {
        "moduleName": "summarize",
        "enclosedCommand": "summarize --table {table} --report {report} {options}",
        "inputs": [
            {"name": "table", "format": "csv", "required": True},
            {"name": "options", "format": "arg", "required": False},
        ],
        "outputs": [{"name": "report", "format": "text", "required": True}],
    },
    "split": {
        "moduleName": "split",
        "enclosedCommand": "split {in} {left} {right}",
        "inputs": [{"name": "in", "format": "text", "required": True}],
        "outputs": [
            {"name": "left", "format": "text", "required": True},
            {"name": "right", "format": "text", "required": True},
        ],
    },
    "concat": {
        "moduleName": "concat",
        "enclosedCommand": "cat {first} {second} > {out}",
        "inputs": [
            {"name": "first", "format": "text", "required": True},
            {"name": "second", "format": "text", "required": True},
        ],
        "outputs": [{"name": "out", "format": "text", "required": True}],
    },
}


@pytest.fixture
def module_wire() -> dict:
    """Cópia mutável das definições de módulo no formato de fio."""
    return copy.deepcopy(MODULE_DEFS)


# =====================================================
# Config
# =====================================================

@pytest.fixture
def config_defaults_yaml() -> str:
    """YAML de defaults no formato de `config/pipegen.defaults.yaml`."""
    return """\
execution:
  make: make
  jobs: 1
  keep_going: false
  cluster_wrapper: null
  poll_timeout_seconds: 30
layout:
  makefile: Makefile
  processing_dir: PROCESSING
  errors_dir: ERROR_LOGS
"""


@pytest.fixture
def config_local_yaml() -> str:
    """Override local: paralelismo e keep-going."""
    return """\
execution:
  jobs: 4
  keep_going: true
"""


# =====================================================
# Toolbox
# =====================================================

@pytest.fixture
def formats():
    from pipegen.core.toolbox import FormatRegistry, formats_from_catalog

    return FormatRegistry.load(formats_from_catalog(FORMATS_CATALOG))


@pytest.fixture
def module_defs(formats):
    from pipegen.core.toolbox import module_def_from_dict

    return {name: module_def_from_dict(data, formats) for name, data in MODULE_DEFS.items()}


@pytest.fixture
def toolbox(formats, module_defs, tmp_path):
    """Toolbox em memória (raiz em `tmp_path`, sem arquivos)."""
    from pipegen.core.toolbox import Toolbox

    return Toolbox(name="demo", root=tmp_path, formats=formats, modules=dict(module_defs))


@pytest.fixture
def toolbox_dir(tmp_path) -> Path:
    """
    Diretório de toolbox completo:

        demo/config/formats.json
        demo/config/ABOUT.txt
        demo/modules/<nome>.json (um por módulo; `concat` em YAML)
        demo/modules/convert.json~ (backup ignorado)
    """
    root = tmp_path / "demo"
    (root / "config").mkdir(parents=True)
    (root / "modules").mkdir()
    (root / "config" / "formats.json").write_text(json.dumps(FORMATS_CATALOG), encoding="utf-8")
    (root / "config" / "ABOUT.txt").write_text("Demo toolbox for tests.", encoding="utf-8")
    for name, data in MODULE_DEFS.items():
        if name == "concat":
            import yaml

            (root / "modules" / "concat.yaml").write_text(yaml.safe_dump(data), encoding="utf-8")
        else:
            (root / "modules" / f"{name}.json").write_text(json.dumps(data), encoding="utf-8")
    (root / "modules" / "convert.json~").write_text("{ not json", encoding="utf-8")
    return root


# =====================================================
# Pipeline + tabela
# =====================================================

@pytest.fixture
def convert_pipeline(formats, module_defs):
    """
    Pipeline canônico: Source(text, "infile") → convert → Sink(csv, "outfile").

    Ids: source 0, module 1, sink 2.
    """
    from pipegen.core.pipeline import Pipeline

    p = Pipeline("convert-demo", formats)
    src = p.add_source("infile", "text")
    mod = p.add_module(module_defs["convert"])
    dst = p.add_sink("outfile", "csv")
    p.connect(src.ref(), mod.ref(0))
    p.connect(mod.ref(0), dst.ref())
    return p


@pytest.fixture
def convert_table():
    from pipegen.core.table import DataTable

    return DataTable.from_rows(["id", "infile", "outfile"], [["1", "a.txt", "a.csv"]])


@pytest.fixture
def chain_pipeline(formats, module_defs):
    """
    infile(text) → convert → summarize(options ← opts:arg) → report
                          └→ outfile

    Ids: source 0, module 1 (convert), module 2 (summarize), sinks 3 e 4,
    source arg 5.
    """
    from pipegen.core.pipeline import Pipeline

    p = Pipeline("chain-demo", formats)
    src = p.add_source("infile", "text")
    conv = p.add_module(module_defs["convert"])
    summ = p.add_module(module_defs["summarize"])
    report = p.add_sink("report", "text")
    out = p.add_sink("outfile", "csv")
    opts = p.add_source("opts", "arg")
    p.connect(src.ref(), conv.ref(0))
    p.connect(conv.ref(0), summ.ref(0))
    p.connect(opts.ref(), summ.ref(1))
    p.connect(summ.ref(0), report.ref())
    p.connect(conv.ref(0), out.ref())
    return p


@pytest.fixture
def chain_table():
    from pipegen.core.table import DataTable

    return DataTable.from_rows(
        ["id", "infile", "report", "outfile", "opts", "$(dir)"],
        [
            ["s1", "in/s1.txt", "$(dir)/s1.report.txt", "$(dir)/s1.csv", "--top 5", "out"],
            ["s2", "in/s2.txt", "$(dir)/s2.report.txt", "$(dir)/s2.csv", "--all", "out"],
        ],
    )
