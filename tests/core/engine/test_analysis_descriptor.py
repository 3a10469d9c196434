# tests/core/engine/test_analysis_descriptor.py
"""
Testes do descritor persistido de análise.

Invariantes:
    - save → load do descritor preserva os quatro campos
    - reabrir uma análise regenera exatamente o mesmo script
"""

import json

import pytest

from pipegen.core.engine import (
    Analysis,
    AnalysisDescriptor,
    describe_analysis,
    load_descriptor,
    open_analysis,
    save_descriptor,
)
from pipegen.core.exceptions import InvalidAnalysisDescriptor
from pipegen.core.pipeline import save_pipeline
from pipegen.core.table import DataTable
from pipegen.core.toolbox import load_toolbox


@pytest.fixture
def saved_analysis(toolbox_dir, convert_pipeline):
    toolbox = load_toolbox(toolbox_dir)
    save_pipeline(convert_pipeline, toolbox.pipeline_path(convert_pipeline.name))
    table_path = toolbox_dir / "tables" / "samples.txt"
    table_path.parent.mkdir()
    table_path.write_text("id|infile|outfile\n1|a.txt|a.csv\n", encoding="utf-8")

    analysis = Analysis.create("first", convert_pipeline, DataTable.load(table_path), toolbox.analysis_dir("first"))
    descriptor = describe_analysis(analysis, toolbox)
    save_descriptor(descriptor, toolbox.analysis_descriptor_path("first"))
    return toolbox, analysis, descriptor


def test_describe_and_round_trip(saved_analysis):
    toolbox, analysis, descriptor = saved_analysis
    assert descriptor == AnalysisDescriptor(
        toolbox="demo",
        analysis="first",
        pipeline="convert-demo",
        table_path=str(toolbox.root / "tables" / "samples.txt"),
    )
    path = toolbox.analysis_descriptor_path("first")
    assert json.loads(path.read_text(encoding="utf-8"))["tablePath"] == descriptor.table_path
    assert load_descriptor(path) == descriptor


def test_open_analysis_regenerates_same_script(saved_analysis):
    toolbox, analysis, descriptor = saved_analysis
    reopened = open_analysis(descriptor, toolbox.root)
    assert reopened.root == toolbox.root / "data" / "first"
    assert reopened.script_text == analysis.script_text
    assert reopened.manifest.inputs["table_hash"] == analysis.manifest.inputs["table_hash"]


def test_relative_table_path_resolves_from_toolbox_root(saved_analysis):
    toolbox, analysis, descriptor = saved_analysis
    relative = AnalysisDescriptor("demo", "second", "convert-demo", "tables/samples.txt")
    reopened = open_analysis(relative, toolbox.root)
    assert reopened.root == toolbox.root / "data" / "second"
    assert reopened.table.source == toolbox.root / "tables" / "samples.txt"


def test_descriptor_for_other_toolbox_rejected(saved_analysis):
    toolbox, _, descriptor = saved_analysis
    other = AnalysisDescriptor("elsewhere", descriptor.analysis, descriptor.pipeline, descriptor.table_path)
    with pytest.raises(InvalidAnalysisDescriptor) as ei:
        open_analysis(other, toolbox.root)
    assert ei.value.details == {"expected": "elsewhere", "found": "demo"}


def test_table_must_come_from_a_file(toolbox, convert_pipeline, convert_table, tmp_path):
    analysis = Analysis.create("mem", convert_pipeline, convert_table, tmp_path / "mem")
    with pytest.raises(InvalidAnalysisDescriptor):
        describe_analysis(analysis, toolbox)


@pytest.mark.parametrize(
    "data,fields",
    [
        ({"toolbox": "demo", "analysis": "a", "pipeline": "p"}, ["tablePath"]),
        ({"toolbox": "", "analysis": "a", "pipeline": "p", "tablePath": "t"}, ["toolbox"]),
        ({"toolbox": "demo", "analysis": 3, "pipeline": None, "tablePath": "t"}, ["analysis", "pipeline"]),
    ],
)
def test_from_dict_reports_bad_fields(data, fields):
    with pytest.raises(InvalidAnalysisDescriptor) as ei:
        AnalysisDescriptor.from_dict(data)
    assert ei.value.details["fields"] == fields


def test_load_descriptor_errors(tmp_path):
    with pytest.raises(InvalidAnalysisDescriptor):
        load_descriptor(tmp_path / "missing.json")
    bad = tmp_path / "bad.json"
    bad.write_text("{ nope", encoding="utf-8")
    with pytest.raises(InvalidAnalysisDescriptor):
        load_descriptor(bad)
    listed = tmp_path / "list.json"
    listed.write_text("[]", encoding="utf-8")
    with pytest.raises(InvalidAnalysisDescriptor):
        load_descriptor(listed)


def test_open_analysis_uses_toolbox_config(saved_analysis):
    """`<toolbox>/config/pipegen.yaml` vale quando nenhuma config é passada."""
    toolbox, _, descriptor = saved_analysis
    (toolbox.root / "config" / "pipegen.yaml").write_text(
        "execution:\n  keep_going: true\n  jobs: 3\n", encoding="utf-8"
    )
    reopened = open_analysis(descriptor, toolbox.root)
    assert reopened.settings.keep_going is True
    assert reopened.settings.jobs == 3

    explicit = open_analysis(descriptor, toolbox.root, config={})
    assert explicit.settings.keep_going is False
