# tests/core/pipeline/test_graph_edit.py
"""
Testes de edição do grafo: alocação de ids, remoção em cascata,
navegação a jusante, snapshot e flag de alterações não salvas.
"""

import pytest

from pipegen.core.exceptions import InvalidParameterDefinition, InvalidPipelineDefinition, UnknownBlock
from pipegen.core.pipeline import BlockKind, Pipeline, PortRef, Position


def test_single_allocator_across_kinds(convert_pipeline):
    assert [s.id for s in convert_pipeline.sources] == [0]
    assert [m.id for m in convert_pipeline.modules] == [1]
    assert [s.id for s in convert_pipeline.sinks] == [2]
    assert convert_pipeline.next_id == 3


def test_explicit_ids_seed_the_allocator(formats):
    p = Pipeline("p", formats)
    p.add_source("a", "text", block_id=7)
    assert p.next_id == 8
    s = p.add_sink("b", "text")
    assert s.id == 8


def test_ids_unique_per_kind(formats):
    p = Pipeline("p", formats)
    p.add_source("a", "text", block_id=0)
    p.add_sink("b", "text", block_id=0)
    with pytest.raises(InvalidPipelineDefinition):
        p.add_source("c", "text", block_id=0)
    with pytest.raises(InvalidPipelineDefinition):
        p.add_source("c", "text", block_id=-1)


def test_unknown_format_for_source(formats):
    with pytest.raises(InvalidParameterDefinition):
        Pipeline("p", formats).add_source("a", "bam")


def test_delete_module_removes_all_its_connections(formats, module_defs):
    """
    Remover um módulo com 2 entradas e 1 saída conectadas remove as 3
    conexões e o módulo; nenhuma conexão restante o referencia.
    """
    p = Pipeline("p", formats)
    a = p.add_source("a", "text")
    b = p.add_source("b", "text")
    cat = p.add_module(module_defs["concat"])
    out = p.add_sink("out", "text")
    keep = p.add_sink("keep", "text")
    p.connect(a.ref(), cat.ref(0))
    p.connect(b.ref(), cat.ref(1))
    p.connect(cat.ref(0), out.ref())
    kept = p.connect(a.ref(), keep.ref())

    removed = p.delete_block(BlockKind.MODULE, cat.id)

    assert len(removed) == 3
    assert p.connections == [kept]
    assert not p.has_block(BlockKind.MODULE, cat.id)
    assert all(not c.touches(BlockKind.MODULE, cat.id) for c in p.connections)


def test_delete_unknown_block(convert_pipeline):
    with pytest.raises(UnknownBlock):
        convert_pipeline.delete_block(BlockKind.SINK, 42)


def test_deleted_ids_are_not_reused(convert_pipeline):
    convert_pipeline.delete_block(BlockKind.SINK, 2)
    s = convert_pipeline.add_sink("outfile", "csv")
    assert s.id == 3


def test_children_one_entry_per_connection(formats, module_defs):
    p = Pipeline("p", formats)
    split = p.add_module(module_defs["split"])
    concat = p.add_module(module_defs["concat"])
    p.connect(split.ref(0), concat.ref(0))
    p.connect(split.ref(1), concat.ref(1))
    assert [b.id for b in p.children(BlockKind.MODULE, split.id)] == [concat.id, concat.id]


def test_move_block(convert_pipeline):
    convert_pipeline.mark_saved()
    convert_pipeline.move_block(BlockKind.MODULE, 1, 10, -5)
    assert convert_pipeline.block(BlockKind.MODULE, 1).position == Position(10, -5)
    assert convert_pipeline.has_unsaved_changes


def test_unsaved_changes_flag(formats):
    p = Pipeline("p", formats)
    assert p.has_unsaved_changes
    p.mark_saved()
    assert not p.has_unsaved_changes
    p.add_source("a", "text")
    assert p.has_unsaved_changes


def test_snapshot_is_independent(convert_pipeline):
    snap = convert_pipeline.snapshot()
    convert_pipeline.delete_block(BlockKind.MODULE, 1)
    assert snap.has_block(BlockKind.MODULE, 1)
    assert len(snap.connections) == 2
    assert snap.formats is convert_pipeline.formats
    assert snap.upstream(PortRef(BlockKind.SINK, 2, 0)) == PortRef(BlockKind.MODULE, 1, 0)


def test_missing_and_unused_data(formats, convert_pipeline):
    """
    `missing_data`: coluna ligada a Source/Sink ausente da tabela.
    `unused_data`: coluna de dados (não `id`, não `$(var)`) sem ligação.
    """
    from pipegen.core.table import DataTable

    table = DataTable.from_rows(["id", "infile", "notes", "$(dir)"], [["1", "a.txt", "x", "out"]])
    assert convert_pipeline.missing_data(table) == ["outfile"]
    assert convert_pipeline.unused_data(table) == ["notes"]


def test_bound_columns_are_deduplicated(formats):
    p = Pipeline("p", formats)
    p.add_source("sample", "text")
    p.add_sink("sample", "text")
    assert p.bound_columns() == ["sample"]
