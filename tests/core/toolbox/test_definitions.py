# tests/core/toolbox/test_definitions.py
"""
Testes de Parameter / ModuleDef e do template de comando.

Os testes asseguram que:
- portas com formato desconhecido são rejeitadas
- portas duplicadas e templates inconsistentes com as portas são rejeitados
- o preenchimento do template é em passada única e falha explicitamente
  para placeholders sem valor
"""

import pytest

from pipegen.core.exceptions import (
    InvalidModuleDefinition,
    InvalidParameterDefinition,
    UnresolvedPlaceholder,
)
from pipegen.core.toolbox import CommandTemplate, module_def_from_dict, parameter_from_dict


def test_module_def_from_wire_shape(module_defs, module_wire):
    conv = module_defs["convert"]
    assert conv.name == "convert"
    assert conv.input_names() == ["in"]
    assert conv.output_names() == ["out"]
    assert conv.inputs[0].format.name == "text"
    assert conv.outputs[0].suffix == ".csv"
    assert conv.to_dict() == module_wire["convert"]


def test_describe_marks_optional_ports(module_defs):
    assert module_defs["summarize"].describe() == "summarize 'summarize --table <table> --report <report> [options]'"


def test_parameter_unknown_format(formats):
    with pytest.raises(InvalidParameterDefinition):
        parameter_from_dict({"name": "in", "format": "bam", "required": True}, formats)


def test_parameter_required_must_be_bool(formats):
    with pytest.raises(InvalidParameterDefinition):
        parameter_from_dict({"name": "in", "format": "text", "required": "yes"}, formats)


def test_parameter_empty_name_only_when_allowed(formats):
    with pytest.raises(InvalidParameterDefinition):
        parameter_from_dict({"name": "", "format": "text", "required": True}, formats)
    p = parameter_from_dict({"name": "", "format": "text", "required": True}, formats, allow_empty_name=True)
    assert p.name == ""


def test_duplicate_port_names_rejected(formats, module_wire):
    data = module_wire["concat"]
    data["inputs"][1]["name"] = "first"
    data["enclosedCommand"] = "cat {first} > {out}"
    with pytest.raises(InvalidModuleDefinition) as ei:
        module_def_from_dict(data, formats)
    assert ei.value.details["duplicates"] == ["first"]


def test_port_missing_from_template_rejected(formats, module_wire):
    data = module_wire["convert"]
    data["enclosedCommand"] = "convert {in}"
    with pytest.raises(InvalidModuleDefinition) as ei:
        module_def_from_dict(data, formats)
    assert ei.value.details["missing"] == ["out"]


def test_undeclared_placeholder_rejected(formats, module_wire):
    data = module_wire["convert"]
    data["enclosedCommand"] = "convert {in} {out} {threads}"
    with pytest.raises(InvalidModuleDefinition) as ei:
        module_def_from_dict(data, formats)
    assert ei.value.details["undeclared"] == ["threads"]


def test_port_with_unknown_format_rejected(formats, module_wire):
    data = module_wire["convert"]
    data["outputs"][0]["format"] = "parquet"
    with pytest.raises(InvalidParameterDefinition):
        module_def_from_dict(data, formats)


@pytest.mark.parametrize("field", ["moduleName", "enclosedCommand", "inputs"])
def test_missing_fields_rejected(formats, module_wire, field):
    data = module_wire["convert"]
    del data[field]
    with pytest.raises(InvalidModuleDefinition):
        module_def_from_dict(data, formats)


def test_template_single_pass_fill():
    """Um valor que contém `{x}` não é re-substituído."""
    t = CommandTemplate("run {a} {b}")
    assert t.fill({"a": "{b}", "b": "B"}) == "run {b} B"


def test_template_unresolved_placeholder():
    with pytest.raises(UnresolvedPlaceholder) as ei:
        CommandTemplate("run {a} {b}").fill({"a": "A"})
    assert ei.value.details["missing"] == ["b"]


def test_template_ignores_dollar_braces():
    t = CommandTemplate("echo $${HOME} {a}")
    assert t.placeholders() == ["a"]
    assert t.fill({"a": "x"}) == "echo $${HOME} x"


def test_template_placeholders_in_first_occurrence_order():
    assert CommandTemplate("{b} {a} {b}").placeholders() == ["b", "a"]
