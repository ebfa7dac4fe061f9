import pytest

from glaze.compiler import expand_modules
from glaze.compiler.expansion import ModuleReference
from glaze.module import Module, ModuleRegistry
from glaze.template.parsed_line import split_text


def expand(text, registry):
    result, diagnostics = expand_modules(split_text(text), registry.load)
    return [parsed.line for parsed in result.lines], diagnostics


def test_module_reference():
    ref = ModuleReference.from_line("  [[MODULE:FRAGMENT:Fur:shell(c.a, 0.5)]]")
    assert ref.category == "FRAGMENT"
    assert ref.module_name == "Fur"
    assert ref.key == "shell"
    assert ref.arguments == ["c.a", "0.5"]
    assert not ref.is_wildcard
    assert ModuleReference.from_line("[[MODULE:VARIABLES]]").is_wildcard


def test_wildcard_skips_explicitly_requested_modules(registry):
    lines, diagnostics = expand(
        "#MODULES\nFur\nRim\n#END\n[[MODULE:VARIABLES:Fur]]\n[[MODULE:VARIABLES]]\n",
        registry,
    )
    assert lines == ["float _FurLength;", "float _RimMin;"]
    assert diagnostics == []


def test_wildcard_repeated_in_each_pass(registry):
    lines, diagnostics = expand(
        "#MODULES\nFur\nRim\n#END\n#PASS\n[[MODULE:VARIABLES]]\n#PASS\n[[MODULE:VARIABLES]]\n",
        registry,
    )
    assert lines == [
        "#PASS",
        "float _FurLength;",
        "float _RimMin;",
        "#PASS",
        "float _FurLength;",
        "float _RimMin;",
    ]
    assert diagnostics == []


def test_wildcard_skips_explicit_request_in_every_pass(registry):
    lines, _ = expand(
        "#MODULES\nFur\nRim\n#END\n[[MODULE:INPUT:Fur]]\n[[MODULE:VARIABLES]]\n[[MODULE:VARIABLES:Fur]]\n[[MODULE:VARIABLES]]\n",
        registry,
    )
    assert lines.count("float _RimMin;") == 2
    assert lines.count("float _FurLength;") == 2


def test_explicit_reference_after_wildcard(registry):
    lines, _ = expand(
        "#MODULES\nFur\nRim\n#END\n[[MODULE:VARIABLES]]\n[[MODULE:VARIABLES:Fur]]\n",
        registry,
    )
    assert lines == ["float _FurLength;", "float _RimMin;", "float _FurLength;"]


def test_keywords_wildcard_always_emits(registry):
    lines, _ = expand(
        "#MODULES\nRim\n#END\n[[MODULE:KEYWORDS:Rim]]\n[[MODULE:KEYWORDS]]\n",
        registry,
    )
    assert lines == ["feature_on RIM_LIGHT", "feature_on RIM_LIGHT"]


def test_spliced_lines_keep_marker_line_number(registry):
    result, _ = expand_modules(
        split_text("#MODULES\nFur\n#END\nbefore\n[[MODULE:FUNCTIONS:Fur]]\nafter\n"),
        registry.load,
    )
    assert [(p.line, p.line_number) for p in result.lines] == [
        ("before", 4),
        ("void Fur() {}", 5),
        ("after", 6),
    ]


def test_marker_indentation(registry):
    lines, _ = expand(
        "#MODULES\nFur\nOutline\n#END\n    [[MODULE:FUNCTIONS:Fur]]\n\t[[MODULE:VARIABLES:Outline]]\n",
        registry,
    )
    assert lines == [
        "    void Fur() {}",
        '#ENABLE_IMPL: float __outlineWidth, lbl = "Outline Width"',
    ]


def test_stage_arguments(registry):
    lines, diagnostics = expand(
        "#MODULES\nFur\n#END\n[[MODULE:VERTEX:Fur(v.normal)]]\n[[MODULE:FRAGMENT:Fur:shell(c.a)]]\n",
        registry,
    )
    assert lines == ["pos += v.normal * _FurLength;", "clip(c.a);"]
    assert diagnostics == []


def test_missing_stage_key(registry):
    lines, diagnostics = expand(
        "#MODULES\nFur\n#END\n[[MODULE:FRAGMENT:Fur:unknown]]\nafter\n", registry
    )
    assert lines == ["after"]
    assert diagnostics[0].is_error
    assert diagnostics[0].line_number == 4


def test_undeclared_module(registry):
    lines, diagnostics = expand(
        "#MODULES\nFur\n#END\n[[MODULE:VARIABLES:Hair]]\n[[MODULE:VARIABLES:Fur]]\n",
        registry,
    )
    assert lines == ["float _FurLength;"]
    assert len(diagnostics) == 1
    assert diagnostics[0].is_error
    assert "Hair" in diagnostics[0].message
    assert diagnostics[0].line_number == 4


def test_module_that_cannot_be_loaded(registry):
    _, diagnostics = expand("#MODULES\nHair\n#END\n", registry)
    assert diagnostics[0].is_error
    assert "Hair" in diagnostics[0].message
    assert diagnostics[0].line_number == 2


def test_modules_block_without_end(registry):
    _, diagnostics = expand("#MODULES\nFur\n", registry)
    assert any(d.is_error and "#END" in d.message for d in diagnostics)


def test_duplicate_module_declaration(registry):
    _, diagnostics = expand("#MODULES\nFur\nFur\n#END\n", registry)
    assert len(diagnostics) == 1
    assert not diagnostics[0].is_error


def test_explicit_functions_declaration(registry):
    lines, diagnostics = expand(
        "#MODULES\nFur\nOutline\n#END\n[[MODULE:FUNCTIONS]]\n", registry
    )
    assert lines == ["void Fur() {}"]
    assert len(diagnostics) == 1
    assert not diagnostics[0].is_error
    assert "Outline" in diagnostics[0].message

    lines, diagnostics = expand(
        "#MODULES\nFur\nOutline\n#END\n[[MODULE:FUNCTIONS]]\n[[MODULE:FUNCTIONS:Outline]]\n",
        registry,
    )
    assert lines == ["void Fur() {}", "void Outline() {}"]
    assert diagnostics == []


def test_wildcard_requires_supported_category(registry):
    _, diagnostics = expand("#MODULES\nFur\n#END\n[[MODULE:VERTEX]]\n", registry)
    assert diagnostics[0].is_error


def test_expansion_is_idempotent(registry):
    first, _ = expand_modules(
        split_text("#MODULES\nFur\nRim\n#END\nShader\n  [[MODULE:VARIABLES]]\n"),
        registry.load,
    )
    second, diagnostics = expand_modules(first.lines, registry.load)
    assert second.lines == first.lines
    assert diagnostics == []


def test_module_parsing():
    module = Module.from_text(
        "Test", "// comment\n#VARIABLES\nfloat a;\n#END\n#CUSTOM_BLOCK\nx\n#END\n"
    )
    assert module.block("VARIABLES") == ["float a;"]
    assert module.block("CUSTOM_BLOCK") == ["x"]
    assert module.has_block("CUSTOM_BLOCK")
    assert module.block("FUNCTIONS") == []
    assert not module.explicit_functions_declaration

    with pytest.raises(Exception):
        Module.from_text("Test", "float a;\n")
    with pytest.raises(Exception):
        Module.from_text("Test", "#VARIABLES\nfloat a;\n")


def test_stage_parameters_are_whole_words():
    module = Module.from_text("Test", "#VERTEX(float3 n)\nn = normalize(n) * n2;\n#END\n")
    assert module.vertex_lines(["v.normal"]) == [
        "v.normal = normalize(v.normal) * n2;"
    ]
    with pytest.raises(Exception):
        module.vertex_lines(["a", "b"])


def test_registry_loads_files(tmp_path):
    (tmp_path / "Module_Fur.txt").write_text("#VARIABLES\nfloat _Fur;\n#END\n")
    registry = ModuleRegistry([str(tmp_path)])

    module = registry.load("Fur")
    assert module is not None
    assert module.block("VARIABLES") == ["float _Fur;"]
    assert registry.load("Fur") is module
    assert registry.load("Hair") is None
