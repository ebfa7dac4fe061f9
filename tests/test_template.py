import pytest

from glaze.diagnostics import TemplateError
from glaze.project import Config, generate
from glaze.property import Header
from glaze.template.template import Template

TEMPLATE = """\
// Toon template
#SG2
#ID=toon_basic
#INFO=Basic toon template  Second line
#WARNING=Experimental
#CONFIG=Surface
#TEMPLATE_KEYWORDS=TEMPLATE_TOON,BASIC

#MODULES
Rim
#END

#FEATURES
head	lbl="Lighting"
sngl	lbl="Rim Lighting"	kw=RIM
keyword	lbl="Render Type"	kw=RENDER_TYPE	values=Opaque|Opaque,Transparent|Transparent	default=Opaque	forceKeyword=true
#END

#KEYWORDS
/// IF RIM
feature_on RIM_LIGHT
///
#END

#PROPERTIES_NEW
header	Surface
float3	Albedo	fragment, label = "Albedo", imp(material_color, variable = "_Color", default = (1, 1, 1, 1))
float	Smoothness	fragment, label = "Smoothness", imp(shader_property_ref, reference = Albedo, channels = a)
/// IF RIM_LIGHT
float	RimMin	fragment, label = "Rim Min", imp(material_range, variable = "_RimMin", default = 0.5, features = "RIM_PROPS")
///
#END

Shader "Toon"
{
[[MODULE:VARIABLES]]
#PASS
#VERTEX
  [[VALUE:Albedo]]
/// IF_KEYWORD RENDER_TYPE
  // render type set
///
#PASS
#FRAGMENT
  [[VALUE:Smoothness]]
/// IF RIM_LIGHT
  [[VALUE:RimMin]]
///
/// IF RIM_PROPS
  rim props enabled
///
  [[INJECTION_POINT:Fragment End]]
}
"""


@pytest.fixture
def template(registry):
    template = Template(TEMPLATE, "Toon", registry.load, report=False)
    assert template.valid, template.diagnostics
    return template


def test_metadata(template):
    assert template.id == "toon_basic"
    assert template.info == "Basic toon template\nSecond line"
    assert template.warning == "Experimental"
    assert template.config_type == "surface"
    assert template.template_keywords == ["TEMPLATE_TOON", "BASIC"]
    assert list(template.modules) == ["Rim"]
    assert [f.TYPE for f in template.ui_features] == ["head", "sngl", "keyword"]
    assert [p.name for p in template.properties] == ["Albedo", "Smoothness", "RimMin"]
    assert template.property_headers == {0: Header("Surface")}
    assert template.diagnostics == []


def test_static_usage(template):
    assert template.find_property("Albedo").passes == {0}
    assert template.find_property("Smoothness").passes == {1}
    assert template.find_property("RimMin").passes == {1}
    assert template.find_property("Gloss") is None


def test_expanded_lines(template):
    lines = [parsed.line for parsed in template.lines]
    assert "#MODULES" not in lines
    assert "float _RimMin;" in lines

    marker = next(p for p in template.source_lines if p.line == "[[MODULE:VARIABLES]]")
    expanded = next(p for p in template.lines if p.line == "float _RimMin;")
    assert expanded.line_number == marker.line_number


def test_apply_keywords(template):
    config = Config()
    config.features = ["RIM", "TEMPLATE_OLD"]
    template.apply_keywords(config)
    assert config.features == ["RIM", "TEMPLATE_TOON", "BASIC"]


def test_generate_with_rim(template):
    config = Config()
    config.features = ["RIM"]
    result = generate(template, config)

    assert not result.failed, result.diagnostics
    assert result.iterations == 2
    assert "  [[VALUE:RimMin]]" in result.lines
    assert "  rim props enabled" in result.lines
    assert "  // render type set" in result.lines
    assert config.keywords == {"RENDER_TYPE": "Opaque"}
    assert "RIM_LIGHT" in result.keywords.features

    assert result.usage.names(0) == ["Albedo"]
    assert result.usage.names(1) == ["Smoothness", "RimMin", "Albedo"]
    assert config.needed_features_for_pass(1) == ["RIM_PROPS"]
    assert config.needed_features_for_pass(0) == []

    assert [p.name for p in result.properties] == ["Albedo", "Smoothness", "RimMin"]
    assert [p.name for p in result.injection_points] == ["Fragment End"]


def test_generate_without_rim(template):
    result = generate(template, Config())

    assert not result.failed
    assert result.iterations == 1
    assert "  [[VALUE:RimMin]]" not in result.lines
    assert "  rim props enabled" not in result.lines
    assert result.usage.names(1) == ["Smoothness", "Albedo"]
    assert [p.name for p in result.properties] == ["Albedo", "Smoothness"]
    assert result.text().endswith("}\n")


def test_filtered_lines_keep_line_numbers(template):
    config = Config()
    config.features = ["RIM"]
    result = generate(template, config)
    source = {p.line_number: p.line for p in template.source_lines}
    for parsed in result.parsed_lines:
        if parsed.line != "float _RimMin;":
            assert source[parsed.line_number] == parsed.line


def test_render_features(template):
    config = Config()
    config.features = ["RIM"]
    assert template.render_features(config) == [
        "",
        "== Lighting ==",
        "[x] Rim Lighting",
        "Render Type: Opaque",
    ]


def test_missing_signature(registry):
    template = Template(TEMPLATE.replace("#SG2\n", ""), "Toon", registry.load, report=False)
    assert not template.valid
    assert template.diagnostics[0].is_error
    assert template.diagnostics[0].document == "Toon"

    with pytest.raises(TemplateError):
        generate(template, Config())


def test_failed_reload_keeps_previous_state(template):
    lines = list(template.lines)
    assert not template.reload(TEMPLATE.replace("[[MODULE:VARIABLES]]", "[[MODULE:VARIABLES:Hair]]"))
    assert template.valid
    assert template.id == "toon_basic"
    assert template.lines == lines
    assert any("Hair" in d.message for d in template.diagnostics)

    assert not template.reload(TEMPLATE.replace("[[VALUE:Albedo]]", "[[VALUE:Gloss]]"))
    assert template.find_property("Albedo").passes == {0}


def test_reload(template):
    assert template.reload(TEMPLATE.replace("#ID=toon_basic", "#ID=toon_v2"))
    assert template.id == "toon_v2"


def test_missing_id_is_a_warning(registry):
    template = Template(TEMPLATE.replace("#ID=toon_basic\n", ""), "Toon", registry.load, report=False)
    assert template.valid
    assert template.id is None
    assert [d.is_error for d in template.diagnostics] == [False]


def test_unbalanced_template(registry):
    template = Template(
        TEMPLATE.replace("  rim props enabled\n///\n", "  rim props enabled\n"),
        "Toon",
        registry.load,
        report=False,
    )
    result = generate(template, Config())
    assert result.failed
    assert result.parsed_lines == []
    error = result.diagnostics[0]
    assert error.line == "/// IF RIM_PROPS"
    assert template.source_lines[error.line_number - 1].line == "/// IF RIM_PROPS"


def test_diagnostics_are_printed(registry, capsys):
    Template(TEMPLATE.replace("#ID=toon_basic\n", ""), "Toon", registry.load)
    assert "Warning! [Toon] Missing ID in template metadata" in capsys.readouterr().out


def test_load_file(tmp_path, registry):
    path = tmp_path / "Toon.txt"
    path.write_text(TEMPLATE)
    template = Template.load_file(str(path), registry.load, report=False)
    assert template.name == "Toon"
    assert template.valid

    with pytest.raises(Exception):
        Template.load_file(str(tmp_path / "Missing.txt"))


def test_pass_helpers(template):
    config = Config()
    config.features = ["RIM"]
    result = generate(template, config)

    assert not template.pass_is_surface_shader(result.parsed_lines, 0)
    assert template.input_block(result.parsed_lines, 1) is None

    visible, headers = template.conditional_properties(result.parsed_lines)
    assert [p.name for p in visible] == ["Albedo", "Smoothness", "RimMin"]
    assert headers == {0: Header("Surface")}
