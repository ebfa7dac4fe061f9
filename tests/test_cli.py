import sys

from glaze import cli
from glaze.property import Header, Property
from glaze.template.program import Program

from test_template import TEMPLATE
from conftest import RIM_MODULE


def run(monkeypatch, *args):
    monkeypatch.setattr(sys, "argv", ["glaze", *args])
    cli.main()


def write_templates(tmp_path):
    templates = tmp_path / "templates"
    templates.mkdir()
    (templates / "Toon.txt").write_text(TEMPLATE)
    (templates / "Module_Rim.txt").write_text(RIM_MODULE)
    return templates


def test_generate(tmp_path, monkeypatch, capsys):
    templates = write_templates(tmp_path)
    output = tmp_path / "out"

    run(monkeypatch, "generate", str(templates), "-o", str(output), "-f", "RIM")

    text = (output / "Toon.shader").read_text()
    assert "float _RimMin;" in text
    assert "  rim props enabled" in text
    assert "Completed in" in capsys.readouterr().out


def test_generate_with_project(tmp_path, monkeypatch):
    write_templates(tmp_path)
    (tmp_path / "project.json").write_text(
        '{ base_profile: { template_paths: ["templates"], features: ["RIM"] } }'
    )
    output = tmp_path / "out"

    run(monkeypatch, "generate", "--project", str(tmp_path / "project.json"), "-o", str(output))

    assert "  [[VALUE:RimMin]]" in (output / "Toon.shader").read_text()


def test_info(tmp_path, monkeypatch, capsys):
    templates = write_templates(tmp_path)
    run(monkeypatch, "info", str(templates / "Toon.txt"))

    output = capsys.readouterr().out
    assert "#### Toon ####" in output
    assert "ID: toon_basic" in output
    assert "float3 Albedo" in output
    assert "shader_property_ref -> Albedo" in output


def test_usage(tmp_path, monkeypatch, capsys):
    templates = write_templates(tmp_path)
    run(monkeypatch, "usage", str(templates))

    output = capsys.readouterr().out
    assert "Pass 0 (1): " in output
    assert "Pass 1 (2): " in output
    assert "- Smoothness" in output


def test_features(tmp_path, monkeypatch, capsys):
    templates = write_templates(tmp_path)
    config = tmp_path / "config.json"
    config.write_text('{ features: ["RIM"], keywords: { RENDER_TYPE: "Transparent" } }')

    run(monkeypatch, "features", str(templates), "-c", str(config))

    output = capsys.readouterr().out
    assert "[x] Rim Lighting" in output
    assert "Render Type: Transparent" in output


def test_format_info():
    prop = Property("Albedo", "float3")
    text = cli._format_info(
        {
            "Pass 0": [prop],
            "Header": Header("Surface"),
            "Program": Program.Fragment,
            "Passes": {2, 0},
            "Nested": {"Keys": ["A"]},
        }
    )
    assert text.splitlines() == [
        "Pass 0 (1): ",
        "- Albedo",
        "Header: Surface",
        "Program: Fragment",
        "Passes (2): ",
        "- 0",
        "- 2",
        "Nested: ",
        "- Keys (1): ",
        "  - A",
    ]
