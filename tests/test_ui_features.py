from types import SimpleNamespace

import pytest

from glaze.features import FeatureRenderContext, parse_features_block, render_features
from glaze.features.ui_feature import (
    UIFeatureKeyword,
    UIFeatureMultiple,
    UIFeatureToggle,
    parse_ui_feature,
)
from glaze.project import Config
from glaze.template.parsed_line import split_text

FEATURES = """\
#FEATURES
head	lbl="Lighting"
sngl	lbl="Rim Lighting"	kw=RIM	help="Adds a rim light"
sngl	lbl="Rim Mask"	kw=RIM_MASK	needs=RIM	indent
mult	lbl="Ramp Style"	kw=Slider Ramp|,Texture Ramp|TEXTURE_RAMP
// comment
dd_start	lbl="Advanced"
sngl	lbl="Outline"	kw=OUTLINE	toggles=OUTLINE_PASS
subh	lbl="Render"
keyword	lbl="Render Type"	kw=RENDER_TYPE	values=Opaque|Opaque,Transparent|Transparent	default=Opaque	forceKeyword=true
dd_end
sep
space
warning	msg="Experimental features ahead"
#END
after
"""


def parse():
    features, end, diagnostics = parse_features_block(split_text(FEATURES), 0)
    assert diagnostics == []
    assert end == 15
    return features


def render(features, config):
    return render_features(FeatureRenderContext(SimpleNamespace(ui_features=features), config))


def test_parse_features():
    features = parse()
    assert [f.TYPE for f in features] == [
        "head",
        "sngl",
        "sngl",
        "mult",
        "dd_start",
        "sngl",
        "subh",
        "keyword",
        "dd_end",
        "sep",
        "space",
        "warning",
    ]

    rim = features[1]
    assert isinstance(rim, UIFeatureToggle)
    assert rim.keyword == "RIM"
    assert rim.help == "Adds a rim light"
    assert rim.line_number == 3

    assert features[2].needs == ["RIM"]
    assert "indent" in features[2].flags

    ramp = features[3]
    assert isinstance(ramp, UIFeatureMultiple)
    assert ramp.options == [("Slider Ramp", ""), ("Texture Ramp", "TEXTURE_RAMP")]
    assert ramp.controlled_features() == ["TEXTURE_RAMP"]

    assert features[5].controlled_features() == ["OUTLINE", "OUTLINE_PASS"]

    render_type = features[7]
    assert isinstance(render_type, UIFeatureKeyword)
    assert render_type.values == [("Opaque", "Opaque"), ("Transparent", "Transparent")]
    assert render_type.force_keyword


def test_render_defaults():
    assert render(parse(), Config()) == [
        "",
        "== Lighting ==",
        "[ ] Rim Lighting",
        "Ramp Style: Slider Ramp",
        "> Advanced",
        "    [ ] Outline",
        "    -- Render --",
        "    Render Type: Opaque",
        "-" * 20,
        "",
        "(!) Experimental features ahead",
    ]


def test_render_enabled_features():
    config = Config()
    config.features = ["RIM", "TEXTURE_RAMP", "OUTLINE"]
    config.keywords = {"RENDER_TYPE": "Transparent"}
    lines = render(parse(), config)
    assert lines[2:8] == [
        "[x] Rim Lighting",
        "  [ ] Rim Mask",
        "Ramp Style: Texture Ramp",
        "> Advanced *",
        "    [x] Outline",
        "    -- Render --",
    ]
    assert lines[8] == "    Render Type: Transparent"


def test_dropdown_contents():
    features = parse()
    context = FeatureRenderContext(SimpleNamespace(ui_features=features), Config())
    assert context.features_inside(features[4]) == features[5:8]
    assert not context.dropdown_has_enabled(features[4])


def test_forced_keyword():
    config = Config()
    for feature in parse():
        feature.force_value(config)
    assert config.keywords == {"RENDER_TYPE": "Opaque"}

    config.keywords = {"RENDER_TYPE": "Transparent"}
    for feature in parse():
        feature.force_value(config)
    assert config.keywords == {"RENDER_TYPE": "Transparent"}


def test_invalid_features():
    features, end, diagnostics = parse_features_block(
        split_text("#FEATURES\nslider\tlbl=A\nsngl\tlbl=B\nsngl\tkw=C\n#END\n"), 0
    )
    assert [f.keyword for f in features] == ["C"]
    assert [d.line_number for d in diagnostics] == [2, 3]
    assert end == 5

    _, _, diagnostics = parse_features_block(split_text("#FEATURES\nsep\n"), 0)
    assert diagnostics[0].is_error
    assert diagnostics[0].line_number == 1

    with pytest.raises(Exception):
        parse_ui_feature("mult\tlbl=Empty")
