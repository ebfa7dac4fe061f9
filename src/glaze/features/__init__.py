from .ui_feature import (
    UIFeature,
    FeatureRenderContext,
    parse_features_block,
    render_features,
)
