import pytest

from glaze.compiler import SympyConditionEvaluator
from glaze.module import ModuleRegistry

FUR_MODULE = """
#FEATURES
sngl	lbl="Fur"	kw=FUR
#END

#VARIABLES
float _FurLength;
#END

#FUNCTIONS
void Fur() {}
#END

#VERTEX(float3 normal)
pos += normal * _FurLength;
#END

#FRAGMENT:shell(float alpha)
clip(alpha);
#END
"""

RIM_MODULE = """
#VARIABLES
float _RimMin;
#END

#FUNCTIONS
float Rim() { return _RimMin; }
#END

#KEYWORDS
feature_on RIM_LIGHT
#END
"""

OUTLINE_MODULE = """
#EXPLICIT_FUNCTIONS_DECLARATION

#FUNCTIONS
void Outline() {}
#END

#VARIABLES
#ENABLE_IMPL: float __outlineWidth, lbl = "Outline Width"
#END
"""


@pytest.fixture
def evaluator():
    return SympyConditionEvaluator()


@pytest.fixture
def registry():
    registry = ModuleRegistry()
    registry.add_text("Fur", FUR_MODULE)
    registry.add_text("Rim", RIM_MODULE)
    registry.add_text("Outline", OUTLINE_MODULE)
    return registry
