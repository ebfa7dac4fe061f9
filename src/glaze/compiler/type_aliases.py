"This file contains commonly used type aliases"

from collections.abc import Callable, Mapping

from glaze.module import Module

FeatureName = str
FeatureSet = set[FeatureName]
"Currently enabled features, membership only"

KeywordValues = Mapping[str, str]
"Runtime keyword values, tested by `/// IF_KEYWORD`"

ModuleLoader = Callable[[str], Module | None]

PassFeatures = Callable[[int], FeatureSet]
"Returns the feature set to use from the start of the given pass"

EvaluationResult = tuple[bool, str | None]
"Condition value, and an error message if the expression couldn't be evaluated"

Predicate = Callable[[FeatureSet], bool]
"Compiled condition, tests membership of feature names"
