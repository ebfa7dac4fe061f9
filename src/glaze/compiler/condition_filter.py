from glaze import util
from glaze.diagnostics import Diagnostic
from glaze.template.parsed_line import ParsedLine

from .conditions import ConditionStack, find_unclosed_condition
from .expression import ConditionEvaluator
from .type_aliases import FeatureSet, KeywordValues, PassFeatures

FEATURES_BLOCK = "#FEATURES"
END = "#END"


class FilterResult:
    lines: list[ParsedLine]
    diagnostics: list[Diagnostic]
    pass_count: int

    def __init__(self, lines: list[ParsedLine] = None):
        self.lines = [] if lines is None else lines
        self.diagnostics = []
        self.pass_count = 0

    @property
    def failed(self):
        return any(d.is_error for d in self.diagnostics)


def _unbalanced_error(lines: list[ParsedLine], depth: int):
    missing = depth + 1
    plural = "s" if missing > 1 else ""
    opener = find_unclosed_condition(lines)
    if opener is None:
        return Diagnostic.error(f"Missing {missing} ending '///' tag{plural}")
    return Diagnostic.error(
        f"Missing {missing} ending '///' tag{plural} at line {opener.line_number}",
        opener.line_number,
        opener.line,
    )


def filter_lines(
    lines: list[ParsedLine],
    features: FeatureSet,
    evaluator: ConditionEvaluator,
    keywords: KeywordValues = None,
    pass_features: PassFeatures = None,
    output: list[ParsedLine] = None,
):
    """
    Keeps only the lines that are inside satisfied condition blocks, with their original line numbers.\n
    `pass_features` provides the feature set used after each `#PASS` marker, and `output`
    is an optional buffer that gets cleared and reused for the result.
    """
    if output is None:
        output = []
    else:
        output.clear()

    result = FilterResult(output)
    conditions = ConditionStack()
    pass_index = -1

    i = 0
    count = len(lines)
    while i < count:
        parsed = lines[i]
        line = parsed.line
        i += 1

        if line and line[0] == "#":
            if line.startswith("#PASS"):
                pass_index += 1
                if pass_features is not None:
                    features = pass_features(pass_index)

            # UI declarations are never part of the generated code.
            elif line.startswith(FEATURES_BLOCK):
                while i < count and lines[i].line.strip() != END:
                    i += 1
                if i >= count:
                    result.diagnostics.append(
                        Diagnostic.error(
                            f"Missing {END} for {FEATURES_BLOCK} block",
                            parsed.line_number,
                            line,
                        )
                    )
                    output.clear()
                    return result
                i += 1
                continue

        if util.is_condition_line(line):
            error = conditions.process(line, features, evaluator, keywords)
            if error:
                result.diagnostics.append(
                    Diagnostic.error(error, parsed.line_number, line)
                )
                if conditions.structural_error:
                    output.clear()
                    return result
        elif conditions.is_active:
            output.append(parsed)

    result.pass_count = pass_index + 1

    if conditions.depth >= 0:
        result.diagnostics.append(_unbalanced_error(lines, conditions.depth))
        output.clear()

    return result
