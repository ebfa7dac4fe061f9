from glaze import util
from glaze.diagnostics import Diagnostic
from glaze.template.parsed_line import ParsedLine

from .conditions import ConditionStack
from .expression import ConditionEvaluator
from .type_aliases import FeatureSet, KeywordValues

KEYWORDS_BLOCK = "#KEYWORDS"
END = "#END"

MAX_KEYWORD_PASSES = 256
"Upper bound on restarts of the keywords block, reached only by a faulty template"


class KeywordState:
    """
    Features, flags and keyword values produced by processing a `#KEYWORDS` block.
    """

    features: list[str]
    flags: list[str]
    extra_flags: dict[str, list[str]]
    "Flags for named blocks, from `flag_on:<block>` commands"
    keywords: dict[str, str]

    def __init__(self, keywords: KeywordValues = None):
        self.features = []
        self.flags = []
        self.extra_flags = {}
        self.keywords = dict(keywords or {})


def _flag_list(state: KeywordState, command: str):
    _, _, block = command.partition(":")
    if block:
        return state.extra_flags.setdefault(block, [])
    return state.flags


def process_keyword_line(line: str, state: KeywordState) -> bool:
    """
    Applies a keyword command, returns True if it enabled a feature that wasn't enabled yet.\n
    Commands: `feature_on X`, `feature_off X`, `flag_on[:block] X`, `flag_off[:block] X`,
    `set_keyword NAME value`.
    """
    fields = line.split()
    command = fields[0]
    arguments = fields[1:]
    if not arguments:
        raise Exception(f'Keyword command "{command}" requires an argument')

    if command == "feature_on":
        added = False
        for feature in arguments:
            added = util.add_if_missing(state.features, feature) or added
        return added

    if command == "feature_off":
        for feature in arguments:
            if feature in state.features:
                state.features.remove(feature)
        return False

    if command.startswith("flag_on"):
        flags = _flag_list(state, command)
        for flag in arguments:
            util.add_if_missing(flags, flag)
        return False

    if command.startswith("flag_off"):
        flags = _flag_list(state, command)
        for flag in arguments:
            if flag in flags:
                flags.remove(flag)
        return False

    if command == "set_keyword":
        state.keywords[arguments[0]] = " ".join(arguments[1:])
        return False

    raise Exception(f'Unknown keyword command "{command}"')


def find_keywords_block(lines: list[ParsedLine]) -> int:
    for i, parsed in enumerate(lines):
        if parsed.line.startswith(KEYWORDS_BLOCK):
            return i
    return -1


def process_keywords_block(
    lines: list[ParsedLine],
    condition_features: FeatureSet,
    evaluator: ConditionEvaluator,
    keywords: KeywordValues = None,
):
    """
    Processes the `#KEYWORDS` block until it stops producing new features.\n
    Whenever a command enables a feature that conditions haven't seen yet, processing
    restarts from the top of the block, so that keyword order doesn't matter.
    The set of features seen by conditions only grows, which bounds the number of restarts.
    """
    state = KeywordState(keywords)
    diagnostics: list[Diagnostic] = []

    start = find_keywords_block(lines)
    if start < 0:
        return state, diagnostics

    features = set(condition_features)
    conditions = ConditionStack()
    block = lines[start + 1 :]
    # Lines are revisited after each restart, report their errors once.
    reported: set[int] = set()

    def report(message: str, parsed: ParsedLine):
        if parsed.line_number not in reported:
            reported.add(parsed.line_number)
            diagnostics.append(Diagnostic.error(message, parsed.line_number, parsed.line))

    for _ in range(MAX_KEYWORD_PASSES):
        conditions.reset()
        restart = False
        closed = False

        for parsed in block:
            line = parsed.line
            if line.startswith(END):
                closed = True
                break

            if util.is_condition_line(line):
                error = conditions.process(line, features, evaluator, state.keywords)
                if error:
                    report(error, parsed)
                    if conditions.structural_error:
                        return state, diagnostics
                continue

            stripped = line.strip()
            if not stripped or stripped.startswith("//") or not conditions.is_active:
                continue

            try:
                process_keyword_line(stripped, state)
            except Exception as e:
                report(f"Invalid keyword command: {e}", parsed)
                continue

            new_features = [f for f in state.features if f not in features]
            if new_features:
                features.update(new_features)
                restart = True
                break

        if not restart:
            if not closed:
                diagnostics.append(
                    Diagnostic.error(
                        f"Missing {END} for {KEYWORDS_BLOCK} block",
                        lines[start].line_number,
                        lines[start].line,
                    )
                )
            elif conditions.depth >= 0:
                diagnostics.append(
                    Diagnostic.error(
                        f"Missing ending '///' tag in {KEYWORDS_BLOCK} block",
                        lines[start].line_number,
                        lines[start].line,
                    )
                )
            return state, diagnostics

    diagnostics.append(
        Diagnostic.error(
            f"{KEYWORDS_BLOCK} block did not settle after {MAX_KEYWORD_PASSES} passes",
            lines[start].line_number,
            lines[start].line,
        )
    )
    return state, diagnostics


def merge_keyword_states(target: KeywordState, source: KeywordState):
    "Adds features and flags from `source` to `target`, keyword values from `source` take priority"
    for feature in source.features:
        util.add_if_missing(target.features, feature)
    for flag in source.flags:
        util.add_if_missing(target.flags, flag)
    for block, flags in source.extra_flags.items():
        target_flags = target.extra_flags.setdefault(block, [])
        for flag in flags:
            util.add_if_missing(target_flags, flag)
    target.keywords.update(source.keywords)
    return target
