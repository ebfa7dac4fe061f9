from glaze import util
from glaze.template.parsed_line import ParsedLine

from .expression import ConditionEvaluator
from .type_aliases import FeatureSet, KeywordValues

IF_KEYWORD = "IF_KEYWORD "


def _is_else(body: str):
    return body == "ELSE" or body.startswith("ELSE ")


def _is_elif(body: str):
    return body.startswith("ELIF ")


def _condition_expression(body: str):
    "`IF A && B` -> `A && B`, `A && B` -> `A && B`"
    return body[3:] if body.startswith("IF ") else body


class ConditionStack:
    """
    Tracks nested condition blocks: `/// IF`, `/// ELIF`, `/// ELSE`, `/// IF_KEYWORD` and closing `///`.\n
    Each open block has a frame with its current value (including all enclosing blocks)
    and whether any of its branches has matched yet.
    """

    stack: list[bool]
    done: list[bool]
    depth: int
    structural_error: bool
    "Set when the last processed line broke the block structure"

    def __init__(self):
        self.stack = []
        self.done = []
        self.depth = -1
        self.structural_error = False

    def reset(self):
        self.stack.clear()
        self.done.clear()
        self.depth = -1
        self.structural_error = False

    @property
    def is_active(self):
        "True when lines at the current position should be kept"
        return self.depth < 0 or self.stack[self.depth]

    def _parent_active(self):
        return self.depth <= 0 or self.stack[self.depth - 1]

    def _push(self, result: bool):
        active = self.is_active
        self.stack.append(active and result)
        self.done.append(result)
        self.depth += 1

    def process(
        self,
        line: str,
        features: FeatureSet,
        evaluator: ConditionEvaluator,
        keywords: KeywordValues = None,
    ) -> str | None:
        """
        Processes a condition line, returns an error message if something went wrong.
        """
        body = util.condition_body(line)
        self.structural_error = False

        if not body:
            if self.depth < 0:
                self.structural_error = True
                return "Unexpected closing '///' tag without a matching condition"
            self.stack.pop()
            self.done.pop()
            self.depth -= 1
            return None

        if body.startswith(IF_KEYWORD):
            keyword = body[len(IF_KEYWORD) :].strip()
            self._push(bool(keywords and keywords.get(keyword)))
            return None

        if _is_else(body):
            if self.depth < 0:
                self.structural_error = True
                return "'/// ELSE' without a matching condition"
            self.stack[self.depth] = self._parent_active() and not self.done[self.depth]
            self.done[self.depth] = True
            return None

        if _is_elif(body):
            if self.depth < 0:
                self.structural_error = True
                return "'/// ELIF' without a matching condition"
            result, error = evaluator.evaluate(body[5:], features)
            self.stack[self.depth] = (
                self._parent_active() and result and not self.done[self.depth]
            )
            self.done[self.depth] = self.done[self.depth] or result
            return error

        result, error = evaluator.evaluate(_condition_expression(body), features)
        self._push(result)
        return error


def find_unclosed_condition(lines: list[ParsedLine]) -> ParsedLine | None:
    """
    Replays condition markers to find the innermost condition that is never closed.
    """
    opened: list[ParsedLine] = []
    skip_features = False
    for parsed in lines:
        line = parsed.line
        if skip_features:
            skip_features = line.strip() != "#END"
            continue
        if line.startswith("#FEATURES"):
            skip_features = True
            continue

        if not util.is_condition_line(line):
            continue
        body = util.condition_body(line)
        if not body:
            if opened:
                opened.pop()
        elif not (_is_else(body) or _is_elif(body)):
            opened.append(parsed)

    return opened[-1] if opened else None
