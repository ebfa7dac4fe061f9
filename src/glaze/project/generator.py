from glaze.compiler import (
    CodeInjectionManager,
    GenericImplementationRegistry,
    KeywordState,
    PassUsage,
)
from glaze.diagnostics import Diagnostic, TemplateError, has_errors
from glaze.property import Header, Property
from glaze.template.injection_point import InjectionPoint
from glaze.template.parsed_line import ParsedLine
from glaze.template.template import Template

from .config import Config

MAX_GENERATION_PASSES = 8
"Upper bound on filter and tracking runs while per-pass needed features change"


class GenerationResult:
    parsed_lines: list[ParsedLine]
    usage: PassUsage
    keywords: KeywordState
    generic_registry: GenericImplementationRegistry
    injection_points: list[InjectionPoint]
    properties: list[Property]
    "Properties visible for the config, in declaration order"
    headers: dict[int, Header]
    diagnostics: list[Diagnostic]
    iterations: int

    def __init__(self) -> None:
        self.parsed_lines = []
        self.usage = PassUsage()
        self.keywords = KeywordState()
        self.generic_registry = GenericImplementationRegistry()
        self.injection_points = []
        self.properties = []
        self.headers = {}
        self.diagnostics = []
        self.iterations = 0

    @property
    def lines(self) -> list[str]:
        return [parsed.line for parsed in self.parsed_lines]

    @property
    def failed(self):
        return has_errors(self.diagnostics)

    def text(self):
        return "\n".join(self.lines) + "\n"


def _needed_per_pass(config: Config, pass_count: int):
    return [sorted(config.needed_features_for_pass(i)) for i in range(pass_count)]


def generate(
    template: Template,
    config: Config,
    injection_manager: CodeInjectionManager = None,
    generic_registry: GenericImplementationRegistry = None,
):
    """
    Resolves template lines for a config.\n
    Property usage decides which features each pass needs, and those features can change
    which properties are used, so filtering and tracking run until the needed features settle.
    """
    if not template.valid:
        raise TemplateError(
            f'Template "{template.name}" is not valid', template.diagnostics
        )

    result = GenerationResult()
    if generic_registry is not None:
        result.generic_registry = generic_registry

    template.apply_keywords(config)
    template.apply_forced_values(config)
    config.set_pass_properties([])

    for _ in range(MAX_GENERATION_PASSES):
        result.iterations += 1
        filtered, keywords = template.get_parsed_lines(config, injection_manager)
        result.diagnostics = list(filtered.diagnostics)
        result.keywords = keywords
        if filtered.failed:
            return result

        result.parsed_lines = list(filtered.lines)
        result.usage = template.find_used_properties_per_pass(
            result.parsed_lines, result.generic_registry, injection_manager
        )
        result.diagnostics.extend(template.diagnostics)
        if result.failed:
            return result

        pass_count = len(result.usage)
        previous = _needed_per_pass(config, pass_count)
        config.set_pass_properties(result.usage.passes)
        if _needed_per_pass(config, pass_count) == previous:
            break
    else:
        result.diagnostics.append(
            Diagnostic.warning(
                f"Needed features did not settle after {MAX_GENERATION_PASSES} passes",
            )
        )

    result.injection_points = template.update_injection_points(result.parsed_lines)
    result.properties, result.headers = template.conditional_properties(
        result.parsed_lines
    )
    result.diagnostics.extend(template.diagnostics)
    return result
