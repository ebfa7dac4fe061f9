import os

from glaze import util
from glaze.compiler import (
    CodeInjectionManager,
    FilterResult,
    GenericImplementationRegistry,
    KeywordState,
    PassUsage,
    SympyConditionEvaluator,
    expand_modules,
    filter_lines,
    merge_keyword_states,
    process_keywords_block,
    track_usage,
)
from glaze.compiler.expression import ConditionEvaluator
from glaze.compiler.type_aliases import FeatureSet, ModuleLoader
from glaze.compiler.usage_tracker import input_block, pass_is_surface_shader
from glaze.diagnostics import (
    Diagnostic,
    has_errors,
    print_diagnostics,
    tag_document,
)
from glaze.features.ui_feature import (
    FeatureRenderContext,
    UIFeature,
    render_features,
)
from glaze.module import Module, ModuleRegistry
from glaze.property import Header, Property
from glaze.property.parsing import conditional_properties

from .injection_point import InjectionPoint, find_injection_points
from .metadata import TemplateMetadata, extract_metadata, has_signature
from .parsed_line import ParsedLine, split_text


class Template:
    """
    A shader template document.\n
    Holds the expanded template lines and everything extracted from them. The document is
    re-derived by `reload()`, a reload that produces errors keeps the previous valid state.
    """

    name: str
    text: str
    source_lines: list[ParsedLine]
    "Template lines before module expansion"
    lines: list[ParsedLine]
    "Template lines after module expansion"
    modules: dict[str, Module]
    metadata: TemplateMetadata
    injection_points: list[InjectionPoint]
    diagnostics: list[Diagnostic]
    "Diagnostics from the last operation"
    valid: bool

    loader: ModuleLoader
    evaluator: ConditionEvaluator
    report: bool
    "Whether diagnostics are printed as they are produced"

    _parsed_lines: list[ParsedLine]

    def __init__(
        self,
        text: str = "",
        name: str = "",
        loader: ModuleLoader = None,
        evaluator: ConditionEvaluator = None,
        report: bool = True,
    ) -> None:
        self.name = name
        self.text = ""
        self.source_lines = []
        self.lines = []
        self.modules = {}
        self.metadata = TemplateMetadata()
        self.injection_points = []
        self.diagnostics = []
        self.valid = False

        self.loader = loader or ModuleRegistry().load
        self.evaluator = evaluator or SympyConditionEvaluator()
        self.report = report
        self._parsed_lines = []

        if text:
            self.reload(text)

    @classmethod
    def load_file(cls, path: str, loader: ModuleLoader = None, report: bool = True):
        if not os.path.isfile(path):
            raise Exception(f'Template file "{path}" was not found')

        with open(path, encoding="utf-8") as f:
            text = f.read()
        name = os.path.splitext(os.path.basename(path))[0]
        return cls(text, name, loader, report=report)

    # Metadata shortcuts.
    @property
    def id(self):
        return self.metadata.id

    @property
    def info(self):
        return self.metadata.info

    @property
    def warning(self):
        return self.metadata.warning

    @property
    def config_type(self):
        return self.metadata.config_type

    @property
    def template_keywords(self):
        return self.metadata.template_keywords

    @property
    def properties(self) -> list[Property]:
        return self.metadata.properties

    @property
    def property_headers(self) -> dict[int, Header]:
        return self.metadata.property_headers

    @property
    def ui_features(self) -> list[UIFeature]:
        return self.metadata.ui_features

    def _report(self, diagnostics: list[Diagnostic]):
        tag_document(diagnostics, self.name)
        self.diagnostics = diagnostics
        if self.report:
            print_diagnostics(diagnostics)
        return diagnostics

    def reload(self, text: str = None):
        """
        Expands modules and extracts metadata, properties and UI features.\n
        Returns False and keeps the previous state if errors were found.
        """
        if text is None:
            text = self.text

        diagnostics: list[Diagnostic] = []
        source_lines = split_text(text)

        if not has_signature(source_lines):
            diagnostics.append(
                Diagnostic.error(
                    "Invalid template: #SG2 signature is missing before #FEATURES block"
                )
            )
            self._report(diagnostics)
            return False

        try:
            expanded, expansion_diagnostics = expand_modules(source_lines, self.loader)
            diagnostics.extend(expansion_diagnostics)
            if not has_errors(diagnostics):
                metadata, metadata_diagnostics = extract_metadata(expanded.lines)
                diagnostics.extend(metadata_diagnostics)
        except Exception as e:
            diagnostics.append(
                Diagnostic.error(f"Unexpected error while loading template: {e}")
            )

        self._report(diagnostics)
        if has_errors(diagnostics):
            return False

        self.text = text
        self.source_lines = source_lines
        self.lines = expanded.lines
        self.modules = expanded.modules
        self.metadata = metadata
        self.injection_points = []
        self.valid = True
        return True

    def find_property(self, name: str) -> Property | None:
        return next((p for p in self.properties if p.name == name), None)

    def apply_keywords(self, config):
        "Replaces `TEMPLATE_*` features of the config with the template's keywords"
        config.features = [f for f in config.features if not f.startswith("TEMPLATE_")]
        for keyword in self.template_keywords:
            util.add_if_missing(config.features, keyword)

    def apply_forced_values(self, config):
        for feature in self.ui_features:
            feature.force_value(config)

    def render_features(self, config) -> list[str]:
        "Text rendering of the template's UI features for a config"
        return render_features(FeatureRenderContext(self, config))

    def process_keywords(self, config, condition_features: FeatureSet):
        state, diagnostics = process_keywords_block(
            self.lines, condition_features, self.evaluator, config.keywords
        )
        return state, diagnostics

    def get_parsed_lines(
        self, config, injection_manager: CodeInjectionManager = None
    ) -> tuple[FilterResult, KeywordState]:
        """
        Filters template lines for a config.\n
        Lines before the first `#PASS` see the features needed by every pass, each pass then
        sees the config features along with the features needed by its own properties.
        The returned lines are a buffer reused by the next call.
        """
        diagnostics: list[Diagnostic] = []
        reported = set()

        def add_diagnostics(new_diagnostics: list[Diagnostic]):
            # The keywords block is processed once per pass, report each problem once.
            for diagnostic in new_diagnostics:
                key = (diagnostic.message, diagnostic.line_number)
                if key not in reported:
                    reported.add(key)
                    diagnostics.append(diagnostic)

        injected = injection_manager.needed_features() if injection_manager else []
        needed_all = config.needed_features_all()

        condition_features = set(needed_all)
        condition_features.update(config.features)
        condition_features.update(config.extra_temp_features)

        state, keyword_diagnostics = self.process_keywords(config, condition_features)
        add_diagnostics(keyword_diagnostics)
        combined = merge_keyword_states(KeywordState(config.keywords), state)

        features = set(config.features)
        features.update(state.features)
        features.update(needed_all)
        features.update(injected)

        def pass_features(pass_index: int):
            pass_set = set(config.features)
            pass_set.update(injected)
            pass_set.update(config.needed_features_for_pass(pass_index))

            pass_state, pass_diagnostics = self.process_keywords(config, pass_set)
            add_diagnostics(pass_diagnostics)
            merge_keyword_states(combined, pass_state)

            pass_set.update(pass_state.features)
            return pass_set

        result = filter_lines(
            self.lines,
            features,
            self.evaluator,
            state.keywords,
            pass_features,
            self._parsed_lines,
        )
        diagnostics.extend(result.diagnostics)
        result.diagnostics = self._report(diagnostics)
        return result, combined

    def find_used_properties_per_pass(
        self,
        parsed_lines: list[ParsedLine],
        generic_registry: GenericImplementationRegistry = None,
        injection_manager: CodeInjectionManager = None,
        usage: PassUsage = None,
    ):
        usage, diagnostics = track_usage(
            parsed_lines, self.properties, generic_registry, injection_manager, usage
        )
        self._report(diagnostics)
        return usage

    def conditional_properties(self, parsed_lines: list[ParsedLine]):
        "Properties visible for filtered lines, with the headers shown before them"
        visible, headers, diagnostics = conditional_properties(
            parsed_lines, self.properties
        )
        self._report(diagnostics)
        return visible, headers

    def update_injection_points(self, parsed_lines: list[ParsedLine]):
        self.injection_points = find_injection_points(parsed_lines)
        return self.injection_points

    def pass_is_surface_shader(self, parsed_lines: list[ParsedLine], pass_index: int):
        return pass_is_surface_shader(parsed_lines, pass_index)

    def input_block(self, parsed_lines: list[ParsedLine], pass_index: int):
        variables, diagnostics = input_block(parsed_lines, pass_index)
        self._report(diagnostics)
        return variables

    def __repr__(self) -> str:
        return f"Template({self.name!r}, id={self.id!r})"
