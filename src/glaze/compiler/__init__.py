from .expression import SympyConditionEvaluator, ConditionEvaluator
from .expansion import expand_modules
from .condition_filter import filter_lines, FilterResult
from .keywords import process_keywords_block, merge_keyword_states, KeywordState
from .usage_tracker import track_usage, PassUsage
from .generic_implementation import GenericImplementationRegistry
from .injection import CodeInjectionManager
