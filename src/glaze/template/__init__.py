from .parsed_line import ParsedLine, number_lines, split_text
from .program import Program
from .injection_point import InjectionPoint, find_injection_points
