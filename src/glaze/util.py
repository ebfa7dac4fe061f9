import re


# Template text helpers.
def leading_indent(line: str) -> str:
    return line[: len(line) - len(line.lstrip())]


def is_condition_line(line: str) -> bool:
    """
    Checks whether a line opens, continues or closes a condition block,
    i.e. starts with exactly three slashes after leading whitespace.\n
    Called for every line of every filtered variant, so it avoids regex.
    """
    i = 0
    length = len(line)
    while i < length and (line[i] == " " or line[i] == "\t"):
        i += 1
    if line[i : i + 3] != "///":
        return False
    return i + 3 == length or line[i + 3] != "/"


def condition_body(line: str) -> str:
    "Text that follows the `///` marker, stripped"
    return line.lstrip()[3:].strip()


def iter_tags(line: str):
    """
    Yields the content of every `[[...]]` tag in a line.
    """
    end = 0
    while True:
        start = line.find("[[", end)
        if start < 0:
            return
        end = line.find("]]", start + 2)
        if end < 0:
            return
        yield line[start + 2 : end]
        end += 2


def strip_arguments(name: str) -> str:
    "`Name(a, b)` -> `Name`"
    index = name.find("(")
    return name[:index] if index > 0 else name


def parse_arguments(tag: str) -> list[str]:
    "`TAG:Name(a, b)` -> `['a', 'b']`"
    start = tag.find("(")
    end = tag.rfind(")")
    if start < 0 or end < start:
        return []
    arguments = tag[start + 1 : end]
    if not arguments.strip():
        return []
    return [a.strip() for a in split_top_level(arguments)]


def split_top_level(text: str, separator: str = ",") -> list[str]:
    """
    Splits text on a separator, ignoring separators inside quotes and parentheses.
    """
    items = []
    depth = 0
    quoted = False
    current = []
    for c in text:
        if c == '"':
            quoted = not quoted
        elif not quoted and c == "(":
            depth += 1
        elif not quoted and c == ")":
            depth -= 1
        elif not quoted and depth == 0 and c == separator:
            items.append("".join(current).strip())
            current = []
            continue
        current.append(c)

    if quoted or depth:
        raise Exception(f'Unbalanced quotes or parentheses in "{text}"')

    last = "".join(current).strip()
    if last or items:
        items.append(last)
    return items


def strip_quotes(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == '"' and value[-1] == '"':
        return value[1:-1]
    return value


def parse_key_value(item: str) -> tuple[str, str]:
    "`key = \"value\"` -> `('key', 'value')`"
    key, sep, value = item.partition("=")
    if not sep:
        raise Exception(f'Expected "key = value", got "{item}"')
    return key.strip(), strip_quotes(value)


def split_fields(line: str) -> list[str]:
    """
    Splits a declaration line into fields separated by tabs or runs of 2+ spaces,
    keeping quoted values intact.
    """
    fields = []
    for field in re.split(r'\t+|\s{2,}(?=(?:[^"]*"[^"]*")*[^"]*$)', line.strip()):
        if field:
            fields.append(field)
    return fields


def add_if_missing(items: list, value):
    if value not in items:
        items.append(value)
        return True
    return False
