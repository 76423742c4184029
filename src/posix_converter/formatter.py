"""
Output formatting - layout of translated statements

Translators emit blocks with their statements one per line and no
indentation. Pretty mode indents by bracket depth; compact mode joins
statements with '; ' on one line wherever no annotation forces a break.
"""
from typing import List, Optional, Tuple

from .config import ConverterConfig, DEFAULT_CONFIG
from .quoting import split_annotation

_OPENERS = '{[('
_CLOSERS = '}])'


def _bracket_balance(code: str) -> Tuple[int, int]:
    """
    (leading closers, net depth change) of one line, ignoring brackets
    inside string literals.
    """
    leading = 0
    net = 0
    quote = None
    seen_code = False
    i = 0
    while i < len(code):
        ch = code[i]
        if quote:
            if ch == '\\' and quote == '"':
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in ('"', "'", '`'):
            quote = ch
            seen_code = True
        elif ch in _OPENERS:
            net += 1
            seen_code = True
        elif ch in _CLOSERS:
            net -= 1
            if not seen_code:
                leading += 1
        elif not ch.isspace():
            seen_code = True
        i += 1
    return leading, net


def format_nu_script(text: str, indent_width: int = 2) -> str:
    """
    Re-indent Nushell text by bracket nesting.

        if true {          if true {
        print "a"    ->      print "a"
        }                  }
    """
    lines = []
    depth = 0
    for raw in text.split('\n'):
        line = raw.strip()
        if not line:
            continue
        code, _ = split_annotation(line)
        leading, net = _bracket_balance(code)
        level = max(depth - leading, 0)
        lines.append(' ' * (indent_width * level) + line)
        depth = max(depth + net, 0)
    return '\n'.join(lines)


def _has_annotation(statement: str) -> bool:
    return any(split_annotation(line)[1] for line in statement.split('\n'))


def compact_join(statements: List[str]) -> str:
    """
    One line where possible. A statement ending in a comment (or spanning
    lines) is followed by a newline, since '; ' would land inside it.
    """
    result = ''
    previous = None
    for statement in statements:
        if previous is None:
            result = statement
        elif '\n' in previous or _has_annotation(previous):
            result += '\n' + statement
        else:
            result += '; ' + statement
        previous = statement
    return result


def format_statements(statements: List[str], config: Optional[ConverterConfig] = None) -> str:
    """Lay out top-level statements per config (pretty_print, indent_width)"""
    config = config or DEFAULT_CONFIG
    if not statements:
        return ''
    if config.pretty_print:
        return format_nu_script('\n'.join(statements), config.indent_width)
    return compact_join(statements)
