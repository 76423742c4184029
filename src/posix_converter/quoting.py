"""
Quoting engine - re-serialize source words as safe Nushell tokens

RULE:
    A token is quoted when it contains whitespace, a quote character, a
    variable/expansion sigil, a glob wildcard or a Nushell separator
    (see QUOTE_TRIGGER_CHARS). Quoting wraps it in double quotes, escaping
    backslashes and embedded double quotes.

    Source words arrive with their shell quoting already removed, so a
    quote character in a word is content and is always escaped:

        >>> quote_arg('hello world')
        '"hello world"'
        >>> quote_arg('"hi"')
        '"\\\\"hi\\\\""'
        >>> quote_arg('file.txt')
        'file.txt'

    ensure_quoted() is the idempotent variant for text the converters
    generated themselves: a complete Nushell literal passes through.

EXPRESSIONS:
    NuExpression marks a word the structural layer already rendered
    ((date now), $args.0, $"x-(pwd)"). Every quoting function passes it
    through unchanged.

VARIABLES:
    quote_word()  - argument position: $HOME -> $env.HOME,
                    "$dir/x" -> $"($dir)/x", bare words allowed
    quote_value() - expression position: anything non-numeric that is
                    not a variable becomes a string literal

Used by every converter and by the generic fallback converter.
"""
import re

from .constants import QUOTE_TRIGGER_CHARS, IDENTIFIER_PATTERN

_SIMPLE_VARIABLE = re.compile(r'^\$(?:\{([A-Za-z_][A-Za-z0-9_]*)\}|([A-Za-z_][A-Za-z0-9_]*))$')
_IDENTIFIER = re.compile(IDENTIFIER_PATTERN)
_VARIABLE_IN_TEXT = re.compile(r'\$(?:\{([A-Za-z_][A-Za-z0-9_]*)\}|([A-Za-z_][A-Za-z0-9_]*)|\?)')
_NUMBER = re.compile(r'^-?\d+(?:\.\d+)?$')


def needs_quoting(token: str) -> bool:
    """True when the token cannot be emitted as a bare word"""
    if token == '':
        return True
    return any(ch in QUOTE_TRIGGER_CHARS for ch in token)


def is_quoted(token: str) -> bool:
    """
    True when token is already one complete Nushell string literal.

    A double-quoted literal only counts when every inner double quote is
    escaped, otherwise '"a" "b"' would be mistaken for one string.
    """
    if len(token) < 2:
        return False

    if token.startswith("'") and token.endswith("'"):
        return "'" not in token[1:-1]

    if token.startswith('$"'):
        body = token[2:]
    elif token.startswith('"'):
        body = token[1:]
    else:
        return False

    if not body.endswith('"'):
        return False

    # Walk the body: the only unescaped quote must be the closing one
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == '\\':
            i += 2
            continue
        if ch == '"':
            return i == len(body) - 1
        i += 1
    return False


def escape_string(text: str) -> str:
    """Escape text for the inside of a Nushell double-quoted string"""
    escaped = text.replace('\\', '\\\\').replace('"', '\\"')
    return escaped.replace('\n', '\\n').replace('\t', '\\t').replace('\r', '\\r')


def nu_string(text: str) -> str:
    """Always produce a double-quoted literal of text"""
    if isinstance(text, NuExpression):
        return text
    return f'"{escape_string(text)}"'


def quote_arg(token: str) -> str:
    """Quote a source word if needed (see module docstring)"""
    if isinstance(token, NuExpression) or not needs_quoting(token):
        return token
    return f'"{escape_string(token)}"'


def ensure_quoted(text: str) -> str:
    """Double-quoted literal for generated text, unless it already is one"""
    if is_quoted(text) and not text.startswith("'"):
        return text
    return nu_string(text)


# ============================================================================
# EXPRESSIONS
# ============================================================================

class NuExpression(str):
    """
    A word already rendered as a Nushell expression.

    text is the form used inside an interpolated string; None means the
    expression is wrapped in parentheses there.
    """

    def __new__(cls, code: str, text: str = None):
        expression = super().__new__(cls, code)
        expression.text = text
        return expression


def interpolation_part(expression: NuExpression) -> str:
    """How an expression appears inside $"..." """
    if expression.text is not None:
        return expression.text
    if expression.startswith('$"') and expression.endswith('"'):
        return expression[2:-1]
    if expression.startswith('(') and expression.endswith(')'):
        return expression
    return f"({expression})"


def split_assignment(word: str):
    """NAME=value -> (NAME, '=', value); a rendered value stays an expression"""
    name, sep, value = word.partition('=')
    if sep and isinstance(word, NuExpression):
        value = NuExpression(value)
    return name, sep, value


def join_words(words) -> str:
    """
    Words joined with single spaces into one string value.

    Plain words give plain text for the caller to quote; when any word is
    an expression the result is one interpolated NuExpression.
    """
    if not any(isinstance(w, NuExpression) for w in words):
        return ' '.join(words)
    if len(words) == 1:
        word = words[0]
        # a spread ...$args joins into one string
        return word if word.text is None else NuExpression(word.text)
    return NuExpression('$"' + ' '.join(interpolation_body(w) for w in words) + '"')


# ============================================================================
# VARIABLES
# ============================================================================

def nu_variable(name: str) -> str:
    """
    Target spelling of a shell variable.

    All-caps names are environment variables by convention ($env.HOME),
    anything else becomes a script variable ($count).
    """
    if name.isupper():
        return f"$env.{name}"
    return f"${name}"


def variable_reference(word: str):
    """Return the variable name if word is exactly $name or ${name}, else None"""
    match = _SIMPLE_VARIABLE.match(word)
    if not match:
        return None
    return match.group(1) or match.group(2)


def has_substitution(word: str) -> bool:
    """True when word carries a $(...) or backtick command substitution"""
    return '$(' in word or '`' in word


def _escape_interpolated(text: str) -> str:
    return escape_string(text).replace('(', '\\(').replace(')', '\\)')


def interpolation_body(word: str) -> str:
    """Inside of an interpolated string: text escaped, $name as ($name)"""
    if isinstance(word, NuExpression):
        return interpolation_part(word)
    parts = []
    last = 0
    for match in _VARIABLE_IN_TEXT.finditer(word):
        parts.append(_escape_interpolated(word[last:match.start()]))
        name = match.group(1) or match.group(2)
        target = nu_variable(name) if name else '$env.LAST_EXIT_CODE'
        parts.append(f"({target})")
        last = match.end()
    parts.append(_escape_interpolated(word[last:]))
    return ''.join(parts)


def interpolate(word: str) -> str:
    """
    Render a word mixing text and $name references as an interpolated string.

        >>> interpolate('$HOME/bin')
        '$"($env.HOME)/bin"'
    """
    return '$"' + interpolation_body(word) + '"'


def _expand_variables(word: str, expand: bool):
    """Shared head of quote_word/quote_value: variable or interpolation, else None"""
    if isinstance(word, NuExpression):
        return word
    if word in ('$?', '${?}'):
        return '$env.LAST_EXIT_CODE'
    name = variable_reference(word)
    if name is not None:
        return nu_variable(name)
    if expand and not has_substitution(word) and _VARIABLE_IN_TEXT.search(word):
        return interpolate(word)
    return None


def quote_word(word: str, expand: bool = True) -> str:
    """
    Variable-aware quoting for command argument positions.

    $name / ${name} become a target variable reference, $? becomes the
    last exit code, words mixing text and variables become interpolated
    strings (unless expand is False), everything else goes through
    quote_arg(). Bare words are allowed, so file.txt stays file.txt.
    """
    expanded = _expand_variables(word, expand)
    if expanded is not None:
        return expanded
    return quote_arg(word)


def quote_value(word: str) -> str:
    """
    Quoting for expression positions (assignment values, pipeline heads,
    comparisons), where a bare word would be parsed as a command call.

    Numbers stay bare, everything that is not a variable becomes a string
    literal.
    """
    expanded = _expand_variables(word, True)
    if expanded is not None:
        return expanded
    if _NUMBER.match(word):
        return word
    return nu_string(word)


def nu_text(text: str) -> str:
    """Multi-line text (here-documents) as one double-quoted literal"""
    return f'"{escape_string(text)}"'


# ============================================================================
# ANNOTATIONS
# ============================================================================

def split_annotation(line: str):
    """
    Split one line of target text into (code, note) at the first '#' that
    starts a comment. '#' inside a string literal or glued to a word does
    not count. Returns (line, '') when there is no comment.
    """
    quote = None
    i = 0
    while i < len(line):
        ch = line[i]
        if quote:
            if ch == '\\' and quote == '"':
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in ('"', "'", '`'):
            quote = ch
        elif ch == '#' and (i == 0 or line[i - 1] in ' \t'):
            return line[:i].rstrip(), line[i + 1:].strip()
        i += 1
    return line, ''


def is_identifier(text: str) -> bool:
    return bool(_IDENTIFIER.match(text))
