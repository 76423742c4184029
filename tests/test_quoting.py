"""Tests for the quoting engine."""

import pytest

from posix_converter.quoting import (
    NuExpression,
    ensure_quoted,
    interpolate,
    interpolation_part,
    is_quoted,
    join_words,
    nu_string,
    nu_text,
    quote_arg,
    quote_value,
    quote_word,
    split_assignment,
    split_annotation,
    variable_reference,
)


# ---------------------------------------------------------------------------
# quote_arg
# ---------------------------------------------------------------------------

QUOTE_CASES = [
    ('file.txt', 'file.txt'),
    ('hello world', '"hello world"'),
    ('a"b', '"a\\"b"'),
    ('*.txt', '"*.txt"'),
    ('', '""'),
    ('semi;colon', '"semi;colon"'),
    ('-x', '-x'),
    # quotes in a source word are content
    ('"hi"', '"\\"hi\\""'),
    ("'single'", '"\'single\'"'),
    ('"a" "b"', '"\\"a\\" \\"b\\""'),
]


@pytest.mark.parametrize('token,expected', QUOTE_CASES)
def test_quote_arg(token, expected):
    assert quote_arg(token) == expected


ENSURE_QUOTED_CASES = [
    ('done', '"done"'),
    ('"done"', '"done"'),
    ('$"($x)"', '$"($x)"'),
    ('"a \\" b"', '"a \\" b"'),
    ('"a" "b"', '"\\"a\\" \\"b\\""'),
    ("'single'", '"\'single\'"'),
]


@pytest.mark.parametrize('text,expected', ENSURE_QUOTED_CASES)
def test_ensure_quoted(text, expected):
    assert ensure_quoted(text) == expected


@pytest.mark.parametrize('text', ['hello world', 'a"b', 'C:\\path with space', "it's", '$x y', '"hi"'])
def test_ensure_quoted_is_idempotent(text):
    once = ensure_quoted(text)
    assert ensure_quoted(once) == once


@pytest.mark.parametrize('token', ['file.txt', '-x', 'a\\b', 'dir/sub'])
def test_quote_arg_leaves_safe_tokens_alone(token):
    assert quote_arg(quote_arg(token)) == token


def test_is_quoted_rejects_two_adjacent_strings():
    assert not is_quoted('"a" "b"')
    assert is_quoted('"a \\" b"')


def test_nu_string_always_quotes():
    assert nu_string('plain') == '"plain"'
    assert nu_string('"plain"') == '"\\"plain\\""'
    assert nu_string('tab\there') == '"tab\\there"'


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------

@pytest.mark.parametrize('quote', [quote_arg, quote_word, quote_value, nu_string, ensure_quoted])
def test_expressions_pass_through_quoting(quote):
    expression = NuExpression('(date now)')
    assert quote(expression) == '(date now)'


INTERPOLATION_PART_CASES = [
    (NuExpression('(pwd)'), '(pwd)'),
    (NuExpression('$args.0'), '($args.0)'),
    (NuExpression('$"a-($x)"'), 'a-($x)'),
    (NuExpression('...$args', text='($args | str join " ")'), '($args | str join " ")'),
]


@pytest.mark.parametrize('expression,expected', INTERPOLATION_PART_CASES)
def test_interpolation_part(expression, expected):
    assert interpolation_part(expression) == expected


JOIN_CASES = [
    (['a', 'b'], 'a b'),
    ([], ''),
    ([NuExpression('(pwd)')], '(pwd)'),
    ([NuExpression('...$args', text='($args | str join " ")')], '($args | str join " ")'),
    (['dir:', NuExpression('(pwd)')], '$"dir: (pwd)"'),
    (['$HOME', NuExpression('$args.0')], '$"($env.HOME) ($args.0)"'),
]


@pytest.mark.parametrize('words,expected', JOIN_CASES)
def test_join_words(words, expected):
    assert join_words(words) == expected


def test_joined_expression_stays_an_expression():
    assert isinstance(join_words(['x', NuExpression('(pwd)')]), NuExpression)
    assert not isinstance(join_words(['x', 'y']), NuExpression)


SPLIT_ASSIGNMENT_CASES = [
    ('X=1', ('X', '=', '1'), False),
    ('X', ('X', '', ''), False),
    (NuExpression('X=(pwd)'), ('X', '=', '(pwd)'), True),
]


@pytest.mark.parametrize('word,expected,rendered', SPLIT_ASSIGNMENT_CASES)
def test_split_assignment(word, expected, rendered):
    parts = split_assignment(word)
    assert parts == expected
    assert isinstance(parts[2], NuExpression) is rendered


# ---------------------------------------------------------------------------
# Variables
# ---------------------------------------------------------------------------

class TestVariables:

    def test_variable_reference(self):
        assert variable_reference('$HOME') == 'HOME'
        assert variable_reference('${name}') == 'name'
        assert variable_reference('$HOME/bin') is None

    def test_quote_word_env_and_local(self):
        assert quote_word('$HOME') == '$env.HOME'
        assert quote_word('$count') == '$count'
        assert quote_word('$?') == '$env.LAST_EXIT_CODE'

    def test_quote_word_interpolates_mixed_text(self):
        assert quote_word('$HOME/bin') == '$"($env.HOME)/bin"'
        assert quote_word('${dir}/x (1)') == '$"($dir)/x \\(1\\)"'

    def test_quote_word_without_expansion(self):
        assert quote_word('$1 + 1', expand=False) == '"$1 + 1"'

    def test_interpolate(self):
        assert interpolate('$HOME/bin') == '$"($env.HOME)/bin"'
        assert interpolate('x=$x') == '$"x=($x)"'

    def test_quote_value(self):
        assert quote_value('42') == '42'
        assert quote_value('-3.5') == '-3.5'
        assert quote_value('file.txt') == '"file.txt"'
        assert quote_value('$x') == '$x'


def test_nu_text_escapes_newlines():
    assert nu_text('a\nb\n') == '"a\\nb\\n"'


# ---------------------------------------------------------------------------
# Annotations
# ---------------------------------------------------------------------------

ANNOTATION_CASES = [
    ('ls # note', ('ls', 'note')),
    ('# only a note', ('', 'only a note')),
    ('print "a # b"', ('print "a # b"', '')),
    ('ls a#b', ('ls a#b', '')),
    ('x # one # two', ('x', 'one # two')),
]


@pytest.mark.parametrize('line,expected', ANNOTATION_CASES)
def test_split_annotation(line, expected):
    assert split_annotation(line) == expected
