"""End-to-end tests for convert() and the output formatter."""

import logging

import pytest

from posix_converter import (
    ConversionError,
    ConversionRegistry,
    ConverterConfig,
    ConverterTier,
    ParseError,
    ScriptConverter,
    convert,
    parse,
)
from posix_converter.formatter import (
    _bracket_balance,
    compact_join,
    format_nu_script,
    format_statements,
)


def test_documented_examples():
    assert convert('echo "hello world"') == 'print "hello world"'
    assert convert('ls -la | grep test') == 'ls --long --all | lines | where $it =~ "test"'
    assert convert('foobar -x 1') == '^foobar -x 1'


def test_empty_input():
    assert convert('') == ''
    assert convert(None) == ''
    assert convert('   \n\n') == ''
    assert convert('# only a comment') == ''


EQUIVALENCE_CASES = [
    'echo a; echo b',
    'cat f | grep x | wc -l',
    'if [ -d build ]; then rm -rf build; fi',
    'for i in 1 2 3; do echo $i; done',
    'make && echo ok || echo failed',
]


@pytest.mark.parametrize('text', EQUIVALENCE_CASES)
def test_parsed_script_converts_like_text(text):
    assert convert(parse(text)) == convert(text)


@pytest.mark.parametrize('text', EQUIVALENCE_CASES)
def test_compact_config_applies_to_parsed_scripts(text, compact):
    assert convert(parse(text, compact), compact) == convert(text, compact)


TOTALITY_CASES = [
    'if [ -f x',
    'for f in',
    'case $x in',
    'echo "unterminated',
    'done',
    '))((',
    'cat <<EOF',
    'a | | b',
    '&& ls',
    '(( a ? 1 : 2 ))',
    'f() {',
    '$(',
    '`',
]


@pytest.mark.parametrize('text', TOTALITY_CASES)
def test_convert_is_total(text):
    assert isinstance(convert(text), str)


def test_fallback_parse_is_logged(caplog):
    with caplog.at_level(logging.WARNING):
        result = convert('if [ -f x')
    assert 'INCOMPLETE_COMMAND' in caplog.text
    assert 'path exists' in result


def test_multiline_script():
    source = '\n'.join([
        '#!/bin/sh',
        'set -e',
        'OUT=build',
        'mkdir -p "$OUT"',
        'for f in *.c; do',
        '  cc -c "$f"',
        'done',
    ])
    lines = convert(source).split('\n')
    assert lines[0] == '^set -e'
    assert lines[1] == '$env.OUT = "build"'
    assert lines[2] == 'mkdir $env.OUT'
    assert lines[3] == 'for f in (glob "*.c") {'
    assert lines[4] == '  ^cc -c $f'
    assert lines[5] == '}'


def test_custom_registry():
    registry = ConversionRegistry()
    registry.register(ConverterTier.BUILTIN, 'hello', lambda args: 'print "custom"')
    converter = ScriptConverter(registry)
    assert converter.convert('hello') == 'print "custom"'
    assert converter.convert('ls -la') == '^ls -la'


def test_config_from_dict_ignores_unknown_keys():
    config = ConverterConfig.from_dict({'pretty_print': False, 'colour': 'always'})
    assert config.pretty_print is False
    assert config.strict_mode is False
    assert ConverterConfig.from_dict(None) == ConverterConfig()


QUOTED_CONTENT_CASES = [
    ('echo \'"hi"\'', 'print "\\"hi\\""'),
    ('echo "\'a b\'"', 'print "\'a b\'"'),
    ('echo \'"a" "b"\'', 'print "\\"a\\" \\"b\\""'),
    ('jq \'"abc"\' f', '^jq "\\"abc\\"" f'),
]


@pytest.mark.parametrize('source,expected', QUOTED_CONTENT_CASES)
def test_quotes_inside_words_are_kept(source, expected):
    assert convert(source) == expected


def _nested_ifs(depth):
    return 'if true; then ' * depth + 'echo x' + '; fi' * depth


def _nested_groups(depth):
    return '{ ' * depth + 'echo x' + '; }' * depth


@pytest.mark.parametrize('text', [_nested_ifs(500), _nested_groups(2000), '(' * 3000 + 'ls'])
def test_deep_nesting_is_total(text):
    assert isinstance(convert(text), str)


@pytest.mark.parametrize('text', [_nested_ifs(500), _nested_groups(2000)])
def test_deep_nesting_in_strict_mode_raises(text, strict):
    with pytest.raises((ParseError, ConversionError)):
        convert(text, strict)


@pytest.mark.parametrize('text,expected', [('"', ''), ("'", ''), ('echo a\n"', 'print a')])
def test_stray_quote_leaves_no_empty_command(text, expected):
    assert convert(text) == expected


# ============================================================================
# FORMATTER
# ============================================================================

class TestFormatter:

    def test_indents_by_bracket_depth(self):
        text = 'if true {\nfor x in [1 2] {\nprint $x\n}\n}'
        assert format_nu_script(text) == 'if true {\n  for x in [1 2] {\n    print $x\n  }\n}'

    def test_brackets_in_strings_are_ignored(self):
        assert format_nu_script('if true {\nprint "{"\n}') == 'if true {\n  print "{"\n}'

    def test_brackets_in_comments_are_ignored(self):
        text = 'while true { # loop {\nsleep 1sec\n}'
        assert format_nu_script(text) == 'while true { # loop {\n  sleep 1sec\n}'

    def test_blank_lines_dropped_and_indent_width(self):
        assert format_nu_script('do {\n\nls\n}', indent_width=4) == 'do {\n    ls\n}'

    def test_bracket_balance(self):
        assert _bracket_balance('} else {') == (1, 0)
        assert _bracket_balance('print "(("') == (0, 0)
        assert _bracket_balance('})') == (2, -2)

    def test_compact_join(self):
        assert compact_join(['a', 'b']) == 'a; b'
        assert compact_join(['a # note', 'b']) == 'a # note\nb'
        assert compact_join(['x {\ny\n}', 'z']) == 'x {\ny\n}\nz'
        assert compact_join([]) == ''

    def test_format_statements(self, compact):
        assert format_statements([]) == ''
        assert format_statements(['a', 'b']) == 'a\nb'
        assert format_statements(['a', 'b'], compact) == 'a; b'
