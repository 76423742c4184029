"""Tests for the structural translators (control flow, operators, redirections)."""

import pytest

from posix_converter import ConversionError, ConverterConfig, convert
from posix_converter.posix_ast import SimpleCommand
from posix_converter.structural import StructuralTranslator

FILE_X = '(("x" | path exists) and (("x" | path type) == "file"))'


# ============================================================================
# PIPELINES
# ============================================================================

PIPELINE_CASES = [
    ('ls -la | grep test', 'ls --long --all | lines | where $it =~ "test"'),
    ('cat f.txt | sort | uniq -c', 'open --raw f.txt | sort | uniq --count'),
    ('echo hi | tee out.log', 'echo hi | tee { save --force out.log }'),
    ('make 2>&1 | grep error', '^make o+e>| lines | where $it =~ "error"'),
    ('! grep -q x f', '(open --raw f | lines | where $it =~ "x" | is-empty)'),
    ('sleep 10 &', 'job spawn { sleep 10sec }'),
]


@pytest.mark.parametrize('source,expected', PIPELINE_CASES)
def test_pipelines(source, expected):
    assert convert(source) == expected


def test_pipeline_stage_order_is_preserved():
    result = convert('cat a | grep b | head -n 3 | wc -l')
    stages = result.split(' | ')
    assert stages[0] == 'open --raw a'
    assert stages[-1] == 'length'
    assert stages.index('first 3') < stages.index('length')


def test_annotation_is_hoisted_past_later_stages():
    result = convert('tail -f app.log | grep x')
    assert result == ('open --raw app.log | lines | last 10 | lines | where $it =~ "x"'
                      ' # follow mode not supported')


# ============================================================================
# AND / OR
# ============================================================================

AND_OR_CASES = [
    ('[ -f x ] && echo yes', f'if {FILE_X} {{ print yes }}'),
    ('[ -f x ] || echo missing', f'if not {FILE_X} {{ print missing }}'),
    ('make && echo ok', '^make; if $env.LAST_EXIT_CODE == 0 { print ok }'),
    ('make || echo failed', 'try { ^make } catch { print failed }'),
    ('true && false', 'if true { false }'),
    ('(( x > 3 )) && echo big', 'if ($x > 3) { print big }'),
    ('grep -q err log && echo found',
     'if (open --raw log | lines | where $it =~ "err" | is-not-empty) { print found }'),
]


@pytest.mark.parametrize('source,expected', AND_OR_CASES)
def test_and_or(source, expected):
    assert convert(source) == expected


def test_chained_predicates_combine():
    result = convert('[ -f x ] && [ -n "$y" ] && echo both')
    assert result == f'if ({FILE_X} and ($y | is-not-empty)) {{ print both }}'


# ============================================================================
# ASSIGNMENTS AND REDIRECTIONS
# ============================================================================

SIMPLE_CASES = [
    ('x=5; x=6', 'mut x = 5\n$x = 6'),
    ('FOO=bar', '$env.FOO = "bar"'),
    ('FOO=bar cmd', 'with-env { FOO: "bar" } { ^cmd }'),
    ('d=$(pwd)', 'mut d = (pwd)'),
    ('y=$((x * 2))', 'mut y = ($x * 2)'),
    ('n=$((a / b))', 'mut n = ($a // $b)'),
    ('name="$USER"', 'mut name = $env.USER'),
    ('echo hi > out.txt', '"hi" | save --force out.txt'),
    ('echo "a b" >> out.txt', '"a b" | save --append out.txt'),
    ('echo oops >&2', 'print -e oops'),
    ('cmd > /dev/null', '^cmd | ignore'),
    ('cmd > log 2>&1', '^cmd out+err> log'),
    ('cmd 2> err.log', '^cmd err> err.log'),
    ('cmd &> all.log', '^cmd out+err> all.log'),
    ('grep foo < in.txt', 'open --raw in.txt | lines | where $it =~ "foo"'),
    ('cat < in.txt', 'open --raw in.txt'),
    ('cat <<EOF\nhello\nEOF', '"hello\\n"'),
    ('> empty.txt', '"" | save --force empty.txt'),
]


@pytest.mark.parametrize('source,expected', SIMPLE_CASES)
def test_simple_commands(source, expected):
    assert convert(source) == expected


# ============================================================================
# EXPANSIONS IN ARGUMENTS
# ============================================================================

EXPANSION_CASES = [
    ('echo $(date)', 'print (date now)'),
    ('echo `whoami`', 'print (whoami)'),
    ('echo "today: $(date)"', 'print $"today: (date now)"'),
    ('echo $((COUNT + 1))', 'print (($env.COUNT | into int) + 1)'),
    ('cd $(dirname $0)', 'cd ($env.CURRENT_FILE | path dirname)'),
    ('export X=$(pwd)', '$env.X = (pwd)'),
    ('f() { echo $1; }', 'def f [...args] {\n  print $args.0\n}'),
    ('f() { echo $1 $#; }', 'def f [...args] {\n  print $"($args.0) ($args | length)"\n}'),
    ('f() { echo "$@"; }', 'def f [...args] {\n  print ($args | str join " ")\n}'),
    ('f() { for a in "$@"; do echo $a; done; }',
     'def f [...args] {\n  for a in $args {\n    print $a\n  }\n}'),
    ('f() { for a; do echo $a; done; }',
     'def f [...args] {\n  for a in $args {\n    print $a\n  }\n}'),
    ('awk \'{print $1}\' f', '^awk "{print $1}" f'),
]


@pytest.mark.parametrize('source,expected', EXPANSION_CASES)
def test_expansions_in_arguments(source, expected):
    assert convert(source) == expected


def test_positional_outside_function_is_noted():
    assert convert('echo $1') == 'print "$1" # positional parameter $1 is only mapped inside a function'


# ============================================================================
# VARIABLE SCOPES
# ============================================================================

SCOPE_CASES = [
    ('f() { x=1; }; x=2', 'def f [...args] {\n  mut x = 1\n}\nmut x = 2'),
    ('x=1; f() { x=2; }', 'mut x = 1\ndef f [...args] {\n  mut x = 2\n}'),
    ('if true; then x=1; fi; echo $x', 'mut x: any = null\nif true {\n  $x = 1\n}\nprint $x'),
    ('if true; then x=1; else x=2; fi',
     'mut x: any = null\nif true {\n  $x = 1\n} else {\n  $x = 2\n}'),
    ('x=0; if true; then x=1; fi', 'mut x = 0\nif true {\n  $x = 1\n}'),
    ('while true; do n=1; done', 'mut n: any = null\nwhile true {\n  $n = 1\n}'),
    ('true && x=1', 'mut x: any = null\nif true { $x = 1 }'),
]


@pytest.mark.parametrize('source,expected', SCOPE_CASES)
def test_variable_scopes(source, expected):
    assert convert(source) == expected


# ============================================================================
# GREP AS A CONDITION
# ============================================================================

MATCHED = 'open --raw f | lines | where $it =~ "x"'

GREP_CONDITION_CASES = [
    ('if grep x f > /dev/null; then echo y; fi', f'if ({MATCHED} | is-not-empty) {{\n  print y\n}}'),
    ('if grep -q x f; then echo y; fi', f'if ({MATCHED} | is-not-empty) {{\n  print y\n}}'),
    ('if grep x f; then echo y; fi',
     f'if ({MATCHED} | is-not-empty) {{ # matching lines are not printed\n  print y\n}}'),
    ('grep x f > /dev/null 2>&1 && echo y', f'if ({MATCHED} | is-not-empty) {{ print y }}'),
    ('if ! grep -q x f; then echo n; fi', f'if ({MATCHED} | is-empty) {{\n  print n\n}}'),
    ('! grep x f', f'({MATCHED} | is-empty) # matching lines are not printed'),
]


@pytest.mark.parametrize('source,expected', GREP_CONDITION_CASES)
def test_grep_conditions(source, expected):
    assert convert(source) == expected


# ============================================================================
# COMPOUND COMMANDS
# ============================================================================

COMPOUND_CASES = [
    ('for f in a b c; do echo $f; done', 'for f in [a b c] {\n  print $f\n}'),
    ('for i in {1..3}; do echo $i; done', 'for i in 1..3 {\n  print $i\n}'),
    ('for f in *.txt; do rm $f; done', 'for f in (glob "*.txt") {\n  rm $f\n}'),
    ('for f in $(ls); do echo $f; done', 'for f in (ls | lines) {\n  print $f\n}'),
    ('for f in $FILES; do echo $f; done', 'for f in ($env.FILES | split row " ") {\n  print $f\n}'),
    ('for F in a; do echo $F; done', 'for f in [a] {\n  $env.F = $f\n  print $env.F\n}'),
    ('while true; do sleep 1; done', 'while true {\n  sleep 1sec\n}'),
    ('until false; do sleep 1; done', 'while not (false) {\n  sleep 1sec\n}'),
    ('if [ "$a" = "b" ]; then echo y; else echo n; fi',
     'if ($a == "b") {\n  print y\n} else {\n  print n\n}'),
    ('if [ -f x ]; then echo a; elif true; then echo b; fi',
     f'if {FILE_X} {{\n  print a\n}} else if true {{\n  print b\n}}'),
    ('if make; then echo built; fi',
     'if (try { ^make; true } catch { false }) {\n  print built\n}'),
    ('greet() { echo hi; }', 'def greet [...args] {\n  print hi\n}'),
    ('(cd /tmp; ls)', 'do {\n  cd /tmp\n  ls\n}'),
    ('{ cd /tmp; ls; }', 'do --env {\n  cd /tmp\n  ls\n}'),
    ('cat f.txt | while read line; do echo $line; done',
     'open --raw f.txt | lines | each { |line|\n  print $line\n}'),
    ('while read -r line; do echo $line; done < in.txt',
     'open --raw in.txt | lines | each { |line|\n  print $line\n}'),
]


@pytest.mark.parametrize('source,expected', COMPOUND_CASES)
def test_compound_commands(source, expected):
    assert convert(source) == expected


def test_case_becomes_match():
    source = 'case $x in a|b) echo hit;; *) echo miss;; esac'
    assert convert(source) == 'match $x {\n  "a" | "b" => { print hit }\n  _ => { print miss }\n}'


def test_case_glob_pattern_uses_guard():
    source = 'case $f in *.txt) echo text;; esac'
    assert convert(source) == "match $f {\n  $s if $s =~ '^.*\\.txt$' => { print text }\n}"


def test_nested_blocks_indent_by_depth():
    source = 'for f in a b; do if [ -f x ]; then echo $f; fi; done'
    assert convert(source) == (
        'for f in [a b] {\n'
        f'  if {FILE_X} {{\n'
        '    print $f\n'
        '  }\n'
        '}'
    )


# ============================================================================
# ARITHMETIC
# ============================================================================

ARITHMETIC_CASES = [
    ('(( i++ ))', '$i += 1'),
    ('(( --i ))', '$i -= 1'),
    ('(( count += 2 ))', '$count += 2'),
    ('(( total /= 2 ))', '$total = $total // (2)'),
    ('(( x = y + 1 ))', 'mut x = $y + 1'),
    ('(( TOTAL += 1 ))', '$env.TOTAL = (($env.TOTAL | into int) + 1)'),
]


@pytest.mark.parametrize('source,expected', ARITHMETIC_CASES)
def test_arithmetic_statements(source, expected):
    assert convert(source) == expected


class TestArithmeticExpression:

    @pytest.fixture
    def translator(self, registry):
        return StructuralTranslator(registry)

    def test_operators_are_substituted(self, translator):
        assert translator._arithmetic_expression('a % 3 == 0 && b') == '$a mod 3 == 0 and $b'

    def test_grouping_and_unary_minus(self, translator):
        assert translator._arithmetic_expression('-x + (y - 1)') == '-$x + ($y - 1)'

    def test_environment_names(self, translator):
        assert translator._arithmetic_expression('$COUNT * 2') == '($env.COUNT | into int) * 2'

    def test_conditional_is_unsupported(self, translator):
        with pytest.raises(ConversionError):
            translator._arithmetic_expression('a ? 1 : 2')


# ============================================================================
# RECOVERY AND LAYOUT
# ============================================================================

def test_conversion_error_becomes_annotated_source():
    result = convert('export 1abc=2')
    assert result.startswith('# not a valid identifier: 1abc')
    assert 'export 1abc=2' in result


def test_strict_mode_raises_conversion_error(strict):
    with pytest.raises(ConversionError):
        convert('export 1abc=2', strict)


def test_failed_statement_does_not_stop_the_rest():
    result = convert('(( a ? 1 : 2 ))\necho after')
    first, second = result.split('\n')
    assert first.startswith('# conditional arithmetic')
    assert second == 'print after'


def test_compact_layout(compact):
    assert convert('echo a; echo b', compact) == 'print a; print b'
    assert convert('if true; then echo y; fi', compact) == 'if true { print y }'
    assert convert('case $x in a) echo 1;; *) echo 2;; esac', compact) == \
        'match $x { "a" => { print 1 }, _ => { print 2 } }'


def test_compact_layout_breaks_after_annotation(compact):
    result = convert('tail -f log; echo done', compact)
    assert result == 'open --raw log | lines | last 10 # follow mode not supported\nprint done'


def test_indent_width_is_configurable():
    config = ConverterConfig(indent_width=4)
    assert convert('while true; do sleep 1; done', config) == 'while true {\n    sleep 1sec\n}'


def test_translator_tracks_declared_variables(registry):
    translator = StructuralTranslator(registry)
    assert translator.translate_body([]) == []
    assert translator._assign('n', '1') == 'mut n = 1'
    assert translator._assign('n', '2') == '$n = 2'
    assert translator.translate_statement(SimpleCommand('')) == ''
