"""Tests for the standard-utility and delegated converters."""

import pytest

from posix_converter.converters import TextUtilityConverters
from posix_converter.errors import ConversionError, ConversionErrorKind


# ============================================================================
# TEXT UTILITIES
# ============================================================================

TEXT_CASES = [
    # ========== echo / printf ==========
    ('echo', ['hello', 'world'], 'print "hello world"'),
    ('echo', ['done'], 'print done'),
    ('echo', [], 'print ""'),
    ('echo', ['-n', 'x'], 'print -n x'),
    ('echo', ['-e', 'x'], 'print x'),
    ('echo', ['-e', 'a\\tb'], 'print "a\\tb"'),
    ('echo', ['-e', 'one\\ntwo'], 'print "one\\ntwo"'),
    ('echo', ['-e', 'no newline\\c', 'ignored'], 'print -n "no newline"'),
    ('echo', ['-e', 'back\\\\slash'], 'print back\\slash'),
    ('echo', ['-e', '-E', 'a\\tb'], 'print a\\tb'),
    ('echo', ['a\\tb'], 'print a\\tb'),
    ('echo', ['"hi"'], 'print "\\"hi\\""'),
    ('echo', ['$HOME'], 'print $env.HOME'),
    ('echo', ['Hello, $name'], 'print $"Hello, ($name)"'),
    ('printf', ['hello'], 'print -n "hello"'),
    ('printf', ['%s\\n', '$x'], 'print $"($x)"'),
    ('printf', [], 'print -n ""'),

    # ========== cat / tee / seq ==========
    ('cat', [], '$in'),
    ('cat', ['f.txt'], 'open --raw f.txt'),
    ('cat', ['a', 'b'], '[(open --raw a) (open --raw b)] | str join'),
    ('tee', ['out.log'], 'tee { save --force out.log }'),
    ('tee', ['-a', 'out.log'], 'tee { save --append out.log }'),
    ('tee', [], 'tee { ignore }'),
    ('seq', ['5'], '1..5'),
    ('seq', ['2', '10'], '2..10'),
    ('seq', ['1', '2', '9'], '1..3..9'),
    ('seq', ['5', '1'], '[]'),
    ('seq', ['x'], '^seq x'),

    # ========== grep ==========
    ('grep', ['test'], 'lines | where $it =~ "test"'),
    ('grep', ['-i', 'foo'], 'lines | where $it =~ "(?i)foo"'),
    ('grep', ['-v', 'x', 'f.txt'], 'open --raw f.txt | lines | where $it !~ "x"'),
    ('grep', ['-c', 'x'], 'lines | where $it =~ "x" | length'),
    ('grep', ['-q', 'x'], 'lines | where $it =~ "x" | is-not-empty'),
    ('grep', ['-F', 'a.b'], 'lines | where $it =~ "a\\\\.b"'),
    ('grep', ['-w', 'x'], 'lines | where $it =~ "\\\\bx\\\\b"'),
    ('grep', ['-m', '2', 'x'], 'lines | where $it =~ "x" | first 2'),
    ('grep', ['-r', 'needle', 'src'], '^grep -r needle src'),
    ('grep', ['-A', '2', 'x', 'f'], '^grep -A 2 x f'),

    # ========== sed ==========
    ('sed', ['s/foo/bar/g'], 'each { |line| $line | str replace --all --regex "foo" "bar" }'),
    ('sed', ['s/a/b/', 'f.txt'], 'open --raw f.txt | lines | each { |line| $line | str replace --regex "a" "b" }'),
    ('sed', ['-n', '5p'], 'enumerate | where $it.index == 4 | get item'),
    ('sed', ['1d'], 'enumerate | where not ($it.index == 0) | get item'),
    ('sed', ['$d'], 'drop 1'),
    ('sed', ['3q'], 'first 3'),
    ('sed', [], '^sed'),

    # ========== cut / head / tail ==========
    ('cut', ['-d', ',', '-f', '2'], 'lines | each { |line| $line | split row "," | select 1 | str join "," }'),
    ('cut', ['-d:', '-f1,3'], 'lines | each { |line| $line | split row ":" | select 0 2 | str join ":" }'),
    ('cut', ['-d', ' ', '-f', '2-'], 'lines | each { |line| $line | split row " " | skip 1 | str join " " }'),
    ('cut', ['-c', '1-3'], 'lines | str substring 0..2'),
    ('head', [], 'first 10'),
    ('head', ['-n', '5'], 'first 5'),
    ('head', ['-5', 'f'], 'open --raw f | lines | first 5'),
    ('head', ['-n', '-2'], 'drop 2'),
    ('head', ['-c', '4'], 'split chars | first 4 | str join'),
    ('tail', [], 'last 10'),
    ('tail', ['-n', '+2'], 'skip 1'),
    ('tail', ['-f', 'app.log'], 'open --raw app.log | lines | last 10 # follow mode not supported'),

    # ========== sort / uniq / wc ==========
    ('sort', [], 'sort'),
    ('sort', ['-rn'], 'sort --natural --reverse'),
    ('sort', ['-u', 'f'], 'open --raw f | lines | sort | uniq'),
    ('sort', ['-t', ',', '-k', '2'],
     'split column "," | sort-by column2 | each { |row| $row | values | str join "," }'),
    ('uniq', [], 'uniq'),
    ('uniq', ['-c'], 'uniq --count'),
    ('uniq', ['-d', 'in.txt'], 'open --raw in.txt | lines | uniq --repeated'),
    ('wc', ['-l'], 'lines | length'),
    ('wc', ['-w'], 'split words | length'),
    ('wc', ['-l', 'f'], 'open --raw f | lines | length'),
    ('wc', ['-lw'], 'collect { |text| {lines: ($text | lines | length), words: ($text | split words | length)} }'),
]


@pytest.mark.parametrize('name,args,expected', TEXT_CASES)
def test_text_utility_conversion(convert_command, name, args, expected):
    assert convert_command(name, *args) == expected


def test_sed_script_files_are_unsupported(convert_command):
    with pytest.raises(ConversionError) as info:
        convert_command('sed', '-f', 'script.sed', 'in.txt')
    assert info.value.kind == ConversionErrorKind.UNSUPPORTED_FEATURE


def test_sed_unterminated_substitution(convert_command):
    with pytest.raises(ConversionError) as info:
        convert_command('sed', 's/abc')
    assert info.value.kind == ConversionErrorKind.INVALID_ARGUMENT_SHAPE


class TestSedHelpers:

    def test_basic_regex_groups_become_extended(self):
        assert TextUtilityConverters._bre_to_ere('\\(a\\)\\+') == '(a)+'
        assert TextUtilityConverters._bre_to_ere('a+') == 'a\\+'

    def test_replacement_references(self):
        assert TextUtilityConverters._sed_replacement('\\1-&') == '${1}-${0}'
        assert TextUtilityConverters._sed_replacement('$5') == '$$5'


# ============================================================================
# FILE UTILITIES
# ============================================================================

FILE_CASES = [
    # ========== ls ==========
    ('ls', [], 'ls'),
    ('ls', ['-la'], 'ls --long --all'),
    ('ls', ['-lh', '*.txt'], 'ls --long *.txt'),
    ('ls', ['-t'], 'ls | sort-by modified --reverse'),
    ('ls', ['-tr'], 'ls | sort-by modified'),
    ('ls', ['-R', 'src'], 'ls src/**/*'),
    ('ls', ['-Z'], 'ls # Unknown flag: -Z'),
    ('ls', ['my dir'], 'ls "my dir"'),

    # ========== find ==========
    ('find', [], 'ls **/* | get name'),
    ('find', ['.', '-name', '*.py'], 'ls **/* | where ($it.name | path basename) =~ "^.*\\\\.py$" | get name'),
    ('find', ['src', '-type', 'f'], 'ls src/**/* | where $it.type == "file" | get name'),
    ('find', ['.', '-maxdepth', '1', '-type', 'd'], 'ls | where $it.type == "dir" | get name'),
    ('find', ['.', '-size', '+1k'], 'ls **/* | where $it.size > 1024b | get name'),
    ('find', ['.', '-empty', '-delete'], 'ls **/* | where $it.size == 0b | each { |file| rm $file.name }'),
    ('find', ['.', '-type', 'f', '-exec', 'wc', '-l', '{}', ';'],
     'ls **/* | where $it.type == "file" | each { |file| ^wc -l $file.name }'),
    ('find', ['.', '-exec', 'cp', '{}', '{}.bak', ';'],
     'ls **/* | each { |file| ^cp $file.name $"($file.name).bak" }'),

    # ========== stat / mutation ==========
    ('stat', ['f'], 'ls --long f | first'),
    ('stat', ['-c', '%s', 'f'], 'ls --long f | first | get size'),
    ('cp', ['-r', 'a', 'b'], 'cp --recursive a b'),
    ('cp', ['a'], 'cp a # cp needs a source and a destination'),
    ('mv', ['a', 'b'], 'mv a b'),
    ('rm', ['-rf', 'build'], 'rm --recursive --force build'),
    ('rm', ['*.log'], 'rm *.log'),
    ('rmdir', ['d'], 'rm d # rmdir only removes empty directories'),
    ('mkdir', ['-p', 'a/b'], 'mkdir a/b'),
    ('mkdir', ['-pv', 'x'], 'mkdir --verbose x'),
    ('touch', ['f'], 'touch f'),
    ('chmod', ['+x', 'run.sh'], '^chmod +x run.sh'),
    ('chown', ['me:me', 'f'], '^chown me:me f'),

    # ========== paths ==========
    ('basename', ['/a/b.txt'], '"/a/b.txt" | path basename'),
    ('basename', ['/a/b.txt', '.txt'], '"/a/b.txt" | path basename | str replace --regex "\\\\.txt$" ""'),
    ('dirname', ['/a/b'], '"/a/b" | path dirname'),
    ('dirname', ['a', 'b'], '["a" "b"] | each { |p| $p | path dirname } | str join (char nl)'),
    ('realpath', ['x'], '"x" | path expand'),
]


@pytest.mark.parametrize('name,args,expected', FILE_CASES)
def test_file_utility_conversion(convert_command, name, args, expected):
    assert convert_command(name, *args) == expected


def test_find_exec_without_command(convert_command):
    with pytest.raises(ConversionError):
        convert_command('find', '.', '-exec', ';')


# ============================================================================
# SYSTEM UTILITIES AND DELEGATED COMMANDS
# ============================================================================

SYSTEM_CASES = [
    ('date', [], 'date now'),
    ('date', ['+%Y-%m-%d'], 'date now | format date "%Y-%m-%d"'),
    ('date', ['-u'], 'date now | date to-timezone UTC'),
    ('date', ['-d', 'yesterday'], '(date now) - 1day'),
    ('ps', [], 'ps'),
    ('ps', ['aux'], 'ps --long'),
    ('ps', ['-p', '12'], 'ps | where $it.pid == 12'),
    ('which', ['git'], 'which git'),
    ('which', ['-a', 'git'], 'which --all git'),
    ('whoami', [], 'whoami'),
    ('sleep', ['5'], 'sleep 5sec'),
    ('sleep', ['1m', '30'], 'sleep 1min 30sec'),
    ('sleep', ['0.5'], 'sleep 0.5sec'),
    ('awk', ['{print $1}', 'f'], '^awk "{print $1}" f'),
    ('jq', ['.name'], '^jq .name'),
    ('python3', ['-c', 'print(1)'], '^python3 -c "print(1)"'),
]


@pytest.mark.parametrize('name,args,expected', SYSTEM_CASES)
def test_system_and_delegated_conversion(convert_command, name, args, expected):
    assert convert_command(name, *args) == expected


def test_standard_cd_resolves_physical_path():
    from posix_converter.converters import SystemUtilityConverters

    cd = SystemUtilityConverters().command_map['cd']
    assert cd(['-P', 'link']) == 'cd ("link" | path expand)'
