"""Tests for the shell builtin converters."""

import pytest

from posix_converter.errors import ConversionError, ConversionErrorKind

FILE_EXISTS = '(({p} | path exists) and (({p} | path type) == "{t}"))'


def file_test(path, kind):
    return FILE_EXISTS.format(p=f'"{path}"', t=kind)


BUILTIN_CASES = [
    # ========== cd / exit / pwd / source ==========
    ('cd', [], 'cd'),
    ('cd', ['-'], 'cd -'),
    ('cd', ['~'], 'cd'),
    ('cd', ['/tmp'], 'cd /tmp'),
    ('cd', ['$HOME/src'], 'cd $"($env.HOME)/src"'),
    ('exit', [], 'exit'),
    ('exit', ['2'], 'exit 2'),
    ('exit', ['$rc'], 'exit $rc'),
    ('exit', ['abc'], 'exit 1 # non-numeric exit status: abc'),
    ('true', [], 'true'),
    ('false', [], 'false'),
    ('pwd', [], 'pwd'),
    ('pwd', ['-P'], 'pwd | path expand'),
    ('source', ['env.nu'], 'source env.nu'),
    ('.', ['lib.sh'], 'source lib.sh # source expects a converted .nu script'),
    ('source', [], '# source: missing file operand'),

    # ========== test / [ ==========
    ('test', [], 'false'),
    ('[', [']'], 'false'),
    ('test', ['abc'], '("abc" | is-not-empty)'),
    ('test', ['-f', 'file.txt'], file_test('file.txt', 'file')),
    ('[', ['-d', 'build', ']'], file_test('build', 'dir')),
    ('test', ['-e', 'x'], '("x" | path exists)'),
    ('test', ['-z', '$name'], '($name | is-empty)'),
    ('test', ['-n', '$HOME'], '($env.HOME | is-not-empty)'),
    ('test', ['$a', '-lt', '5'], '(($a | into int) < (5 | into int))'),
    ('test', ['$count', '-ge', '$LIMIT'], '(($count | into int) >= ($env.LIMIT | into int))'),
    ('[', ['$answer', '=', 'yes', ']'], '($answer == "yes")'),
    ('test', ['$a', '!=', '$b'], '($a != $b)'),
    ('test', ['!', '-e', 'lock'], '(not ("lock" | path exists))'),
    ('test', ['-f', 'a', '-o', '-d', 'b'], f"({file_test('a', 'file')} or {file_test('b', 'dir')})"),
    ('test', ['-n', '$a', '-a', '-n', '$b'], '(($a | is-not-empty) and ($b | is-not-empty))'),
    ('test', ['a', 'b', 'c', 'd'], 'false # unsupported test expression: a b c d'),
    ('test', ['-k', 'x'], 'false # unsupported test operator: -k'),

    # ========== environment ==========
    ('export', [], '$env'),
    ('export', ['PATH=/usr/bin'], '$env.PATH = "/usr/bin"'),
    ('export', ['A=1', 'B=two'], '$env.A = 1; $env.B = "two"'),
    ('export', ['EDITOR'], '$env.EDITOR = ($env.EDITOR? | default "")'),
    ('unset', ['FOO'], 'hide-env FOO'),
    ('unset', ['tmp'], '$tmp = null'),
    ('alias', [], 'scope aliases'),
    ('alias', ['ll=ls -l'], 'alias ll = ls -l'),
    ('read', [], 'input'),
    ('read', ['-r', 'line'], 'let line = (input)'),
    ('read', ['-s', 'pw'], 'let pw = (input -s)'),
    ('read', ['-p', 'Name: ', 'NAME'], '$env.NAME = (input "Name: ")'),
    ('read', ['a', 'b'],
     'let fields = (input | split words); '
     'let a = ($fields | get 0? | default ""); '
     'let b = ($fields | get 1? | default "")'),
    ('read', ['-t', '5', 'x'], 'let x = (input) # timeout 5s ignored'),

    # ========== job control ==========
    ('jobs', [], 'job list'),
    ('jobs', ['-p'], 'job list | get pids | flatten'),
    ('jobs', ['%1'], 'job list | where id == 1'),
    ('kill', ['1234'], 'kill 1234'),
    ('kill', ['-9', '1234'], 'kill --signal 9 1234'),
    ('kill', ['-s', 'HUP', '42'], 'kill --signal 1 42'),
    ('kill', ['-TERM', '42'], 'kill 42'),
    ('kill', ['%2'], 'job kill 2'),
    ('kill', ['10', '11'], '[10 11] | each { |pid| kill $pid }'),
    ('kill', [], '# Usage: kill [-signal] pid...'),
    ('wait', [], '# wait: background jobs are not awaited'),
]


@pytest.mark.parametrize('name,args,expected', BUILTIN_CASES)
def test_builtin_conversion(convert_command, name, args, expected):
    assert convert_command(name, *args) == expected


def test_kill_signal_list(convert_command):
    result = convert_command('kill', '-l')
    assert result.startswith('# Signal list: HUP INT')


def test_export_rejects_invalid_identifier(convert_command):
    with pytest.raises(ConversionError) as info:
        convert_command('export', '1abc=2')
    assert info.value.kind == ConversionErrorKind.INVALID_ARGUMENT_SHAPE
    assert info.value.command == 'export'


def test_alias_rejects_empty_value(convert_command):
    with pytest.raises(ConversionError):
        convert_command('alias', 'll=')
