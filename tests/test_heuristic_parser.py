"""Tests for the tolerant fallback parser."""

import pytest

from posix_converter.heuristic_parser import HeuristicParser, parse_heuristic, unquote
from posix_converter.posix_ast import (
    AndOr,
    AndOrOperator,
    CaseClause,
    CompoundCommand,
    ForLoop,
    IfClause,
    Pipeline,
    RedirectionKind,
    SimpleCommand,
    WhileLoop,
)


def test_unterminated_if_is_closed_implicitly():
    script = parse_heuristic('if [ -f x')
    assert len(script.commands) == 1
    node = script.commands[0]
    assert isinstance(node, CompoundCommand)
    assert isinstance(node.kind, IfClause)
    condition = node.kind.condition[0]
    assert condition.name == '['
    assert condition.args == ['-f', 'x']


def test_stray_closer_is_dropped():
    script = parse_heuristic('echo a\nfi\necho b')
    assert [c.name for c in script.commands] == ['echo', 'echo']


def test_unbalanced_quote_does_not_raise():
    script = parse_heuristic('echo "unterminated')
    assert len(script.commands) == 1
    assert script.commands[0].name == 'echo'


def test_statements_split_outside_quotes():
    script = parse_heuristic('echo "a; b"; ls')
    first, second = script.commands
    assert first.args == ['a; b']
    assert second.name == 'ls'


def test_and_or_and_pipeline():
    node = parse_heuristic('cat f | grep x && echo found').commands[0]
    assert isinstance(node, AndOr)
    assert node.operator == AndOrOperator.AND
    assert isinstance(node.left, Pipeline)
    assert [s.name for s in node.left.stages] == ['cat', 'grep']


def test_assignments_and_redirections():
    node = parse_heuristic('X=1 cmd > out 2>&1').commands[0]
    assert isinstance(node, SimpleCommand)
    assert node.assignments[0].name == 'X'
    kinds = [r.kind for r in node.redirections]
    assert kinds == [RedirectionKind.OUTPUT, RedirectionKind.OUTPUT_DUP]


def test_for_loop_missing_done():
    node = parse_heuristic('for f in a b; do echo $f').commands[0]
    assert isinstance(node.kind, ForLoop)
    assert node.kind.words == ['a', 'b']
    assert node.kind.body[0].args == ['$f']


def test_while_read_as_pipeline_stage():
    node = parse_heuristic('cat f | while read line; do echo $line; done').commands[0]
    assert isinstance(node, Pipeline)
    assert isinstance(node.stages[-1].kind, WhileLoop)


def test_case_without_esac():
    node = parse_heuristic('case $x in a) echo a;; *) echo other;;').commands[0]
    assert isinstance(node.kind, CaseClause)
    assert [item.patterns for item in node.kind.items] == [['a'], ['*']]


def test_heredoc_extracted():
    node = parse_heuristic('cat <<EOF\nhello\nEOF').commands[0]
    assert node.redirections[0].kind == RedirectionKind.HERE_DOC
    assert node.redirections[0].target == 'hello'


def test_unquote():
    assert unquote('"a b"') == 'a b'
    assert unquote("'$x'") == '$x'
    assert unquote('a\\ b') == 'a b'
    assert unquote('"$(date)"') == '$(date)'


def test_internal_fault_degrades_to_single_command(monkeypatch):
    parser = HeuristicParser()

    def boom(text):
        raise RuntimeError('boom')

    monkeypatch.setattr(parser, '_parse_text', boom)
    script = parser.parse('weird input here')
    assert len(script.commands) == 1
    assert script.commands[0].name == 'weird'
    assert script.commands[0].args == ['input', 'here']


def test_blank_input():
    assert parse_heuristic('   \n').commands == []


@pytest.mark.parametrize('text,names', [
    ('"', []),
    ("'", []),
    ('echo a; "', ['echo']),
    ('> out.txt', ['']),
])
def test_stray_quote_is_dropped(text, names):
    assert [c.name for c in parse_heuristic(text).commands] == names
