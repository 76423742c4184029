"""Tests for the full-grammar lexer and parser."""

import pytest

from posix_converter.errors import ParseError, ParseErrorKind
from posix_converter.posix_ast import (
    AndOr,
    AndOrOperator,
    ArithmeticCommand,
    BraceGroup,
    CaseClause,
    CommandList,
    CompoundCommand,
    ForLoop,
    FunctionDefinition,
    IfClause,
    Pipeline,
    RedirectionKind,
    SimpleCommand,
    Subshell,
    WhileLoop,
)
from posix_converter.posix_grammar_parser import PosixLexer, TokenType, parse_posix_script


def only(text):
    script = parse_posix_script(text)
    assert len(script.commands) == 1
    return script.commands[0]


# ---------------------------------------------------------------------------
# Lexer
# ---------------------------------------------------------------------------

class TestLexer:

    def test_quotes_removed_and_marked(self):
        tokens = PosixLexer('echo "a b" \'c\'').tokenize()
        assert [t.value for t in tokens[:-1]] == ['echo', 'a b', 'c']
        assert tokens[1].quoted and tokens[2].quoted
        assert tokens[-1].type == TokenType.EOF

    def test_substitutions_kept_verbatim(self):
        tokens = PosixLexer('echo $(date +%s) ${HOME} `pwd`').tokenize()
        assert [t.value for t in tokens[1:4]] == ['$(date +%s)', '${HOME}', '`pwd`']

    def test_fd_prefixed_redirect(self):
        tokens = PosixLexer('cmd 2>&1').tokenize()
        assert tokens[1].type == TokenType.REDIRECT
        assert tokens[1].value == '>&'
        assert tokens[1].fd == 2

    def test_comments_dropped(self):
        tokens = PosixLexer('ls # list files').tokenize()
        assert [t.type for t in tokens] == [TokenType.WORD, TokenType.EOF]

    def test_arithmetic_command_token(self):
        tokens = PosixLexer('(( i += 1 ))').tokenize()
        assert tokens[0].type == TokenType.ARITH
        assert tokens[0].value == 'i += 1'


# ---------------------------------------------------------------------------
# Simple commands and operators
# ---------------------------------------------------------------------------

def test_single_command_is_not_wrapped():
    node = only('echo hello world')
    assert isinstance(node, SimpleCommand)
    assert node.name == 'echo'
    assert node.args == ['hello', 'world']


def test_assignments_and_redirections():
    node = only('FOO=bar cmd arg > out.txt 2>> err.log')
    assert node.assignments[0].name == 'FOO'
    assert node.assignments[0].value == 'bar'
    assert node.name == 'cmd'
    assert node.args == ['arg']
    kinds = [r.kind for r in node.redirections]
    assert kinds == [RedirectionKind.OUTPUT, RedirectionKind.ERROR_APPEND]
    assert node.redirections[0].fd is None


def test_stderr_to_stdout_duplication():
    node = only('make 2>&1')
    redirection = node.redirections[0]
    assert redirection.kind == RedirectionKind.OUTPUT_DUP
    assert redirection.fd == 2
    assert redirection.target == '1'


def test_pipeline_order_preserved():
    node = only('cat f | grep x | sort')
    assert isinstance(node, Pipeline)
    assert [s.name for s in node.stages] == ['cat', 'grep', 'sort']


def test_negated_pipeline():
    node = only('! grep -q x f')
    assert isinstance(node, Pipeline)
    assert node.negated
    assert len(node.stages) == 1


def test_and_or_is_left_associative():
    node = only('a && b || c')
    assert isinstance(node, AndOr)
    assert node.operator == AndOrOperator.OR
    assert isinstance(node.left, AndOr)
    assert node.left.operator == AndOrOperator.AND
    assert node.right.name == 'c'


def test_background():
    script = parse_posix_script('sleep 5 & a && b &')
    first, second = script.commands
    assert isinstance(first, Pipeline) and first.background
    assert isinstance(second, CommandList) and second.background


def test_heredoc_body():
    node = only('cat <<EOF\nline one\nline two\nEOF\n')
    redirection = node.redirections[0]
    assert redirection.kind == RedirectionKind.HERE_DOC
    assert redirection.target == 'line one\nline two'


def test_heredoc_strip_tabs():
    node = only('cat <<-END\n\tindented\n\tEND\n')
    assert node.redirections[0].target == 'indented'
    assert node.redirections[0].strip_tabs


# ---------------------------------------------------------------------------
# Compound commands
# ---------------------------------------------------------------------------

def test_if_elif_else():
    node = only('if a; then b; elif c; then d; else e; fi')
    assert isinstance(node, CompoundCommand)
    kind = node.kind
    assert isinstance(kind, IfClause)
    assert kind.condition[0].name == 'a'
    assert kind.then_body[0].name == 'b'
    assert len(kind.elif_parts) == 1
    assert kind.else_body[0].name == 'e'


def test_for_loop_words():
    kind = only('for f in a b c; do echo $f; done').kind
    assert isinstance(kind, ForLoop)
    assert kind.variable == 'f'
    assert kind.words == ['a', 'b', 'c']
    assert kind.body[0].args == ['$f']


def test_for_loop_without_in():
    kind = only('for arg\ndo\necho $arg\ndone').kind
    assert kind.words is None


def test_while_with_redirection():
    node = only('while read line; do echo $line; done < input.txt')
    assert isinstance(node.kind, WhileLoop)
    assert node.redirections[0].kind == RedirectionKind.INPUT
    assert node.redirections[0].target == 'input.txt'


def test_case_clause():
    kind = only('case $x in a|b) echo hit;; *) echo miss;; esac').kind
    assert isinstance(kind, CaseClause)
    assert kind.word == '$x'
    assert [item.patterns for item in kind.items] == [['a', 'b'], ['*']]
    assert kind.items[0].body[0].args == ['hit']


def test_groups():
    assert isinstance(only('( cd /tmp; ls )').kind, Subshell)
    assert isinstance(only('{ echo a; echo b; }').kind, BraceGroup)


def test_function_definitions():
    node = only('greet() { echo hi; }')
    assert isinstance(node, FunctionDefinition)
    assert node.name == 'greet'
    assert node.body[0].name == 'echo'

    node = only('function build { make; }')
    assert node.name == 'build'


def test_arithmetic_command():
    node = only('(( count++ ))')
    assert isinstance(node.kind, ArithmeticCommand)
    assert node.kind.expression == 'count++'


def test_reserved_words_only_in_command_position():
    node = only('echo if then fi')
    assert node.args == ['if', 'then', 'fi']


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

ERROR_CASES = [
    ('if [ -f x', ParseErrorKind.INCOMPLETE_COMMAND),
    ('echo "unterminated', ParseErrorKind.INVALID_SYNTAX),
    ('echo $(date', ParseErrorKind.INVALID_SYNTAX),
    ('fi', ParseErrorKind.UNEXPECTED_TOKEN),
    ('for x in a b; do echo', ParseErrorKind.INCOMPLETE_COMMAND),
    ('cat <<EOF\nno end', ParseErrorKind.INCOMPLETE_COMMAND),
    ('ls |', ParseErrorKind.INCOMPLETE_COMMAND),
]


@pytest.mark.parametrize('text,kind', ERROR_CASES)
def test_parse_errors(text, kind):
    with pytest.raises(ParseError) as info:
        parse_posix_script(text)
    assert info.value.kind == kind


def test_empty_input():
    assert parse_posix_script('').commands == []
    assert parse_posix_script('\n  # only a comment\n').commands == []
