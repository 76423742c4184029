"""
Heuristic Parser - tolerant, pattern-based fallback parser

OBJECTIVE: Produce a usable AST for text the grammar parser rejects
(unterminated blocks, stray keywords, unbalanced quotes). Never raises.

============================================================================
STRATEGY
============================================================================

    1. Here-document bodies are cut out and replaced by placeholders.
    2. Comments are dropped and the text is split into statements on
       ; & and newlines that sit outside quotes, substitutions and
       ( ) / { } groups. ";;" is kept as its own statement.
    3. A statement cursor rebuilds keyword blocks:

           if / then / elif / else / fi
           for / do / done, while|until / do / done
           case / in / pattern) ... ;; / esac

       A missing closer is closed implicitly at end of input, a stray
       closer is dropped.
    4. Remaining statements are split on && / || and then on |, and each
       stage becomes a subshell, brace group, function, (( )) or simple
       command.

Quote state is tracked per character (see _scan_states) so operators
inside quotes or $( ) are never structural.

    >>> HeuristicParser().parse("if [ -f x").commands
    [Compound(IfClause)]

If anything goes wrong internally the whole input degrades to one
SimpleCommand built from whitespace-split tokens.
"""

import logging
import re
from collections import namedtuple
from typing import List, Optional

from .constants import ASSIGNMENT_PATTERN, BLOCK_OPENERS
from .posix_grammar_parser import build_redirections
from .posix_ast import (
    Assignment, AndOrOperator,
    SimpleCommand, Pipeline, AndOr, CommandList, CompoundCommand, FunctionDefinition, Script,
    BraceGroup, Subshell, ForLoop, WhileLoop, UntilLoop, IfClause, ElifPart,
    CaseClause, CaseItem, ArithmeticCommand,
)

_ASSIGNMENT = re.compile(ASSIGNMENT_PATTERN, re.DOTALL)
_FIRST_WORD = re.compile(r'\s*([^\s;|&<>()]+|[()])')
_REDIRECT_OP = re.compile(r'&>>|&>|>>|>&|>\||<<<|<<-|<<|<>|<&|>|<')
_HEREDOC_START = re.compile(r"(?<!<)<<(-?)[ \t]*(['\"]?)([A-Za-z_][A-Za-z0-9_]*)\2")
_FUNCTION_PARENS = re.compile(r'^(?:function\s+)?([A-Za-z_][A-Za-z0-9_.:-]*)\s*\(\s*\)\s*(.*)$', re.DOTALL)
_FUNCTION_KEYWORD = re.compile(r'^function\s+([A-Za-z_][A-Za-z0-9_.:-]*)\s*(.*)$', re.DOTALL)
_CASE_HEADER = re.compile(r'''^case\s+("[^"]*"|'[^']*'|\S+)(?:\s+in\b\s*(.*))?$''', re.DOTALL)

# Redirection operator found by the word splitter (fd is None or int)
_Redirect = namedtuple('_Redirect', 'op fd')

# Per-character scan states
_CODE = 0        # structural candidate
_QUOTE = 1       # a quote delimiter
_LITERAL = 2     # inside quotes or escaped
_ESCAPE = 3      # a backslash that escapes the next character
_SUBST = 4       # inside $( ), ${ } or backticks
_COMMENT = 5


def _scan_states(text: str) -> List[int]:
    """
    Classify every character of text (see state constants above).

    Unterminated quotes and substitutions simply run to the end of the
    text.
    """
    n = len(text)
    states = [_CODE] * n
    quote = None
    closers = []
    sub_quote = None
    i = 0

    while i < n:
        ch = text[i]
        nxt = text[i + 1] if i + 1 < n else ''

        # Inside a substitution: copied verbatim, only nesting matters
        if closers:
            states[i] = _SUBST
            if sub_quote:
                if ch == '\\' and sub_quote == '"' and nxt:
                    states[i + 1] = _SUBST
                    i += 2
                    continue
                if ch == sub_quote:
                    sub_quote = None
            elif ch == '\\' and nxt:
                states[i + 1] = _SUBST
                i += 2
                continue
            elif closers[-1] == '`':
                if ch == '`':
                    closers.pop()
            elif ch in ('"', "'"):
                sub_quote = ch
            elif ch == '$' and nxt in ('(', '{'):
                closers.append(')' if nxt == '(' else '}')
                states[i + 1] = _SUBST
                i += 2
                continue
            elif ch == '`':
                closers.append('`')
            elif ch == '(' and closers[-1] == ')':
                closers.append(')')
            elif ch == closers[-1]:
                closers.pop()
            i += 1
            continue

        if quote == "'":
            states[i] = _QUOTE if ch == "'" else _LITERAL
            if ch == "'":
                quote = None
            i += 1
            continue

        if quote == '"':
            if ch == '"':
                states[i] = _QUOTE
                quote = None
            elif ch == '\\' and nxt in ('$', '`', '"', '\\'):
                states[i] = _ESCAPE
                states[i + 1] = _LITERAL
                i += 2
                continue
            elif ch == '$' and nxt in ('(', '{'):
                closers.append(')' if nxt == '(' else '}')
                states[i] = states[i + 1] = _SUBST
                i += 2
                continue
            elif ch == '`':
                closers.append('`')
                states[i] = _SUBST
            else:
                states[i] = _LITERAL
            i += 1
            continue

        # Unquoted
        if ch == '\\':
            states[i] = _ESCAPE
            if nxt:
                states[i + 1] = _LITERAL
            i += 2
            continue
        if ch in ('"', "'"):
            quote = ch
            states[i] = _QUOTE
        elif ch == '$' and nxt in ('(', '{'):
            closers.append(')' if nxt == '(' else '}')
            states[i] = states[i + 1] = _SUBST
            i += 2
            continue
        elif ch == '`':
            closers.append('`')
            states[i] = _SUBST
        elif ch == '#' and (i == 0 or text[i - 1] in ' \t\n;&|('):
            while i < n and text[i] != '\n':
                states[i] = _COMMENT
                i += 1
            continue
        i += 1

    return states


def unquote(word: str) -> str:
    """Remove quoting from a raw word ($(...) and friends kept verbatim)"""
    states = _scan_states(word)
    return ''.join(ch for ch, state in zip(word, states) if state not in (_QUOTE, _ESCAPE, _COMMENT))


def _first_word(statement: str) -> str:
    match = _FIRST_WORD.match(statement)
    return match.group(1) if match else ''


def _is_background_amp(text: str, i: int) -> bool:
    """True when the & at i is a lone control operator (not &&, >&, &>, <&)"""
    prev = text[i - 1] if i > 0 else ''
    nxt = text[i + 1] if i + 1 < len(text) else ''
    return prev not in ('&', '>', '<') and nxt not in ('&', '>')


def _find_matching(text: str, start: int, states: Optional[List[int]] = None) -> int:
    """Index of the ) or } closing text[start], or -1"""
    states = states if states is not None else _scan_states(text)
    opener = text[start]
    closer = ')' if opener == '(' else '}'
    depth = 0
    for i in range(start, len(text)):
        if states[i] != _CODE:
            continue
        if text[i] == opener:
            depth += 1
        elif text[i] == closer:
            depth -= 1
            if depth == 0:
                return i
    return -1


class _StatementCursor:
    """Statement queue the block builders consume from"""

    def __init__(self, statements: List[str]):
        self.statements = list(statements)
        self.pos = 0

    def at_end(self) -> bool:
        return self.pos >= len(self.statements)

    def peek(self) -> str:
        return self.statements[self.pos] if not self.at_end() else ''

    def next(self) -> str:
        statement = self.peek()
        self.pos += 1
        return statement

    def push_front(self, statement: str) -> None:
        """Put text back (remainder after a keyword was peeled off)"""
        statement = statement.strip()
        if statement:
            self.statements.insert(self.pos, statement)


class HeuristicParser:
    """
    Tolerant parser used when the grammar parser fails.

    RESPONSIBILITIES:
    - Split text into statements, keeping quotes and groups intact
    - Rebuild keyword blocks, closing unterminated ones implicitly
    - Recognize assignments, redirections, pipelines and && / || chains

    NOT RESPONSIBLE FOR:
    - Reporting syntax errors (there are none from its point of view)
    - Full grammar fidelity (see PosixParser)
    """

    def __init__(self, logger=None):
        self.logger = logger or logging.getLogger('HeuristicParser')
        self._heredocs = {}

    def parse(self, text: str) -> Script:
        """
        Parse text into a Script. Never raises.

        Returns:
            Script (empty for blank input)
        """
        try:
            self._heredocs = {}
            text = self._extract_heredocs(text.replace('\\\n', ''))
            return Script(self._parse_text(text))
        except Exception as e:
            self.logger.warning(f"Heuristic parse failed ({type(e).__name__}: {e}), degrading to a single command")
            return self._degraded(text)

    def _degraded(self, text: str) -> Script:
        tokens = text.split()
        if not tokens:
            return Script([])
        return Script([SimpleCommand(tokens[0], tokens[1:])])

    # ========================================================================
    # PRE-PASSES
    # ========================================================================

    def _extract_heredocs(self, text: str) -> str:
        """Replace <<DELIM with a placeholder and cut the body lines out"""
        if '<<' not in text:
            return text

        lines = text.split('\n')
        output = []
        i = 0
        while i < len(lines):
            pending = []

            def replace(match):
                key = f"@@HEREDOC{len(self._heredocs)}@@"
                self._heredocs[key] = ''
                pending.append((key, match.group(3), bool(match.group(1))))
                return f"<<{match.group(1)}{key}"

            output.append(_HEREDOC_START.sub(replace, lines[i]))
            i += 1

            for key, delimiter, strip_tabs in pending:
                body = []
                while i < len(lines):
                    line = lines[i]
                    i += 1
                    if strip_tabs:
                        line = line.lstrip('\t')
                    if line.rstrip() == delimiter:
                        break
                    body.append(line)
                self._heredocs[key] = '\n'.join(body)

        return '\n'.join(output)

    def _split_statements(self, text: str) -> List[str]:
        """
        Split on top-level ; & and newlines.

        A newline after a trailing | && || continues the statement.
        """
        states = _scan_states(text)
        text = ''.join(' ' if state == _COMMENT else ch for ch, state in zip(text, states))

        statements = []
        start = 0
        depth = 0
        i = 0
        n = len(text)

        def emit(end):
            statement = text[start:end].strip()
            if statement:
                statements.append(statement)

        while i < n:
            ch = text[i]
            if states[i] != _CODE:
                i += 1
                continue

            if ch in '({':
                depth += 1
            elif ch in ')}':
                depth = max(depth - 1, 0)
            elif depth == 0:
                if ch == ';':
                    emit(i)
                    if text[i + 1:i + 2] == ';':
                        statements.append(';;')
                        i += 2
                    else:
                        i += 1
                    start = i
                    continue
                if ch == '\n':
                    pending = text[start:i].rstrip()
                    if not pending.endswith('|') and not pending.endswith('&&'):
                        emit(i)
                        start = i + 1
                elif ch == '&' and _is_background_amp(text, i):
                    emit(i + 1)
                    start = i + 1
            i += 1

        emit(n)
        return statements

    def _split_top_level(self, text: str, operators) -> list:
        """
        Split text on operators outside quotes and groups.

        Returns alternating [segment, operator, segment, ...].
        """
        states = _scan_states(text)
        parts = []
        start = 0
        depth = 0
        i = 0

        while i < len(text):
            ch = text[i]
            if states[i] != _CODE:
                i += 1
                continue
            if ch in '({':
                depth += 1
            elif ch in ')}':
                depth = max(depth - 1, 0)
            elif depth == 0:
                op = self._operator_at(text, i, operators)
                if op:
                    parts.append(text[start:i])
                    parts.append(op)
                    i += len(op)
                    start = i
                    continue
            i += 1

        parts.append(text[start:])
        return parts

    def _operator_at(self, text: str, i: int, operators) -> Optional[str]:
        for op in operators:
            if not text.startswith(op, i):
                continue
            if op == '|':
                prev = text[i - 1] if i > 0 else ''
                nxt = text[i + 1] if i + 1 < len(text) else ''
                if nxt == '|' or prev in ('|', '>'):
                    continue
            return op
        return None

    # ========================================================================
    # BLOCKS
    # ========================================================================

    def _parse_text(self, text: str) -> list:
        """Parse a fragment (script, group body, function body)"""
        cursor = _StatementCursor(self._split_statements(text))
        return self._parse_block(cursor, set())

    def _parse_block(self, cursor: _StatementCursor, terminators) -> list:
        """Parse statements until a terminator keyword (not consumed)"""
        commands = []

        while not cursor.at_end():
            statement = cursor.peek()
            word = _first_word(statement)

            if statement == ';;':
                if ';;' in terminators:
                    break
                cursor.next()
                continue

            if word in terminators:
                break

            if word in ('then', 'do', 'elif', 'else', 'fi', 'done', 'esac', '}'):
                self.logger.debug(f"Dropping stray '{word}'")
                cursor.next()
                cursor.push_front(statement[len(word):])
                continue

            node = self._parse_statement(cursor)
            if node is not None:
                commands.append(node)

        return commands

    def _parse_statement(self, cursor: _StatementCursor):
        statement = cursor.next()
        word = _first_word(statement)

        if word == 'if':
            return self._parse_if(cursor, statement)
        if word == 'for':
            return self._parse_for(cursor, statement)
        if word in ('while', 'until'):
            return self._parse_while_until(cursor, statement, word)
        if word == 'case':
            return self._parse_case(cursor, statement)

        match = _FUNCTION_PARENS.match(statement) or _FUNCTION_KEYWORD.match(statement)
        if match and not match.group(2).strip() and not cursor.at_end():
            # name() on its own line, body on the next
            return self._function_definition(match.group(1), cursor.next())

        # cat file | while read line ... : block as the last pipeline stage
        parts = self._split_top_level(statement, ('&&', '||'))
        if len(parts) == 1:
            pipe_parts = self._split_top_level(statement, ('|',))
            segments = pipe_parts[0::2]
            if len(segments) > 1 and _first_word(segments[-1]) in BLOCK_OPENERS:
                stages = [self._parse_stage(s) for s in segments[:-1] if s.strip()]
                stages = [s for s in stages if s is not None]
                cursor.push_front(segments[-1])
                block = self._parse_statement(cursor)
                if isinstance(block, Pipeline) and not block.negated and not block.background:
                    return Pipeline(stages + block.stages)
                return Pipeline(stages + [block])

        return self._parse_and_or(statement)

    def _expect(self, cursor: _StatementCursor, keyword: str) -> bool:
        """Consume keyword at the start of the next statement if present"""
        if cursor.at_end() or _first_word(cursor.peek()) != keyword:
            self.logger.debug(f"Missing '{keyword}', continuing without it")
            return False
        statement = cursor.next()
        cursor.push_front(statement[len(keyword):])
        return True

    def _close(self, cursor: _StatementCursor, keyword: str):
        """
        Consume the block closer.

        Returns:
            (redirections, trailing operator text) found after the closer
        """
        if cursor.at_end() or _first_word(cursor.peek()) != keyword:
            self.logger.debug(f"Closing unterminated block with implicit '{keyword}'")
            return [], ''
        statement = cursor.next()
        return self._split_trailing(statement[len(keyword):].strip())

    def _split_trailing(self, rest: str):
        """Separate redirections from a following | && || or & operator"""
        states = _scan_states(rest)
        cut = len(rest)
        for i, ch in enumerate(rest):
            if states[i] != _CODE:
                continue
            prev = rest[i - 1] if i > 0 else ''
            if ch == '|' and prev != '>':
                cut = i
                break
            if ch == '&' and prev not in ('<', '>') and rest[i + 1:i + 2] != '>':
                cut = i
                break
        return self._redirections_only(rest[:cut]), rest[cut:].strip()

    def _attach_trailing(self, node, trailing: str):
        """Continue a closed block with the operator text that followed it"""
        if not trailing:
            return node
        if trailing.startswith('&&') or trailing.startswith('||'):
            operator = AndOrOperator.AND if trailing.startswith('&&') else AndOrOperator.OR
            right = self._parse_and_or(trailing[2:])
            return AndOr(operator, node, right) if right is not None else node
        if trailing.startswith('|'):
            rest = self._parse_pipeline(trailing[1:])
            if rest is None:
                return node
            if isinstance(rest, Pipeline) and not rest.negated:
                return Pipeline([node] + rest.stages, background=rest.background)
            return Pipeline([node, rest])
        if trailing.startswith('&'):
            return Pipeline([node], background=True)
        self.logger.debug(f"Ignoring text after block: {trailing!r}")
        return node

    def _parse_if(self, cursor: _StatementCursor, statement: str):
        cursor.push_front(statement[2:])
        condition = self._parse_block(cursor, {'then', 'fi'})
        self._expect(cursor, 'then')
        then_body = self._parse_block(cursor, {'elif', 'else', 'fi'})

        elif_parts = []
        else_body = None
        while _first_word(cursor.peek()) == 'elif':
            cursor.push_front(cursor.next()[4:])
            elif_condition = self._parse_block(cursor, {'then', 'fi'})
            self._expect(cursor, 'then')
            elif_body = self._parse_block(cursor, {'elif', 'else', 'fi'})
            elif_parts.append(ElifPart(elif_condition, elif_body))

        if _first_word(cursor.peek()) == 'else':
            cursor.push_front(cursor.next()[4:])
            else_body = self._parse_block(cursor, {'fi'})

        redirections, trailing = self._close(cursor, 'fi')
        node = CompoundCommand(IfClause(condition, then_body, elif_parts, else_body), redirections)
        return self._attach_trailing(node, trailing)

    def _parse_for(self, cursor: _StatementCursor, statement: str):
        header = statement[3:].strip()

        if header.startswith('(('):
            return self._parse_c_style_for(cursor, header)

        words = [unquote(w) for w in self._split_words(header) if isinstance(w, str)]
        variable = words[0] if words else '_'
        items = words[2:] if len(words) > 1 and words[1] == 'in' else None

        self._expect(cursor, 'do')
        body = self._parse_block(cursor, {'done'})
        redirections, trailing = self._close(cursor, 'done')
        node = CompoundCommand(ForLoop(variable, items, body), redirections)
        return self._attach_trailing(node, trailing)

    def _parse_c_style_for(self, cursor: _StatementCursor, header: str):
        """for ((init; cond; step)) becomes init followed by a while loop"""
        end = header.rfind('))')
        inner = header[2:end] if end > 1 else header[2:]
        parts = (inner.split(';') + ['', '', ''])[:3]
        init, test, step = (p.strip() for p in parts)

        self._expect(cursor, 'do')
        body = self._parse_block(cursor, {'done'})
        redirections, trailing = self._close(cursor, 'done')

        condition = [CompoundCommand(ArithmeticCommand(test or '1'))]
        if step:
            body = body + [CompoundCommand(ArithmeticCommand(step))]
        loop = CompoundCommand(WhileLoop(condition, body), redirections)
        if init:
            return CommandList([CompoundCommand(ArithmeticCommand(init)), self._attach_trailing(loop, trailing)])
        return self._attach_trailing(loop, trailing)

    def _parse_while_until(self, cursor: _StatementCursor, statement: str, keyword: str):
        cursor.push_front(statement[len(keyword):])
        condition = self._parse_block(cursor, {'do', 'done'})
        self._expect(cursor, 'do')
        body = self._parse_block(cursor, {'done'})
        redirections, trailing = self._close(cursor, 'done')
        kind = WhileLoop(condition, body) if keyword == 'while' else UntilLoop(condition, body)
        return self._attach_trailing(CompoundCommand(kind, redirections), trailing)

    def _parse_case(self, cursor: _StatementCursor, statement: str):
        match = _CASE_HEADER.match(statement)
        if match:
            word = unquote(match.group(1))
            if match.group(2) is None:
                self._expect(cursor, 'in')
            else:
                cursor.push_front(match.group(2))
        else:
            word = ''

        items = []
        while not cursor.at_end():
            item_text = cursor.peek()
            if _first_word(item_text) == 'esac':
                break
            cursor.next()
            if item_text == ';;':
                continue

            states = _scan_states(item_text)
            close = next(
                (i for i, ch in enumerate(item_text) if ch == ')' and states[i] == _CODE),
                -1,
            )
            if close < 0:
                self.logger.debug(f"Case item without ')': {item_text!r}")
                pattern_text, body_text = item_text, ''
            else:
                pattern_text, body_text = item_text[:close], item_text[close + 1:]

            pattern_text = pattern_text.strip()
            if pattern_text.startswith('('):
                pattern_text = pattern_text[1:]
            patterns = [
                unquote(p.strip())
                for p in self._split_top_level(pattern_text, ('|',))[0::2]
                if p.strip()
            ]

            cursor.push_front(body_text)
            body = self._parse_block(cursor, {';;', 'esac'})
            if cursor.peek() == ';;':
                cursor.next()
            items.append(CaseItem(patterns, body))

        redirections, trailing = self._close(cursor, 'esac')
        node = CompoundCommand(CaseClause(word, items), redirections)
        return self._attach_trailing(node, trailing)

    def _function_definition(self, name: str, body_text: str) -> FunctionDefinition:
        body_text = body_text.strip()
        if body_text.startswith('{'):
            end = _find_matching(body_text, 0)
            inner = body_text[1:end] if end >= 0 else body_text[1:]
            return FunctionDefinition(name, self._parse_text(inner))
        return FunctionDefinition(name, self._parse_text(body_text) if body_text else [])

    # ========================================================================
    # OPERATORS AND STAGES
    # ========================================================================

    def _parse_and_or(self, text: str):
        """Split && / || (left-associative), handling a trailing &"""
        text = text.strip()
        background = False
        if text.endswith('&') and _is_background_amp(text, len(text) - 1):
            background = True
            text = text[:-1].rstrip()

        parts = self._split_top_level(text, ('&&', '||'))
        node = self._parse_pipeline(parts[0])
        for op, segment in zip(parts[1::2], parts[2::2]):
            right = self._parse_pipeline(segment)
            if right is None:
                continue
            if node is None:
                node = right
                continue
            operator = AndOrOperator.AND if op == '&&' else AndOrOperator.OR
            node = AndOr(operator, node, right)

        if node is None or not background:
            return node
        if isinstance(node, Pipeline):
            node.background = True
            return node
        if isinstance(node, AndOr):
            return CommandList([node], background=True)
        return Pipeline([node], background=True)

    def _parse_pipeline(self, text: str):
        text = text.strip()
        negated = False
        if text == '!' or text.startswith('! '):
            negated = True
            text = text[1:].strip()

        segments = self._split_top_level(text, ('|',))[0::2]
        stages = [self._parse_stage(s) for s in segments if s.strip()]
        stages = [s for s in stages if s is not None]
        if not stages:
            return None
        if len(stages) == 1 and not negated:
            return stages[0]
        return Pipeline(stages, negated=negated)

    def _parse_stage(self, text: str):
        text = text.strip()

        if text.startswith('(('):
            end = text.rfind('))')
            expression = text[2:end] if end > 1 else text[2:]
            rest = text[end + 2:] if end > 1 else ''
            return CompoundCommand(ArithmeticCommand(expression.strip()), self._redirections_only(rest))

        match = _FUNCTION_PARENS.match(text) or _FUNCTION_KEYWORD.match(text)
        if match:
            return self._function_definition(match.group(1), match.group(2))

        if text.startswith('('):
            end = _find_matching(text, 0)
            inner = text[1:end] if end >= 0 else text[1:]
            rest = text[end + 1:] if end >= 0 else ''
            return CompoundCommand(Subshell(self._parse_text(inner)), self._redirections_only(rest))

        if text == '{' or (text.startswith('{') and text[1] in ' \t\n'):
            end = _find_matching(text, 0)
            inner = text[1:end] if end >= 0 else text[1:]
            rest = text[end + 1:] if end >= 0 else ''
            return CompoundCommand(BraceGroup(self._parse_text(inner)), self._redirections_only(rest))

        if _first_word(text) in BLOCK_OPENERS:
            # Block inside a group body written on one line
            commands = self._parse_text(text)
            if len(commands) == 1:
                return commands[0]
            return CommandList(commands)

        return self._simple_command(text)

    # ========================================================================
    # WORDS
    # ========================================================================

    def _split_words(self, text: str) -> list:
        """
        Split into raw words and _Redirect operators.

        Words keep their quotes; leading digits directly before a
        redirection operator become its fd.
        """
        states = _scan_states(text)
        tokens = []
        current = []

        def flush():
            if current:
                tokens.append(''.join(current))
                current.clear()

        i = 0
        while i < len(text):
            ch = text[i]
            if states[i] == _CODE:
                if ch in ' \t\n':
                    flush()
                    i += 1
                    continue
                if ch in '<>' or (ch == '&' and text[i + 1:i + 2] == '>'):
                    match = _REDIRECT_OP.match(text, i)
                    fd = None
                    if current and ''.join(current).isdigit():
                        fd = int(''.join(current))
                        current.clear()
                    else:
                        flush()
                    tokens.append(_Redirect(match.group(0), fd))
                    i = match.end()
                    continue
            current.append(ch)
            i += 1

        flush()
        return tokens

    def _redirections_only(self, text: str) -> list:
        """Redirections from text following a block closer"""
        redirections = []
        tokens = self._split_words(text)
        i = 0
        while i < len(tokens):
            token = tokens[i]
            if isinstance(token, _Redirect):
                target = tokens[i + 1] if i + 1 < len(tokens) and isinstance(tokens[i + 1], str) else ''
                redirections.extend(self._redirection(token, target))
                i += 2 if target else 1
                continue
            self.logger.debug(f"Ignoring word after block: {token!r}")
            i += 1
        return redirections

    def _redirection(self, token: _Redirect, raw_target: str) -> list:
        body = self._heredocs.get(raw_target) if token.op in ('<<', '<<-') else None
        return build_redirections(token.op, token.fd, unquote(raw_target), body)

    def _simple_command(self, text: str) -> Optional[SimpleCommand]:
        """
        name + args, with NAME=value prefixes and redirections anywhere.

        None when nothing is left (a stray quote that unquotes to nothing).
        """
        tokens = self._split_words(text)
        name = ''
        args = []
        assignments = []
        redirections = []

        i = 0
        while i < len(tokens):
            token = tokens[i]
            if isinstance(token, _Redirect):
                target = tokens[i + 1] if i + 1 < len(tokens) and isinstance(tokens[i + 1], str) else ''
                redirections.extend(self._redirection(token, target))
                i += 2 if target else 1
                continue

            if not name:
                match = _ASSIGNMENT.match(token)
                if match:
                    assignments.append(Assignment(match.group(1), unquote(match.group(2))))
                    i += 1
                    continue
                name = unquote(token)
            else:
                args.append(unquote(token))
            i += 1

        if not name and not assignments:
            if redirections:
                return SimpleCommand('', args, assignments, redirections)
            self.logger.debug(f"Dropping empty statement: {text!r}")
            return None
        return SimpleCommand(name, args, assignments, redirections)


def parse_heuristic(text: str, logger=None) -> Script:
    """Parse text with the heuristic parser (never raises)"""
    return HeuristicParser(logger=logger).parse(text)
