"""
POSIX Grammar Parser - full-grammar lexer and recursive-descent parser

OBJECTIVE: Parse POSIX shell scripts into the AST with complete fidelity,
or fail loudly with a ParseError so the front end can fall back.

============================================================================
USAGE
============================================================================

    >>> from posix_converter.posix_grammar_parser import parse_posix_script
    >>> script = parse_posix_script("cat file.txt | grep pattern > out.txt")
    >>> script.commands
    [Pipeline(Cmd(cat file.txt) | Cmd(grep pattern [>out.txt]))]

    >>> parse_posix_script("if [ -f x")
    Traceback (most recent call last):
    ...
    ParseError: INCOMPLETE_COMMAND: missing 'then' at pos 9

============================================================================
ARCHITECTURE
============================================================================

    Input (script text) →
        PosixLexer (tokenization, heredoc bodies, comments) →
            PosixParser (recursive descent) →
                Script AST

============================================================================
GRAMMAR
============================================================================

    script        → linebreak (and_or separator)* EOF
    and_or        → pipeline (('&&' | '||') linebreak pipeline)*
    pipeline      → ['!'] command ('|' linebreak command)*
    command       → compound redirect*
                  | NAME '(' ')' linebreak compound
                  | 'function' NAME ['(' ')'] linebreak compound
                  | simple
    compound      → '{' list '}' | '(' list ')'
                  | if | for | while | until | case | '((' expr '))'
    simple        → (ASSIGNMENT | redirect)* [WORD (WORD | redirect)*]
    redirect      → [fd] ('<' | '>' | '>>' | '>|' | '<>' | '<<' | '<<-'
                          | '<<<' | '>&' | '<&' | '&>' | '&>>') WORD

Reserved words (if, then, fi, do, done, ...) are only recognized when an
unquoted word appears in command position.

============================================================================
TOKEN TYPES
============================================================================

    WORD         - Plain word (quotes removed, substitutions verbatim)
    ARITH        - (( expression )) in command position
    PIPE         - |
    AND_IF       - &&
    OR_IF        - ||
    SEMICOLON    - ;
    DSEMI        - ;; (also ;& and ;;&)
    BACKGROUND   - &
    REDIRECT     - any redirection operator, with optional fd
    LPAREN       - (
    RPAREN       - )
    NEWLINE      - \\n (acts like ;)
    EOF          - End of input

============================================================================
ERRORS
============================================================================

    INVALID_SYNTAX      - unterminated quote / substitution
    UNEXPECTED_TOKEN    - token that cannot start or continue a construct
    INCOMPLETE_COMMAND  - input ends inside an open construct
"""

import logging
import re
from enum import Enum, auto
from dataclasses import dataclass
from typing import List, Optional, Set

from .constants import ASSIGNMENT_PATTERN, BODY_TERMINATORS, IDENTIFIER_PATTERN
from .errors import ParseError, ParseErrorKind
from .posix_ast import (
    Assignment, Redirection, RedirectionKind, AndOrOperator,
    SimpleCommand, Pipeline, AndOr, CommandList, CompoundCommand, FunctionDefinition, Script,
    BraceGroup, Subshell, ForLoop, WhileLoop, UntilLoop, IfClause, ElifPart,
    CaseClause, CaseItem, ArithmeticCommand,
)

_ASSIGNMENT = re.compile(ASSIGNMENT_PATTERN, re.DOTALL)
_IDENTIFIER = re.compile(IDENTIFIER_PATTERN)
_IDENTIFIER_OR_DASHED = re.compile(r'^[A-Za-z_][A-Za-z0-9_.:-]*$')

# Reserved words after which "((" starts an arithmetic command
_COMMAND_POSITION_WORDS = {'do', 'then', 'else', 'elif', 'if', 'while', 'until', '{', '!'}

# ============================================================================
# TOKEN TYPES
# ============================================================================

class TokenType(Enum):
    """Token types for the POSIX lexer"""
    # Literals
    WORD = auto()           # Plain word
    ARITH = auto()          # (( expression ))

    # Operators
    SEMICOLON = auto()      # ;
    DSEMI = auto()          # ;;
    BACKGROUND = auto()     # &
    AND_IF = auto()         # &&
    OR_IF = auto()          # ||
    PIPE = auto()           # |
    REDIRECT = auto()       # < > >> >| <> << <<- <<< >& <& &> &>>

    # Grouping
    LPAREN = auto()         # (
    RPAREN = auto()         # )

    # Special
    NEWLINE = auto()        # \n (acts like ;)
    EOF = auto()            # End of input

@dataclass
class Token:
    """
    Token with type, value and position.

    value   - logical text (quotes removed) for WORD, operator text otherwise
    raw     - source slice, used to detect NAME= assignments
    quoted  - any part of the word was quoted or escaped
    fd      - explicit descriptor number for REDIRECT (2> -> 2)
    body    - here-document body for << / <<- tokens
    """
    type: TokenType
    value: str
    pos: int
    raw: str = ''
    quoted: bool = False
    fd: Optional[int] = None
    body: Optional[str] = None

    def __repr__(self):
        return f"Token({self.type.name}, {self.value!r}, pos={self.pos})"

# Operators by length (longest match first)
_OPERATORS_3 = {'<<<': TokenType.REDIRECT, '<<-': TokenType.REDIRECT, '&>>': TokenType.REDIRECT,
                ';;&': TokenType.DSEMI}
_OPERATORS_2 = {'&&': TokenType.AND_IF, '||': TokenType.OR_IF, ';;': TokenType.DSEMI,
                ';&': TokenType.DSEMI,
                '>>': TokenType.REDIRECT, '>|': TokenType.REDIRECT, '<>': TokenType.REDIRECT,
                '<<': TokenType.REDIRECT, '>&': TokenType.REDIRECT, '<&': TokenType.REDIRECT,
                '&>': TokenType.REDIRECT}
_OPERATORS_1 = {'|': TokenType.PIPE, ';': TokenType.SEMICOLON, '&': TokenType.BACKGROUND,
                '(': TokenType.LPAREN, ')': TokenType.RPAREN,
                '<': TokenType.REDIRECT, '>': TokenType.REDIRECT}

_WORD_BREAK = set(' \t\n|;&<>()')

# ============================================================================
# LEXER - TOKENIZATION
# ============================================================================

class PosixLexer:
    """
    Lexer for POSIX shell scripts.

    Handles:
    - Quotes (single, double) and escapes (\\)
    - $(...), $((...)), ${...} and `...` kept verbatim inside words
    - Comments (# at word start to end of line)
    - Line continuation (\\<newline>)
    - Here-document bodies (read after the line that introduced them)
    - fd-prefixed redirections (2>, 3<, 2>&1)
    """

    def __init__(self, text: str, logger=None):
        self.text = text
        self.pos = 0
        self.length = len(text)
        self.logger = logger or logging.getLogger('PosixLexer')
        self._pending_heredocs = []      # [(token, delimiter, strip_tabs)]
        self._heredoc_operator = None    # operator token waiting for its delimiter

    def tokenize(self) -> List[Token]:
        """Tokenize input into list of tokens"""
        tokens: List[Token] = []

        while self.pos < self.length:
            char = self._current()

            # Skip whitespace
            if char in ' \t\r':
                self.pos += 1
                continue

            # Line continuation
            if char == '\\' and self._peek() == '\n':
                self.pos += 2
                continue

            # Newline (acts like semicolon) - heredoc bodies start after it
            if char == '\n':
                tokens.append(Token(TokenType.NEWLINE, '\n', self.pos))
                self.pos += 1
                if self._pending_heredocs:
                    self._read_heredoc_bodies()
                continue

            # Comment to end of line
            if char == '#':
                while self.pos < self.length and self._current() != '\n':
                    self.pos += 1
                continue

            token = self._try_arithmetic(tokens) or self._try_operator()
            if token is None:
                token = self._read_word()

            self._track_heredoc(token)
            tokens.append(token)

        if self._pending_heredocs:
            token, delimiter, _ = self._pending_heredocs[0]
            raise ParseError(
                ParseErrorKind.INCOMPLETE_COMMAND,
                f"here-document delimited by '{delimiter}' is not terminated",
                token.pos,
            )

        tokens.append(Token(TokenType.EOF, '', self.pos))
        self.logger.debug(f"Tokenized {len(tokens)} tokens")
        return tokens

    def _current(self) -> str:
        """Get current character"""
        if self.pos >= self.length:
            return ''
        return self.text[self.pos]

    def _peek(self, offset: int = 1) -> str:
        """Peek ahead"""
        pos = self.pos + offset
        if pos >= self.length:
            return ''
        return self.text[pos]

    # ------------------------------------------------------------------
    # Here-documents
    # ------------------------------------------------------------------

    def _track_heredoc(self, token: Token) -> None:
        """Pair a << operator with the delimiter word that follows it"""
        if self._heredoc_operator is not None:
            operator = self._heredoc_operator
            self._heredoc_operator = None
            if token.type == TokenType.WORD:
                self._pending_heredocs.append((operator, token.value, operator.value == '<<-'))
            return

        if token.type == TokenType.REDIRECT and token.value in ('<<', '<<-'):
            self._heredoc_operator = token

    def _read_heredoc_bodies(self) -> None:
        """Consume body lines for every heredoc opened on the previous line"""
        for token, delimiter, strip_tabs in self._pending_heredocs:
            lines = []
            while True:
                if self.pos >= self.length:
                    raise ParseError(
                        ParseErrorKind.INCOMPLETE_COMMAND,
                        f"here-document delimited by '{delimiter}' is not terminated",
                        token.pos,
                    )
                end = self.text.find('\n', self.pos)
                if end < 0:
                    end = self.length
                line = self.text[self.pos:end]
                self.pos = min(end + 1, self.length)
                if strip_tabs:
                    line = line.lstrip('\t')
                if line == delimiter:
                    break
                lines.append(line)
            token.body = '\n'.join(lines)
        self._pending_heredocs = []

    # ------------------------------------------------------------------
    # Operators
    # ------------------------------------------------------------------

    def _try_arithmetic(self, tokens: List[Token]) -> Optional[Token]:
        """
        Match (( expression )) in command position.

        Returns None when "((" turns out to be nested subshells, e.g.
        "((a) | b)".
        """
        if not self.text.startswith('((', self.pos):
            return None

        if tokens:
            prev = tokens[-1]
            if prev.type == TokenType.WORD and (prev.quoted or prev.value not in _COMMAND_POSITION_WORDS):
                return None
            if prev.type == TokenType.REDIRECT:
                return None

        start = self.pos
        depth = 0
        i = self.pos + 2
        while i < self.length:
            char = self.text[i]
            if char == '(':
                depth += 1
            elif char == ')':
                if depth == 0:
                    if i + 1 < self.length and self.text[i + 1] == ')':
                        self.pos = i + 2
                        expression = self.text[start + 2:i]
                        return Token(TokenType.ARITH, expression.strip(), start, raw=self.text[start:self.pos])
                    return None
                depth -= 1
            i += 1

        raise ParseError(ParseErrorKind.INCOMPLETE_COMMAND, "unterminated arithmetic command", start)

    def _try_operator(self) -> Optional[Token]:
        """Try to match operator token (with optional fd prefix for redirects)"""
        pos = self.pos
        fd = None
        op_start = pos

        # fd-prefixed redirect: 2> 2>> 3< 2>&1
        if self._current().isdigit():
            j = pos
            while j < self.length and self.text[j].isdigit():
                j += 1
            if j < self.length and self.text[j] in '<>':
                fd = int(self.text[pos:j])
                op_start = j
            else:
                return None

        for table, size in ((_OPERATORS_3, 3), (_OPERATORS_2, 2), (_OPERATORS_1, 1)):
            candidate = self.text[op_start:op_start + size]
            if candidate in table:
                token_type = table[candidate]
                if fd is not None and token_type != TokenType.REDIRECT:
                    continue
                self.pos = op_start + size
                return Token(token_type, candidate, pos, raw=self.text[pos:self.pos], fd=fd)

        return None

    # ------------------------------------------------------------------
    # Words
    # ------------------------------------------------------------------

    def _read_word(self) -> Token:
        """
        Read word (command, argument, filename).

        Handles:
        - Quotes (removed, contents kept literally)
        - Escapes (\\)
        - Substitutions $(...) $((...)) ${...} `...` (kept verbatim)
        - Stops at operators/whitespace
        """
        start = self.pos
        word = []
        quoted = False

        while self.pos < self.length:
            char = self._current()

            # Escape character
            if char == '\\':
                next_char = self._peek()
                if next_char == '\n':
                    self.pos += 2
                    continue
                if next_char == '':
                    word.append('\\')
                    self.pos += 1
                    continue
                word.append(next_char)
                self.pos += 2
                quoted = True
                continue

            # Single quote (literal)
            if char == "'":
                end = self.text.find("'", self.pos + 1)
                if end < 0:
                    raise ParseError(ParseErrorKind.INVALID_SYNTAX, "unterminated single quote", self.pos)
                word.append(self.text[self.pos + 1:end])
                self.pos = end + 1
                quoted = True
                continue

            # Double quote (interpolate)
            if char == '"':
                self.pos += 1
                self._read_double_quoted(word)
                quoted = True
                continue

            if char == '$' and self._peek() in ('(', '{'):
                word.append(self._read_dollar())
                continue

            if char == '`':
                word.append(self._read_backtick())
                continue

            # Stop at whitespace or operators
            if char in _WORD_BREAK:
                break

            word.append(char)
            self.pos += 1

        if self.pos == start:
            raise ParseError(ParseErrorKind.UNEXPECTED_TOKEN, f"unexpected character {self._current()!r}", start)

        return Token(TokenType.WORD, ''.join(word), start, raw=self.text[start:self.pos], quoted=quoted)

    def _read_double_quoted(self, word: List[str]) -> None:
        """Read up to the closing double quote (opening one already consumed)"""
        start = self.pos - 1
        while self.pos < self.length:
            char = self._current()
            if char == '"':
                self.pos += 1
                return
            if char == '\\':
                next_char = self._peek()
                if next_char in ('$', '`', '"', '\\'):
                    word.append(next_char)
                    self.pos += 2
                    continue
                if next_char == '\n':
                    self.pos += 2
                    continue
                word.append('\\')
                self.pos += 1
                continue
            if char == '$' and self._peek() in ('(', '{'):
                word.append(self._read_dollar())
                continue
            if char == '`':
                word.append(self._read_backtick())
                continue
            word.append(char)
            self.pos += 1

        raise ParseError(ParseErrorKind.INVALID_SYNTAX, "unterminated double quote", start)

    def _read_dollar(self) -> str:
        """Read $(...), $((...)) or ${...} verbatim, honoring nested quotes"""
        start = self.pos
        open_char = self._peek()
        close_char = ')' if open_char == '(' else '}'
        self.pos += 2
        depth = 1

        while self.pos < self.length:
            char = self._current()
            if char == '\\':
                self.pos += 2
                continue
            if char == "'":
                end = self.text.find("'", self.pos + 1)
                if end < 0:
                    break
                self.pos = end + 1
                continue
            if char == '"':
                self.pos += 1
                while self.pos < self.length and self._current() != '"':
                    self.pos += 2 if self._current() == '\\' else 1
                self.pos += 1
                continue
            if char == open_char:
                depth += 1
            elif char == close_char:
                depth -= 1
                if depth == 0:
                    self.pos += 1
                    return self.text[start:self.pos]
            self.pos += 1

        raise ParseError(ParseErrorKind.INVALID_SYNTAX, "unterminated substitution", start)

    def _read_backtick(self) -> str:
        """Read `...` verbatim"""
        start = self.pos
        self.pos += 1
        while self.pos < self.length:
            char = self._current()
            if char == '\\':
                self.pos += 2
                continue
            if char == '`':
                self.pos += 1
                return self.text[start:self.pos]
            self.pos += 1

        raise ParseError(ParseErrorKind.INVALID_SYNTAX, "unterminated backquote", start)

# ============================================================================
# PARSER - AST CONSTRUCTION
# ============================================================================

class PosixParser:
    """
    Recursive-descent parser for POSIX shell - constructs Script AST.

    PRECEDENCE (lowest to highest):
    1. ; & newline (separators)
    2. && and || (and/or lists, left-associative)
    3. | (pipeline, optionally negated with !)
    4. Command with redirects

    Every failure raises ParseError; there is no partial result.
    """

    def __init__(self, tokens: List[Token], logger=None):
        self.tokens = tokens
        self.pos = 0
        self.logger = logger or logging.getLogger('PosixParser')

    def parse(self) -> Script:
        """Parse tokens into Script"""
        commands = self._parse_list(terminators=set(), top_level=True)
        token = self._current()
        if token.type != TokenType.EOF:
            raise self._unexpected(token)
        self.logger.debug(f"Parsed {len(commands)} top-level commands")
        return Script(commands)

    def _current(self) -> Token:
        """Get current token"""
        if self.pos >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[self.pos]

    def _peek(self, offset: int = 1) -> Token:
        """Peek ahead"""
        pos = self.pos + offset
        if pos >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[pos]

    def _consume(self, expected_type: Optional[TokenType] = None, what: str = '') -> Token:
        """Consume and return current token"""
        token = self._current()
        if expected_type and token.type != expected_type:
            if token.type == TokenType.EOF:
                raise ParseError(
                    ParseErrorKind.INCOMPLETE_COMMAND,
                    f"missing {what or expected_type.name}",
                    token.pos,
                )
            raise self._unexpected(token, f"expected {what or expected_type.name}")
        self.pos += 1
        return token

    def _unexpected(self, token: Token, detail: str = '') -> ParseError:
        if token.type == TokenType.EOF:
            return ParseError(ParseErrorKind.INCOMPLETE_COMMAND, detail or "unexpected end of input", token.pos)
        shown = token.value if token.type != TokenType.NEWLINE else 'newline'
        message = f"unexpected {shown!r}"
        if detail:
            message = f"{message} ({detail})"
        return ParseError(ParseErrorKind.UNEXPECTED_TOKEN, message, token.pos)

    def _is_reserved(self, token: Token, *words: str) -> bool:
        return token.type == TokenType.WORD and not token.quoted and token.value in words

    def _expect_reserved(self, word: str) -> Token:
        token = self._current()
        if self._is_reserved(token, word):
            self.pos += 1
            return token
        if token.type == TokenType.EOF:
            raise ParseError(ParseErrorKind.INCOMPLETE_COMMAND, f"missing '{word}'", token.pos)
        raise self._unexpected(token, f"expected '{word}'")

    def _skip_newlines(self) -> None:
        while self._current().type == TokenType.NEWLINE:
            self.pos += 1

    def _skip_separators(self) -> None:
        while self._current().type in (TokenType.NEWLINE, TokenType.SEMICOLON):
            self.pos += 1

    # ------------------------------------------------------------------
    # Lists
    # ------------------------------------------------------------------

    def _at_list_end(self, terminators: Set[str]) -> bool:
        token = self._current()
        if token.type in (TokenType.EOF, TokenType.RPAREN, TokenType.DSEMI):
            return True
        return token.type == TokenType.WORD and not token.quoted and token.value in terminators

    def _parse_list(self, terminators: Set[str], top_level: bool = False) -> list:
        """
        Parse commands separated by ; & or newlines.

        list → and_or ((';' | '&' | NEWLINE) and_or)*

        Stops (without consuming) at EOF, ')', ';;' or an unquoted
        reserved word from terminators.
        """
        commands = []
        self._skip_separators()

        while not self._at_list_end(terminators):
            node = self._parse_and_or()

            token = self._current()
            if token.type == TokenType.BACKGROUND:
                self.pos += 1
                node = self._make_background(node)
            elif token.type in (TokenType.SEMICOLON, TokenType.NEWLINE):
                self.pos += 1
            elif not self._at_list_end(terminators):
                raise self._unexpected(token)

            commands.append(node)
            self._skip_separators()

        if top_level and self._current().type != TokenType.EOF:
            raise self._unexpected(self._current())

        return commands

    def _make_background(self, node):
        """Mark a command as running in the background (cmd &)"""
        if isinstance(node, Pipeline):
            node.background = True
            return node
        if isinstance(node, AndOr):
            return CommandList([node], background=True)
        return Pipeline([node], background=True)

    def _parse_and_or(self):
        """
        Parse && and || chains (left-associative).

        and_or → pipeline (('&&' | '||') linebreak pipeline)*
        """
        left = self._parse_pipeline()

        while self._current().type in (TokenType.AND_IF, TokenType.OR_IF):
            op = self._consume()
            self._skip_newlines()
            right = self._parse_pipeline()
            operator = AndOrOperator.AND if op.type == TokenType.AND_IF else AndOrOperator.OR
            left = AndOr(operator, left, right)

        return left

    def _parse_pipeline(self):
        """
        Parse pipe chain.

        pipeline → ['!'] command ('|' linebreak command)*
        """
        negated = False
        if self._is_reserved(self._current(), '!'):
            self.pos += 1
            negated = True

        stages = [self._parse_command()]
        while self._current().type == TokenType.PIPE:
            self._consume()
            self._skip_newlines()
            stages.append(self._parse_command())

        if len(stages) == 1 and not negated:
            return stages[0]
        return Pipeline(stages, negated=negated)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def _parse_command(self):
        """
        Parse one command: compound, function definition or simple.
        """
        token = self._current()

        if token.type == TokenType.EOF:
            raise ParseError(ParseErrorKind.INCOMPLETE_COMMAND, "expected a command", token.pos)

        if token.type == TokenType.LPAREN:
            return self._finish_compound(self._parse_subshell())

        if token.type == TokenType.ARITH:
            self.pos += 1
            return self._finish_compound(ArithmeticCommand(token.value))

        if token.type == TokenType.WORD and not token.quoted:
            keyword = token.value
            if keyword == '{':
                return self._finish_compound(self._parse_brace_group())
            if keyword == 'if':
                return self._finish_compound(self._parse_if())
            if keyword == 'for':
                return self._finish_compound(self._parse_for())
            if keyword in ('while', 'until'):
                return self._finish_compound(self._parse_while_until())
            if keyword == 'case':
                return self._finish_compound(self._parse_case())
            if keyword == 'function':
                return self._parse_function_keyword()
            if keyword in BODY_TERMINATORS:
                raise self._unexpected(token)

            # name() compound
            if (self._peek().type == TokenType.LPAREN
                    and self._peek(2).type == TokenType.RPAREN
                    and _IDENTIFIER_OR_DASHED.match(keyword)):
                return self._parse_function_parens()

        if token.type in (TokenType.WORD, TokenType.REDIRECT):
            return self._parse_simple_command()

        raise self._unexpected(token)

    def _finish_compound(self, kind) -> CompoundCommand:
        """Attach trailing redirections to a compound command"""
        redirections = []
        while self._current().type == TokenType.REDIRECT:
            redirections.extend(self._parse_redirect())
        return CompoundCommand(kind, redirections)

    def _parse_simple_command(self) -> SimpleCommand:
        """
        Parse simple command with assignments and redirects.

        Redirects can appear anywhere: > out cmd arg 2> err arg2
        """
        assignments = []
        redirections = []
        name = ''
        args = []

        # Prefix: assignments and redirections before the command name
        while True:
            token = self._current()
            if token.type == TokenType.REDIRECT:
                redirections.extend(self._parse_redirect())
                continue
            if token.type == TokenType.WORD:
                match = _ASSIGNMENT.match(token.raw)
                if match:
                    self.pos += 1
                    value = token.value[len(match.group(1)) + 1:]
                    assignments.append(Assignment(match.group(1), value))
                    continue
            break

        if self._current().type == TokenType.WORD:
            name = self._consume(TokenType.WORD).value

            # Collect args and redirects (can be intermixed)
            while True:
                token = self._current()
                if token.type == TokenType.REDIRECT:
                    redirections.extend(self._parse_redirect())
                elif token.type == TokenType.WORD:
                    args.append(self._consume().value)
                else:
                    break

        if not name and not assignments and not redirections:
            raise self._unexpected(self._current(), "expected a command")

        return SimpleCommand(name, args, assignments, redirections)

    def _parse_redirect(self) -> List[Redirection]:
        """
        Parse one redirection operator and its target.

        Returns a list because &>> expands to two redirections
        (append + 2>&1).
        """
        op = self._consume(TokenType.REDIRECT)
        target_token = self._current()
        if target_token.type != TokenType.WORD:
            if target_token.type == TokenType.EOF:
                raise ParseError(ParseErrorKind.INCOMPLETE_COMMAND, f"missing target for {op.value}", op.pos)
            raise self._unexpected(target_token, f"expected target for {op.value}")
        self.pos += 1
        return build_redirections(op.value, op.fd, target_token.value, op.body)

    # ------------------------------------------------------------------
    # Compound commands
    # ------------------------------------------------------------------

    def _parse_subshell(self) -> Subshell:
        """( list )"""
        self._consume(TokenType.LPAREN)
        body = self._parse_list(terminators=set())
        self._consume(TokenType.RPAREN, "')'")
        return Subshell(body)

    def _parse_brace_group(self) -> BraceGroup:
        """{ list ; }"""
        self._expect_reserved('{')
        body = self._parse_list(terminators={'}'})
        self._expect_reserved('}')
        return BraceGroup(body)

    def _parse_if(self) -> IfClause:
        """if list then list [elif list then list]* [else list] fi"""
        self._expect_reserved('if')
        condition = self._parse_list(terminators={'then'})
        self._expect_reserved('then')
        then_body = self._parse_list(terminators={'elif', 'else', 'fi'})

        elif_parts = []
        while self._is_reserved(self._current(), 'elif'):
            self.pos += 1
            elif_condition = self._parse_list(terminators={'then'})
            self._expect_reserved('then')
            elif_body = self._parse_list(terminators={'elif', 'else', 'fi'})
            elif_parts.append(ElifPart(elif_condition, elif_body))

        else_body = None
        if self._is_reserved(self._current(), 'else'):
            self.pos += 1
            else_body = self._parse_list(terminators={'fi'})

        self._expect_reserved('fi')
        return IfClause(condition, then_body, elif_parts, else_body)

    def _parse_for(self) -> ForLoop:
        """for NAME [in word*] (;|newline) do list done"""
        self._expect_reserved('for')
        name_token = self._consume(TokenType.WORD, 'loop variable')
        if not _IDENTIFIER.match(name_token.value):
            raise self._unexpected(name_token, "invalid loop variable")

        self._skip_newlines()
        words = None
        if self._is_reserved(self._current(), 'in'):
            self.pos += 1
            words = []
            while self._current().type == TokenType.WORD:
                words.append(self._consume().value)

        if self._current().type in (TokenType.SEMICOLON, TokenType.NEWLINE):
            self._skip_separators()

        self._expect_reserved('do')
        body = self._parse_list(terminators={'done'})
        self._expect_reserved('done')
        return ForLoop(name_token.value, words, body)

    def _parse_while_until(self):
        """(while|until) list do list done"""
        keyword = self._consume().value
        condition = self._parse_list(terminators={'do'})
        self._expect_reserved('do')
        body = self._parse_list(terminators={'done'})
        self._expect_reserved('done')
        if keyword == 'while':
            return WhileLoop(condition, body)
        return UntilLoop(condition, body)

    def _parse_case(self) -> CaseClause:
        """
        case WORD in [(]pattern[|pattern]*) list ;; ... esac
        """
        self._expect_reserved('case')
        word = self._consume(TokenType.WORD, 'case word').value
        self._skip_newlines()
        self._expect_reserved('in')
        self._skip_newlines()

        items = []
        while not self._is_reserved(self._current(), 'esac'):
            if self._current().type == TokenType.EOF:
                raise ParseError(ParseErrorKind.INCOMPLETE_COMMAND, "missing 'esac'", self._current().pos)

            if self._current().type == TokenType.LPAREN:
                self.pos += 1

            patterns = [self._consume(TokenType.WORD, 'case pattern').value]
            while self._current().type == TokenType.PIPE:
                self.pos += 1
                patterns.append(self._consume(TokenType.WORD, 'case pattern').value)
            self._consume(TokenType.RPAREN, "')' after case pattern")

            body = self._parse_list(terminators={'esac'})
            items.append(CaseItem(patterns, body))

            if self._current().type == TokenType.DSEMI:
                self.pos += 1
            elif not self._is_reserved(self._current(), 'esac'):
                raise self._unexpected(self._current(), "expected ';;' or 'esac'")
            self._skip_newlines()

        self._expect_reserved('esac')
        return CaseClause(word, items)

    def _parse_function_parens(self) -> FunctionDefinition:
        """NAME ( ) linebreak compound"""
        name = self._consume(TokenType.WORD).value
        self._consume(TokenType.LPAREN)
        self._consume(TokenType.RPAREN)
        return FunctionDefinition(name, self._parse_function_body())

    def _parse_function_keyword(self) -> FunctionDefinition:
        """function NAME [( )] linebreak compound"""
        self._expect_reserved('function')
        name = self._consume(TokenType.WORD, 'function name').value
        if self._current().type == TokenType.LPAREN:
            self.pos += 1
            self._consume(TokenType.RPAREN, "')'")
        return FunctionDefinition(name, self._parse_function_body())

    def _parse_function_body(self) -> list:
        self._skip_newlines()
        body_command = self._parse_command()
        if not isinstance(body_command, CompoundCommand):
            raise ParseError(
                ParseErrorKind.UNEXPECTED_TOKEN,
                "function body must be a compound command",
                self._current().pos,
            )
        kind = body_command.kind
        if isinstance(kind, BraceGroup) and not body_command.redirections:
            return kind.body
        return [body_command]

# ============================================================================
# REDIRECTION MAPPING (shared with the heuristic parser)
# ============================================================================

def build_redirections(op: str, fd: Optional[int], target: str, body: Optional[str] = None) -> List[Redirection]:
    """
    Map operator text + optional fd + target word to Redirection records.

    Returns a list because &>> expands to two redirections
    (append + 2>&1).
    """
    if op in ('<<', '<<-'):
        return [Redirection(RedirectionKind.HERE_DOC, body if body is not None else '', fd, strip_tabs=op == '<<-')]
    if op == '<<<':
        return [Redirection(RedirectionKind.HERE_STRING, target, fd)]
    if op == '<':
        return [Redirection(RedirectionKind.INPUT, target, fd if fd not in (None, 0) else None)]
    if op == '<>':
        return [Redirection(RedirectionKind.INPUT_OUTPUT, target, fd)]
    if op == '<&':
        return [Redirection(RedirectionKind.INPUT_DUP, target, fd)]
    if op == '>|':
        return [Redirection(RedirectionKind.CLOBBER, target, fd)]
    if op == '&>':
        return [Redirection(RedirectionKind.OUTPUT_AND_ERROR, target)]
    if op == '&>>':
        return [
            Redirection(RedirectionKind.APPEND, target),
            Redirection(RedirectionKind.OUTPUT_DUP, '1', 2),
        ]
    if op == '>&':
        if target.isdigit() or target == '-':
            return [Redirection(RedirectionKind.OUTPUT_DUP, target, fd if fd is not None else 1)]
        # >&file is the same as &>file
        return [Redirection(RedirectionKind.OUTPUT_AND_ERROR, target)]
    if op == '>>':
        if fd == 2:
            return [Redirection(RedirectionKind.ERROR_APPEND, target, 2)]
        return [Redirection(RedirectionKind.APPEND, target, fd if fd not in (None, 1) else None)]
    # '>'
    if fd == 2:
        return [Redirection(RedirectionKind.ERROR_OUTPUT, target, 2)]
    return [Redirection(RedirectionKind.OUTPUT, target, fd if fd not in (None, 1) else None)]

# ============================================================================
# PUBLIC API
# ============================================================================

def parse_posix_script(text: str, logger=None) -> Script:
    """
    Parse POSIX shell text into a Script.

    Args:
        text: Script source

    Returns:
        Script AST

    Raises:
        ParseError: on any syntax problem (never returns a partial tree)
    """
    lexer = PosixLexer(text, logger=logger)
    tokens = lexer.tokenize()
    parser = PosixParser(tokens, logger=logger)
    return parser.parse()
