"""
Structural Translators - control flow, operators, redirections, arithmetic

Walks the AST and emits Nushell text. Simple commands are dispatched to the
registry; everything around them is handled here.

============================================================================
TRANSLATION TABLE
============================================================================

    a | b               a | b                       (2>&1 on a: a o+e>| b)
    ! a                 not (a)
    a &                 job spawn { a }
    [ p ] && b          if <p> { b }
    a && b              a; if $env.LAST_EXIT_CODE == 0 { b }
    [ p ] || b          if not <p> { b }
    a || b              try { a } catch { b }
    ( body )            do { body }
    { body; }           do --env { body }
    if c; then ...      if <c> { ... } else if <c> { ... } else { ... }
    while c; do ...     while <c> { ... }
    until c; do ...     while not <c> { ... }
    for v in w...       for v in [w ...] { ... }
    cat f | while read l ...   open --raw f | lines | each { |l| ... }
    case w in p) ...    match w { "p" => { ... }, _ => { ... } }
    f() { body }        def f [...args] { body }     ($1 -> $args.0, "$@" -> ...$args)
    $(cmd) / $((e))     (cmd) / (e), also inside words: $"x-(cmd)"
    (( expr ))          arithmetic with $ sigils and Nushell operators
    X=1 / x=1           $env.X = 1 / mut x = 1
    X=1 cmd             with-env { X: 1 } { cmd }

A condition <c> that is a predicate (test, [, true, false, grep, (( )))
renders as the boolean expression itself, grep as (matches | is-not-empty)
and ! grep as (matches | is-empty). Any other command list renders as
(try { cmds; true } catch { false }).

Variables first assigned inside an if/loop/case block are declared ahead
of the statement (mut x: any = null) so they stay visible after it; defs
and closures start a fresh scope.

============================================================================
ANNOTATIONS
============================================================================

Converters may end their output with ' # note'. The note is lifted out
of the command text and re-attached at the end of the first line of the
enclosing statement, so it never comments out later pipeline stages.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Set

from .config import ConverterConfig, DEFAULT_CONFIG
from .constants import ARITHMETIC_OPERATORS, PREDICATE_COMMANDS
from .converters.base import CommandConverter
from .errors import ConversionError, ConversionErrorKind
from .posix_ast import (
    AndOr, AndOrOperator, ArithmeticCommand, BraceGroup, CaseClause, CommandList,
    CompoundCommand, ForLoop, FunctionDefinition, IfClause, Pipeline, Redirection,
    RedirectionKind, SimpleCommand, Subshell, UntilLoop, WhileLoop, format_shell,
)
from .quoting import (
    NuExpression, ensure_quoted, interpolation_body, interpolation_part, is_identifier,
    nu_string, nu_text, nu_variable, quote_value, quote_word, split_annotation,
    variable_reference,
)
from .registry import ConversionRegistry, ConverterTier
from .script_parser import ScriptParser

_BRACE_RANGE = re.compile(r'^\{(-?\d+)\.\.(-?\d+)\}$')
_GLOB = re.compile(r'[*?\[]')
_POSITIONAL = re.compile(r'\$(?:\{(\d+|[#@*])\}|(\d|[#@*]))')
_EXPANSION_START = re.compile(r'\$\(|`|\$(?:\{(?:\d+|[#@*])\}|\d|[#@*])')
_ASSIGNMENT_WORD = re.compile(r'^([A-Za-z_][A-Za-z0-9_]*)=(.*)$', re.DOTALL)
_ARITH_TOKEN = re.compile(
    r'\s+|\d+|\$\{?[A-Za-z_][A-Za-z0-9_]*\}?|[A-Za-z_][A-Za-z0-9_]*'
    r'|\*\*|&&|\|\||==|!=|<=|>=|<<|>>|\+\+|--|.'
)
_ARITH_INCREMENT = re.compile(r'^\s*(?:([A-Za-z_]\w*)\s*(\+\+|--)|(\+\+|--)\s*([A-Za-z_]\w*))\s*$')
_ARITH_ASSIGNMENT = re.compile(r'^\s*([A-Za-z_]\w*)\s*([-+*/%]?)=(?!=)\s*(.+?)\s*$')
_ARITH_UPDATE_OPERATORS = {'+': '+', '-': '-', '*': '*', '/': '//', '%': 'mod'}

_STDOUT_FILE_KINDS = (RedirectionKind.OUTPUT, RedirectionKind.CLOBBER, RedirectionKind.APPEND)
_DISCARD_KINDS = _STDOUT_FILE_KINDS + (
    RedirectionKind.ERROR_OUTPUT, RedirectionKind.ERROR_APPEND, RedirectionKind.OUTPUT_AND_ERROR,
)

# Arguments are command text for these, so expansions stay as written
_VERBATIM_ARGUMENT_COMMANDS = {'alias'}


@dataclass
class _Scope:
    """
    Script variables visible in one Nushell scope.

    The script body, each def and each closure get their own scope (a
    closure cannot see outer mut variables). Blocks of if/loops/case share
    the enclosing scope; depth counts how many of them are open.
    """
    function: bool = False
    names: Set[str] = field(default_factory=set)
    hoisted: List[str] = field(default_factory=list)
    depth: int = 0


class StructuralTranslator:
    """
    AST -> Nushell text for one conversion.

    RESPONSIBILITIES:
    - Translate every node kind (see module docstring)
    - Dispatch simple commands through the registry
    - Recover from ConversionError per statement (annotated source line)
    - Hoist converter annotations to statement ends

    NOT responsible for:
    - Parsing (ScriptParser)
    - Final layout (formatter)

    Holds per-conversion state (the stack of variable scopes), so create
    one per conversion; the registry it reads is shared.
    """

    def __init__(self, registry: ConversionRegistry, config: Optional[ConverterConfig] = None,
                 parser: Optional[ScriptParser] = None, logger=None):
        self.registry = registry
        self.config = config or DEFAULT_CONFIG
        self.logger = logger or logging.getLogger('StructuralTranslator')
        self.parser = parser or ScriptParser(self.config, logger=self.logger)

        self._scopes: List[_Scope] = [_Scope()]
        self._notes: List[str] = []

    # ========================================================================
    # STATEMENTS
    # ========================================================================

    def translate_body(self, commands) -> List[str]:
        """
        Translate a command sequence, one output statement per command.

        At the top of a scope, variables first assigned inside a nested
        block are declared just before the statement holding that block.
        """
        scope = self._scopes[-1]
        top = scope.depth == 0
        statements = []
        for command in commands:
            text = self.translate_statement(command)
            if top and scope.hoisted:
                statements.extend(f"mut {name}: any = null" for name in scope.hoisted)
                scope.hoisted = []
            if text:
                statements.append(text)
        return statements

    def _nested(self, node) -> str:
        """Translate node as the content of a block sharing the enclosing scope"""
        scope = self._scopes[-1]
        scope.depth += 1
        try:
            return self._translate(node)
        finally:
            scope.depth -= 1

    def _nested_body(self, commands) -> List[str]:
        scope = self._scopes[-1]
        scope.depth += 1
        try:
            return self.translate_body(commands)
        finally:
            scope.depth -= 1

    def _isolated_body(self, commands, function: bool = False) -> List[str]:
        """Body of a def or closure: a fresh scope"""
        self._scopes.append(_Scope(function=function or self._scopes[-1].function))
        try:
            return self.translate_body(commands)
        finally:
            self._scopes.pop()

    def translate_statement(self, node) -> str:
        """
        Translate one statement.

        A ConversionError (or an unexpected fault) anywhere inside the
        statement replaces it with '# reason: source', unless strict_mode
        is set.
        """
        saved = self._notes
        self._notes = []
        try:
            text = self._translate(node)
        except RecursionError:
            if self.config.strict_mode:
                raise ConversionError(ConversionErrorKind.UNSUPPORTED_FEATURE,
                                      'nesting too deep to convert')
            self.logger.warning(f"Nesting too deep to convert {type(node).__name__}")
            text = '# nesting too deep to convert'
        except ConversionError as e:
            if self.config.strict_mode:
                raise
            self.logger.warning(f"Cannot convert {type(node).__name__}: {e}")
            text = f"# {e.message}: {format_shell(node)}"
        except Exception as e:
            if self.config.strict_mode:
                raise
            self.logger.error(f"Unexpected error converting {type(node).__name__}: {e}", exc_info=True)
            text = f"# conversion failed: {format_shell(node)}"
        finally:
            notes = self._notes
            self._notes = saved

        return self._attach_notes(text, notes)

    @staticmethod
    def _attach_notes(text: str, notes: List[str]) -> str:
        if not notes:
            return text
        lines = text.split('\n')
        code, existing = split_annotation(lines[0])
        merged = '; '.join(dict.fromkeys(([existing] if existing else []) + notes))
        lines[0] = f"{code} # {merged}" if code else f"# {merged}"
        return '\n'.join(lines)

    def _translate(self, node) -> str:
        if isinstance(node, SimpleCommand):
            return self._simple(node)
        if isinstance(node, Pipeline):
            return self._pipeline(node)
        if isinstance(node, AndOr):
            return self._and_or(node)
        if isinstance(node, CommandList):
            return self._command_list(node)
        if isinstance(node, CompoundCommand):
            return self._compound(node)
        if isinstance(node, FunctionDefinition):
            return self._function(node)
        raise ConversionError(ConversionErrorKind.UNSUPPORTED_FEATURE,
                              f"unknown node type {type(node).__name__}")

    def _block(self, statements: List[str], inline_ok: bool = False) -> str:
        """
        Wrap statements in braces.

        Compact mode (and inline_ok for a single one-line statement) keeps
        the block on one line unless a statement carries an annotation.
        """
        if not statements:
            return '{ }'
        lines = [line for s in statements for line in s.split('\n')]
        annotated = any(split_annotation(line)[1] for line in lines)

        if not annotated:
            if not self.config.pretty_print:
                return '{ ' + '; '.join(statements) + ' }'
            if inline_ok and len(lines) == 1:
                return '{ ' + lines[0] + ' }'
        return '{\n' + '\n'.join(statements) + '\n}'

    # ========================================================================
    # SIMPLE COMMANDS
    # ========================================================================

    def _simple(self, cmd: SimpleCommand) -> str:
        if not cmd.name:
            statements = [self._assignment(a.name, a.value) for a in cmd.assignments]
            for redirection in cmd.redirections:
                if redirection.kind in _STDOUT_FILE_KINDS and redirection.fd is None:
                    mode = '--append' if redirection.kind == RedirectionKind.APPEND else '--force'
                    statements.append(f'"" | save {mode} {quote_word(redirection.target)}')
            return '; '.join(statements)

        text = self._run_converter(cmd.name, self._arguments(cmd.name, cmd.args))
        text = self._with_redirections(text, cmd.redirections)

        if cmd.assignments:
            env = ', '.join(f"{a.name}: {self._value(a.value)}" for a in cmd.assignments)
            text = f"with-env {{ {env} }} {{ {text} }}"
        return text

    def _run_converter(self, name: str, args: List[str]) -> str:
        converter = self.registry.lookup(name)
        self.logger.debug(f"Dispatching '{name}' to {getattr(converter, '__name__', repr(converter))}")
        return self._hoist(converter(list(args)))

    def _hoist(self, text: str) -> str:
        """Strip a trailing converter annotation into the pending notes"""
        code, note = split_annotation(text)
        if note:
            self._notes.append(note)
        return code

    def _assignment(self, name: str, raw_value: str) -> str:
        return self._assign(name, self._value(raw_value))

    def _assign(self, name: str, value: str) -> str:
        if name.isupper():
            return f"$env.{name} = {value}"
        scope = self._scopes[-1]
        if name in scope.names:
            return f"${name} = {value}"
        scope.names.add(name)
        if scope.depth:
            # declared by translate_body ahead of the enclosing statement
            scope.hoisted.append(name)
            return f"${name} = {value}"
        return f"mut {name} = {value}"

    def _value(self, word: str) -> str:
        """
        Expression-position rendering of a source word.

        $((expr)) -> (arithmetic), $(cmd) / `cmd` -> (converted cmd),
        positional parameters -> $args, anything else through quote_value().
        """
        expansion = self._expansion(word, spread=False)
        if expansion is not None:
            return expansion
        return quote_value(word)

    # ========================================================================
    # EXPANSIONS
    # ========================================================================

    def _arguments(self, name: str, args: List[str]) -> List[str]:
        """Render expansions in command arguments before dispatch"""
        if name in _VERBATIM_ARGUMENT_COMMANDS or self.registry.lookup_tier(name) == ConverterTier.EXTERNAL:
            return list(args)
        return [self._argument(arg) for arg in args]

    def _argument(self, word: str) -> str:
        match = _ASSIGNMENT_WORD.match(word)
        if match:
            # export NAME=$(cmd): only the value is an expression
            expansion = self._expansion(match.group(2), spread=False)
            return word if expansion is None else NuExpression(f"{match.group(1)}={expansion}")
        expansion = self._expansion(word)
        return word if expansion is None else expansion

    def _expansion(self, word: str, spread: bool = True) -> Optional[NuExpression]:
        """
        Nushell expression for a word carrying expansions the quoting
        engine leaves alone, None when it has none.

            $((expr))          (arithmetic)
            $(cmd) / `cmd`     (converted cmd)
            $1 $@ $# $0        $args.0 ...$args ($args | length) $env.CURRENT_FILE
            text$(cmd)text     $"text(converted cmd)text"

        spread=False renders $@ as one string instead of ...$args.
        """
        if isinstance(word, NuExpression):
            return word
        if _POSITIONAL.fullmatch(word):
            expression = self._positional(word)
            if expression is not None and not spread and expression.text is not None:
                return NuExpression(expression.text)
            return expression
        if word.startswith('$((') and self._group_end(word, 1) == len(word) - 1:
            return NuExpression(f"({self._arithmetic_expression(word[3:-2])})")
        inner = self._whole_substitution(word)
        if inner is not None:
            return NuExpression(f"({self._substitution(inner)})")
        if _EXPANSION_START.search(word):
            return self._interpolated(word)
        return None

    def _positional(self, token: str) -> Optional[NuExpression]:
        """
        $0 / $N / $@ / $* / $#. Inside a def they read its ...args rest
        parameter; elsewhere only $0 has a counterpart.
        """
        match = _POSITIONAL.fullmatch(token)
        key = match.group(1) or match.group(2)
        if key == '0':
            return NuExpression('$env.CURRENT_FILE')
        if not self._scopes[-1].function:
            self._notes.append(f"positional parameter {token} is only mapped inside a function")
            return None
        if key in ('@', '*'):
            return NuExpression('...$args', text='($args | str join " ")')
        if key == '#':
            return NuExpression('($args | length)')
        return NuExpression(f"$args.{int(key) - 1}")

    def _interpolated(self, word: str) -> Optional[NuExpression]:
        """Text mixed with substitutions or positional parameters -> $"..." """
        parts = []
        start = i = 0
        while i < len(word):
            expression, end = self._expansion_at(word, i)
            if expression is None:
                i += 1
                continue
            parts.append(interpolation_body(word[start:i]))
            parts.append(interpolation_part(expression))
            start = i = end
        if not parts:
            return None
        parts.append(interpolation_body(word[start:]))
        return NuExpression('$"' + ''.join(parts) + '"')

    def _expansion_at(self, word: str, i: int):
        """(expression, end index) for an expansion starting at word[i], else (None, i)"""
        if word.startswith('$((', i):
            end = self._group_end(word, i + 1)
            if end > 0:
                return NuExpression(f"({self._arithmetic_expression(word[i + 3:end - 1])})"), end + 1
        elif word.startswith('$(', i):
            end = self._group_end(word, i + 1)
            if end > 0:
                return NuExpression(f"({self._substitution(word[i + 2:end])})"), end + 1
        elif word[i] == '`':
            end = word.find('`', i + 1)
            if end > 0:
                return NuExpression(f"({self._substitution(word[i + 1:end])})"), end + 1
        elif word[i] == '$':
            match = _POSITIONAL.match(word, i)
            if match:
                expression = self._positional(match.group(0))
                if expression is not None:
                    return expression, match.end()
        return None, i

    @staticmethod
    def _group_end(text: str, start: int) -> int:
        """Index of the ')' closing the '(' at text[start], -1 when unbalanced"""
        depth = 0
        for index in range(start, len(text)):
            if text[index] == '(':
                depth += 1
            elif text[index] == ')':
                depth -= 1
                if depth == 0:
                    return index
        return -1

    def _whole_substitution(self, word: str) -> Optional[str]:
        """Inner text when the whole word is one $(...) or `...`, else None"""
        if len(word) > 2 and word.startswith('`') and word.endswith('`') and '`' not in word[1:-1]:
            return word[1:-1]
        if not word.startswith('$(') or word.startswith('$(('):
            return None
        end = self._group_end(word, 1)
        return word[2:end] if end == len(word) - 1 else None

    def _substitution(self, text: str) -> str:
        """Convert the command text of a substitution into one expression"""
        script = self.parser.parse(text)
        parts = [self._translate(command) for command in script.commands]
        parts = [p for p in parts if p]
        if not parts:
            return 'null'
        return '; '.join(parts)

    # ========================================================================
    # REDIRECTIONS
    # ========================================================================

    @staticmethod
    def _merges_stderr(redirections: List[Redirection]) -> bool:
        return any(r.kind == RedirectionKind.OUTPUT_DUP and r.fd == 2 and r.target == '1'
                   for r in redirections)

    @staticmethod
    def _has_stdout_file(redirections: List[Redirection]) -> bool:
        return any(r.kind in _STDOUT_FILE_KINDS and r.fd is None for r in redirections)

    def _with_redirections(self, text: str, redirections: List[Redirection]) -> str:
        """
        Apply redirections to translated command text.

            > f / >| f   out> f        (print ... > f becomes ... | save --force f)
            >> f         out>> f
            2> f         err> f
            &> f         out+err> f
            > f 2>&1     out+err> f
            > /dev/null  | ignore
            >&2          print -e
            < f          open --raw f | cmd
            <<EOF / <<<  "text" | cmd
        """
        if not redirections:
            return text

        source = None
        outputs = []
        merge_stderr = self._merges_stderr(redirections)

        for r in redirections:
            kind = r.kind
            if kind == RedirectionKind.INPUT and r.fd is None:
                source = f"open --raw {quote_word(r.target)}"
            elif kind == RedirectionKind.HERE_DOC:
                body = r.target
                if r.strip_tabs:
                    body = '\n'.join(line.lstrip('\t') for line in body.split('\n'))
                source = nu_text(body + '\n')
            elif kind == RedirectionKind.HERE_STRING:
                source = self._value(r.target)
            elif kind in _STDOUT_FILE_KINDS and r.fd is None:
                append = kind == RedirectionKind.APPEND
                if merge_stderr:
                    outputs.append(('out+err>>' if append else 'out+err>', r.target))
                else:
                    outputs.append(('out>>' if append else 'out>', r.target))
            elif kind == RedirectionKind.ERROR_OUTPUT:
                outputs.append(('err>', r.target))
            elif kind == RedirectionKind.ERROR_APPEND:
                outputs.append(('err>>', r.target))
            elif kind == RedirectionKind.OUTPUT_AND_ERROR:
                outputs.append(('out+err>', r.target))
            elif kind == RedirectionKind.OUTPUT_DUP and r.fd == 2 and r.target == '1':
                continue
            elif kind == RedirectionKind.OUTPUT_DUP and r.fd == 1 and r.target == '2':
                if text.startswith('print '):
                    text = 'print -e ' + text[len('print '):]
                else:
                    self._notes.append('output was redirected to stderr')
            else:
                self._notes.append(f"unsupported redirection {r!r}")

        for operator, target in outputs:
            text = self._redirect_output(text, operator, target)

        if source is not None:
            # bare `cat < f` is just the input
            text = source if text == '$in' else f"{source} | {text}"
        return text

    @staticmethod
    def _redirect_output(text: str, operator: str, target: str) -> str:
        if target == '/dev/null':
            if operator.startswith('out+err'):
                return f"{text} out+err>| ignore"
            if operator.startswith('out'):
                return f"{text} | ignore"
            return f"{text} {operator} /dev/null"

        if operator in ('out>', 'out>>'):
            for prefix in ('print -n ', 'print '):
                if text.startswith(prefix):
                    mode = '--append' if operator == 'out>>' else '--force'
                    value = text[len(prefix):]
                    # a bare word heading a pipeline would run as a command
                    if not value.startswith(('$', '(', '[')):
                        value = ensure_quoted(value)
                    return f"{value} | save {mode} {quote_word(target)}"
        return f"{text} {operator} {quote_word(target)}"

    # ========================================================================
    # PIPELINES AND LISTS
    # ========================================================================

    def _pipeline(self, node: Pipeline) -> str:
        """Stages in source order; 2>&1 on a stage turns its pipe into o+e>|"""
        if node.negated and not node.background:
            predicate = self._predicate(node)
            if predicate:
                return predicate

        result = ''
        separator = ''
        count = len(node.stages)
        for index, stage in enumerate(node.stages):
            last = index == count - 1
            text = self._stage(stage, first=index == 0, last=last)
            if text:
                result = f"{result}{separator}{text}" if result else text
            merged = (not last and isinstance(stage, (SimpleCommand, CompoundCommand))
                      and self._merges_stderr(stage.redirections)
                      and not self._has_stdout_file(stage.redirections))
            separator = ' o+e>| ' if merged else ' | '

        if node.negated:
            result = f"not ({result})"
        if node.background:
            result = f"job spawn {{ {result} }}"
        return result

    def _stage(self, stage, first: bool, last: bool) -> str:
        if not first and isinstance(stage, CompoundCommand) and isinstance(stage.kind, WhileLoop):
            variable = self._read_variable(stage.kind.condition)
            if variable:
                return self._read_loop('lines', variable, stage.kind.body)

        text = self._translate(stage)
        if not last and isinstance(stage, SimpleCommand):
            # print writes to the terminal; a value feeding a pipe uses echo
            for prefix in ('print -n ', 'print '):
                if text.startswith(prefix):
                    return 'echo ' + text[len(prefix):]
        return text

    def _command_list(self, node: CommandList) -> str:
        text = '; '.join(t for t in (self._translate(c) for c in node.commands) if t)
        if node.background:
            return f"job spawn {{ {text} }}"
        return text

    # ========================================================================
    # AND / OR
    # ========================================================================

    def _and_or(self, node: AndOr) -> str:
        predicate = self._predicate(node.left)
        if predicate:
            left = None
        elif node.operator == AndOrOperator.AND:
            left = self._translate(node.left)
        else:
            left = self._nested(node.left)
        right = self._block([self._nested(node.right)], inline_ok=True)

        if node.operator == AndOrOperator.AND:
            if predicate:
                return f"if {predicate} {right}"
            return f"{left}; if $env.LAST_EXIT_CODE == 0 {right}"

        if predicate:
            return f"if {self._negate(predicate)} {right}"
        return f"try {self._block([left], inline_ok=True)} catch {right}"

    def _predicate(self, node) -> Optional[str]:
        """Boolean expression for node, or None when it is not a predicate"""
        if isinstance(node, Pipeline):
            if len(node.stages) != 1 or node.background:
                return None
            inner = self._predicate(node.stages[0])
            if inner and node.negated:
                return self._negate(inner)
            return inner

        if isinstance(node, SimpleCommand):
            if not node.name or node.assignments or not self._only_discards(node.redirections):
                return None
            if node.name == 'grep':
                return self._grep_predicate(node)
            if node.name in PREDICATE_COMMANDS:
                text = self._run_converter(node.name, self._arguments(node.name, node.args))
                return None if text.startswith('^') else text
            return None

        if isinstance(node, CompoundCommand):
            if isinstance(node.kind, ArithmeticCommand) and not node.redirections:
                return f"({self._arithmetic_expression(node.kind.expression)})"
            return None

        if isinstance(node, AndOr):
            left = self._predicate(node.left)
            right = self._predicate(node.right) if left else None
            if left and right:
                keyword = 'and' if node.operator == AndOrOperator.AND else 'or'
                return f"({left} {keyword} {right})"
        return None

    def _grep_predicate(self, node: SimpleCommand) -> Optional[str]:
        """
        grep as a condition: (matching lines | is-not-empty).

        A plain `where` never fails, so grep is always forced into its
        quiet form here. Matches it would have printed are noted as lost
        unless stdout was discarded anyway.
        """
        quiet = self._is_quiet_grep(node.args)
        args = self._arguments(node.name, node.args)
        text = self._run_converter('grep', args if quiet else ['-q'] + args)
        if text.startswith('^'):
            return None
        if text.endswith(' | length'):
            text = text[:-len(' | length')] + ' | is-not-empty'
        if not quiet and not self._discards_stdout(node.redirections):
            self._notes.append('matching lines are not printed')
        return f"({text})"

    @staticmethod
    def _is_quiet_grep(args: List[str]) -> bool:
        for arg in args:
            if arg in ('--quiet', '--silent'):
                return True
            if arg.startswith('-') and not arg.startswith('--') and 'q' in arg[1:]:
                return True
        return False

    @staticmethod
    def _only_discards(redirections: List[Redirection]) -> bool:
        """True when every redirection just drops output (> /dev/null, 2>&1 ...)"""
        for r in redirections:
            if r.kind == RedirectionKind.OUTPUT_DUP and r.target in ('1', '2'):
                continue
            if r.kind in _DISCARD_KINDS and r.target == '/dev/null':
                continue
            return False
        return True

    @staticmethod
    def _discards_stdout(redirections: List[Redirection]) -> bool:
        for r in redirections:
            if r.target != '/dev/null':
                continue
            if r.kind == RedirectionKind.OUTPUT_AND_ERROR:
                return True
            if r.kind in _STDOUT_FILE_KINDS and r.fd in (None, 1):
                return True
        return False

    def _negate(self, expression: str) -> str:
        if expression.startswith('(') and self._group_end(expression, 0) == len(expression) - 1:
            if expression.endswith(' | is-not-empty)'):
                return expression[:-len(' | is-not-empty)')] + ' | is-empty)'
            return f"not {expression}"
        return f"not ({expression})"

    def _condition(self, commands) -> str:
        if not commands:
            return 'true'
        if len(commands) == 1:
            predicate = self._predicate(commands[0])
            if predicate:
                return predicate
        body = '; '.join(t for t in (self._nested(c) for c in commands) if t)
        return f"(try {{ {body}; true }} catch {{ false }})"

    # ========================================================================
    # COMPOUND COMMANDS
    # ========================================================================

    def _compound(self, node: CompoundCommand) -> str:
        kind = node.kind
        redirections = list(node.redirections)

        if isinstance(kind, WhileLoop):
            variable = self._read_variable(kind.condition)
            inputs = [r for r in redirections if r.kind == RedirectionKind.INPUT and r.fd is None]
            if variable and inputs:
                redirections = [r for r in redirections if r not in inputs]
                text = self._read_loop(f"open --raw {quote_word(inputs[-1].target)} | lines", variable, kind.body)
                return self._with_redirections(text, redirections)

        if isinstance(kind, BraceGroup):
            text = f"do --env {self._block(self._isolated_body(kind.body))}"
        elif isinstance(kind, Subshell):
            text = f"do {self._block(self._isolated_body(kind.body))}"
        elif isinstance(kind, ForLoop):
            text = self._for(kind)
        elif isinstance(kind, WhileLoop):
            text = f"while {self._condition(kind.condition)} {self._block(self._nested_body(kind.body))}"
        elif isinstance(kind, UntilLoop):
            condition = self._negate(self._condition(kind.condition))
            text = f"while {condition} {self._block(self._nested_body(kind.body))}"
        elif isinstance(kind, IfClause):
            text = self._if(kind)
        elif isinstance(kind, CaseClause):
            text = self._case(kind)
        elif isinstance(kind, ArithmeticCommand):
            text = self._arithmetic_statement(kind.expression)
        else:
            raise ConversionError(ConversionErrorKind.UNSUPPORTED_FEATURE,
                                  f"unknown compound command {type(kind).__name__}")

        return self._with_redirections(text, redirections)

    @staticmethod
    def _read_variable(condition) -> Optional[str]:
        """NAME when the loop condition is exactly `read [-r] NAME`"""
        if len(condition) != 1 or not isinstance(condition[0], SimpleCommand):
            return None
        cmd = condition[0]
        if cmd.name != 'read' or cmd.redirections or cmd.assignments:
            return None
        operands = [a for a in cmd.args if not a.startswith('-')]
        flags = [a for a in cmd.args if a.startswith('-')]
        if len(operands) != 1 or any(f not in ('-r',) for f in flags) or not is_identifier(operands[0]):
            return None
        return operands[0]

    def _read_loop(self, source: str, variable: str, body) -> str:
        """while read VAR over a stream -> each over lines"""
        parameter, prologue = self._loop_binding(variable)
        statements = prologue + self._isolated_body(body)
        return f"{source} | each {self._closure(parameter, statements)}"

    def _closure(self, parameter: str, statements: List[str]) -> str:
        block = self._block(statements)
        if block == '{ }':
            return f"{{ |{parameter}| }}"
        if block.startswith('{\n'):
            return f"{{ |{parameter}|\n{block[2:]}"
        return f"{{ |{parameter}| {block[2:]}"

    @staticmethod
    def _loop_binding(variable: str):
        """
        Loop variable name and body prologue.

        All-caps names are referenced as $env.NAME in the body, so the
        loop binds a lowercase name and copies it into the environment.
        """
        if variable.isupper():
            parameter = variable.lower()
            return parameter, [f"$env.{variable} = ${parameter}"]
        return variable, []

    def _for(self, kind: ForLoop) -> str:
        parameter, prologue = self._loop_binding(kind.variable)
        items = self._for_items(kind.words)
        body = prologue + self._nested_body(kind.body)
        return f"for {parameter} in {items} {self._block(body)}"

    def _for_items(self, words) -> str:
        """
        Loop word list.

            (no in clause)  -> $in
            {1..5}          -> 1..5
            *.txt           -> (glob "*.txt")
            $(cmd)          -> (cmd | lines)
            $LIST           -> ($env.LIST | split row " ")
            "$@"            -> $args (inside a def)
            a b c           -> [a b c]
        """
        if words is None:
            return '$args' if self._scopes[-1].function else '$in'
        if len(words) == 1:
            word = words[0]
            match = _BRACE_RANGE.match(word)
            if match:
                return f"{match.group(1)}..{match.group(2)}"
            item = self._for_item(word)
            if item.startswith('...'):
                return item[3:]
            name = variable_reference(word)
            if name is not None:
                return f"({nu_variable(name)} | split row \" \")"
        return f"[{' '.join(self._for_item(w) for w in words)}]"

    def _for_item(self, word: str) -> str:
        match = _BRACE_RANGE.match(word)
        if match:
            return f"...({match.group(1)}..{match.group(2)})"
        inner = self._whole_substitution(word)
        if inner is not None:
            return f"...({self._substitution(inner)} | lines)"
        expansion = self._expansion(word)
        if expansion is not None:
            return expansion
        if _GLOB.search(word) and '$' not in word:
            return f"...(glob {nu_string(word)})"
        return quote_word(word)

    def _if(self, kind: IfClause) -> str:
        text = f"if {self._condition(kind.condition)} {self._block(self._nested_body(kind.then_body))}"
        for part in kind.elif_parts:
            text += f" else if {self._condition(part.condition)} {self._block(self._nested_body(part.body))}"
        if kind.else_body is not None:
            text += f" else {self._block(self._nested_body(kind.else_body))}"
        return text

    def _case(self, kind: CaseClause) -> str:
        """
        case -> match.

        Literal patterns become string arms joined with |, * the default
        arm _, other globs a guard over the bound subject ($s if $s =~ 're').
        """
        subject = self._value(kind.word)
        arms = []
        for item in kind.items:
            pattern = self._case_pattern(item.patterns)
            body = self._block(self._nested_body(item.body), inline_ok=True)
            arms.append(f"{pattern} => {body}")

        if not arms:
            return f"match {subject} {{ }}"
        multiline = self.config.pretty_print or any('\n' in arm for arm in arms)
        if multiline:
            return f"match {subject} {{\n" + '\n'.join(arms) + "\n}"
        return f"match {subject} {{ " + ', '.join(arms) + " }"

    def _case_pattern(self, patterns: List[str]) -> str:
        if '*' in patterns:
            return '_'

        guarded = any(_GLOB.search(p) or variable_reference(p) for p in patterns)
        if not guarded:
            return ' | '.join(nu_string(p) for p in patterns)

        conditions = []
        for p in patterns:
            if variable_reference(p):
                conditions.append(f"$s == {quote_value(p)}")
            elif _GLOB.search(p):
                regex = CommandConverter.glob_to_regex(p)
                literal = f"'{regex}'" if "'" not in regex else nu_string(regex)
                conditions.append(f"$s =~ {literal}")
            else:
                conditions.append(f"$s == {nu_string(p)}")
        return f"$s if {' or '.join(conditions)}"

    def _function(self, node: FunctionDefinition) -> str:
        return f"def {node.name} [...args] {self._block(self._isolated_body(node.body, function=True))}"

    # ========================================================================
    # ARITHMETIC
    # ========================================================================

    def _arithmetic_statement(self, expression: str) -> str:
        """
        (( ... )) as a statement.

            i++ / ++i      $i += 1
            x = 5          mut x = 5
            x += 2         $x += 2
            x /= 2         $x = $x // (2)
            other          the expression itself
        """
        match = _ARITH_INCREMENT.match(expression)
        if match:
            name = match.group(1) or match.group(4)
            operator = (match.group(2) or match.group(3))[0]
            return self._update(name, operator, '1')

        match = _ARITH_ASSIGNMENT.match(expression)
        if match:
            name, operator, rhs = match.groups()
            value = self._arithmetic_expression(rhs)
            if not operator:
                return self._assign(name, value)
            return self._update(name, operator, value)

        return f"({self._arithmetic_expression(expression)})"

    def _update(self, name: str, operator: str, value: str) -> str:
        target = nu_variable(name)
        nu_operator = _ARITH_UPDATE_OPERATORS[operator]
        if name.isupper():
            # environment values are strings
            return f"{target} = (({target} | into int) {nu_operator} {value})"
        if operator in '+-*':
            return f"{target} {operator}= {value}"
        return f"{target} = {target} {nu_operator} ({value})"

    def _arithmetic_expression(self, expression: str) -> str:
        """
        Shell arithmetic -> Nushell expression.

        Names get their sigil ($x, or ($env.X | into int) since the
        environment holds strings), operators go through
        ARITHMETIC_OPERATORS, grouping is kept as written.
        """
        operators = {source: target.strip() for source, target in ARITHMETIC_OPERATORS}
        leading = set(operators.values()) | {'('}
        out: List[str] = []
        sign = ''

        for match in _ARITH_TOKEN.finditer(expression):
            token = match.group(0)
            if token.isspace():
                continue
            if token in ('++', '--'):
                raise ConversionError(ConversionErrorKind.UNSUPPORTED_FEATURE,
                                      f"increment inside expression: {expression}")
            if token in ('?', ':'):
                raise ConversionError(ConversionErrorKind.UNSUPPORTED_FEATURE,
                                      f"conditional arithmetic: {expression}")

            if token[0].isdigit():
                out.append(sign + token)
            elif token.startswith('$'):
                out.append(sign + self._arithmetic_operand(token.strip('${}')))
            elif token[0].isalpha() or token[0] == '_':
                out.append(sign + self._arithmetic_operand(token))
            elif token == '-' and (not out or out[-1] in leading):
                sign = '-'
                continue
            elif token in operators:
                out.append(operators[token])
            elif token in ('(', ')'):
                out.append(sign + token)
            else:
                raise ConversionError(ConversionErrorKind.INVALID_ARGUMENT_SHAPE,
                                      f"unexpected '{token}' in arithmetic: {expression}")
            sign = ''

        return ' '.join(out).replace('( ', '(').replace(' )', ')')

    @staticmethod
    def _arithmetic_operand(name: str) -> str:
        if name.isupper():
            return f"($env.{name} | into int)"
        return nu_variable(name)
