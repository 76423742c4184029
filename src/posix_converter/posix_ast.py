"""
POSIX Shell AST - node types shared by both parsers and the converter

============================================================================
NODE TYPES
============================================================================

    Script               - Ordered top-level commands (execution order)
    SimpleCommand        - name + args + assignments + redirections
    Pipeline             - Stages connected by | (optionally ! or &)
    AndOr                - Two commands joined by && or ||
    CommandList          - Commands joined by ; or & kept as one unit
    CompoundCommand      - Control structure + its redirections
    FunctionDefinition   - name() { body }

    Compound kinds:
        BraceGroup       - { body; }
        Subshell         - ( body )
        ForLoop          - for var in words; do body; done
        WhileLoop        - while cond; do body; done
        UntilLoop        - until cond; do body; done
        IfClause         - if/elif/else/fi
        CaseClause       - case word in pattern) body;; esac
        ArithmeticCommand- (( expression ))

============================================================================
SERIALIZABLE FORM
============================================================================

Every node has to_dict() returning nested dicts keyed by node kind:

    >>> SimpleCommand('echo', ['hi']).to_dict()
    {'type': 'simple', 'name': 'echo', 'args': ['hi'], 'assignments': [], 'redirections': []}

node_from_dict() rebuilds the tree. The dict form is a debugging surface,
not a stable file format.

Nodes are built once by a parser and never mutated afterwards; the
converter only reads them.
"""

import json
from enum import Enum
from dataclasses import dataclass, field
from typing import List, Optional, Union


# ============================================================================
# LEAF RECORDS
# ============================================================================

class RedirectionKind(Enum):
    """Redirection operators (value is the canonical source spelling)"""
    INPUT = '<'
    OUTPUT = '>'
    APPEND = '>>'
    ERROR_OUTPUT = '2>'
    ERROR_APPEND = '2>>'
    INPUT_OUTPUT = '<>'
    HERE_DOC = '<<'
    HERE_STRING = '<<<'
    OUTPUT_DUP = '>&'
    INPUT_DUP = '<&'
    CLOBBER = '>|'
    OUTPUT_AND_ERROR = '&>'


class AndOrOperator(Enum):
    AND = '&&'
    OR = '||'


@dataclass
class Assignment:
    """NAME=value (source order is kept, duplicates are not merged)"""
    name: str
    value: str

    def to_dict(self) -> dict:
        return {'name': self.name, 'value': self.value}

    def __repr__(self):
        return f"{self.name}={self.value}"


@dataclass
class Redirection:
    """
    Redirection operation.

    Examples:
        > file        - OUTPUT, fd None
        2> err.log    - ERROR_OUTPUT, fd 2
        2>&1          - OUTPUT_DUP, fd 2, target '1'
        3< in.txt     - INPUT, fd 3
        <<EOF         - HERE_DOC, target is the document body
    """
    kind: RedirectionKind
    target: str
    fd: Optional[int] = None
    strip_tabs: bool = False   # <<- heredoc

    def to_dict(self) -> dict:
        data = {'kind': self.kind.name.lower(), 'target': self.target, 'fd': self.fd}
        if self.strip_tabs:
            data['strip_tabs'] = True
        return data

    def __repr__(self):
        fd = str(self.fd) if self.fd is not None and self.kind not in (
            RedirectionKind.ERROR_OUTPUT, RedirectionKind.ERROR_APPEND) else ''
        return f"{fd}{self.kind.value}{self.target}"


# ============================================================================
# COMMANDS
# ============================================================================

class ASTNode:
    """Base class for AST nodes"""

    def to_dict(self) -> dict:
        raise NotImplementedError


@dataclass
class SimpleCommand(ASTNode):
    """
    Single command with arguments, assignments and redirects.

    name is empty only for a pure assignment statement (FOO=bar).

    Example: LANG=C grep -r "pattern" file.txt > output.txt
    """
    name: str
    args: List[str] = field(default_factory=list)
    assignments: List[Assignment] = field(default_factory=list)
    redirections: List[Redirection] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'type': 'simple',
            'name': self.name,
            'args': list(self.args),
            'assignments': [a.to_dict() for a in self.assignments],
            'redirections': [r.to_dict() for r in self.redirections],
        }

    def __repr__(self):
        parts = [repr(a) for a in self.assignments]
        if self.name:
            parts.append(self.name)
        parts.extend(self.args)
        redir_str = f" {self.redirections}" if self.redirections else ''
        return f"Cmd({' '.join(parts)}{redir_str})"


@dataclass
class Pipeline(ASTNode):
    """
    Commands connected by pipes, in data-flow order.

    Example: ! cat file | grep pattern | sort &
    """
    stages: List['Command']
    background: bool = False
    negated: bool = False

    def to_dict(self) -> dict:
        return {
            'type': 'pipeline',
            'stages': [s.to_dict() for s in self.stages],
            'background': self.background,
            'negated': self.negated,
        }

    def __repr__(self):
        prefix = '! ' if self.negated else ''
        suffix = ' &' if self.background else ''
        return f"Pipeline({prefix}{' | '.join(str(c) for c in self.stages)}{suffix})"


@dataclass
class AndOr(ASTNode):
    """
    Two commands joined by && or || (left-associative chains).

    Example: mkdir dir && cd dir || echo failed
        -> AndOr(OR, AndOr(AND, mkdir, cd), echo)
    """
    operator: AndOrOperator
    left: 'Command'
    right: 'Command'

    def to_dict(self) -> dict:
        return {
            'type': 'and_or',
            'operator': self.operator.name.lower(),
            'left': self.left.to_dict(),
            'right': self.right.to_dict(),
        }

    def __repr__(self):
        return f"{self.operator.name.title()}({self.left} {self.operator.value} {self.right})"


@dataclass
class CommandList(ASTNode):
    """
    Commands kept together as one unit.

    Used for a backgrounded and-or list (cmd1 && cmd2 &).
    """
    commands: List['Command']
    background: bool = False

    def to_dict(self) -> dict:
        return {
            'type': 'list',
            'commands': [c.to_dict() for c in self.commands],
            'background': self.background,
        }


# ============================================================================
# COMPOUND KINDS
# ============================================================================

@dataclass
class BraceGroup:
    body: List['Command']

    def to_dict(self) -> dict:
        return {'kind': 'brace_group', 'body': _dump_body(self.body)}


@dataclass
class Subshell:
    body: List['Command']

    def to_dict(self) -> dict:
        return {'kind': 'subshell', 'body': _dump_body(self.body)}


@dataclass
class ForLoop:
    """
    for variable [in words]; do body; done

    words is None when the "in" clause is absent (iterate positional args).
    """
    variable: str
    words: Optional[List[str]]
    body: List['Command']

    def to_dict(self) -> dict:
        return {
            'kind': 'for',
            'variable': self.variable,
            'words': list(self.words) if self.words is not None else None,
            'body': _dump_body(self.body),
        }


@dataclass
class WhileLoop:
    condition: List['Command']
    body: List['Command']

    def to_dict(self) -> dict:
        return {'kind': 'while', 'condition': _dump_body(self.condition), 'body': _dump_body(self.body)}


@dataclass
class UntilLoop:
    condition: List['Command']
    body: List['Command']

    def to_dict(self) -> dict:
        return {'kind': 'until', 'condition': _dump_body(self.condition), 'body': _dump_body(self.body)}


@dataclass
class ElifPart:
    condition: List['Command']
    body: List['Command']

    def to_dict(self) -> dict:
        return {'condition': _dump_body(self.condition), 'body': _dump_body(self.body)}


@dataclass
class IfClause:
    """if/elif/else chain; else_body None means no else branch"""
    condition: List['Command']
    then_body: List['Command']
    elif_parts: List[ElifPart] = field(default_factory=list)
    else_body: Optional[List['Command']] = None

    def to_dict(self) -> dict:
        return {
            'kind': 'if',
            'condition': _dump_body(self.condition),
            'then_body': _dump_body(self.then_body),
            'elif_parts': [p.to_dict() for p in self.elif_parts],
            'else_body': _dump_body(self.else_body) if self.else_body is not None else None,
        }


@dataclass
class CaseItem:
    """One arm: pattern1|pattern2) body ;;"""
    patterns: List[str]
    body: List['Command']

    def to_dict(self) -> dict:
        return {'patterns': list(self.patterns), 'body': _dump_body(self.body)}


@dataclass
class CaseClause:
    word: str
    items: List[CaseItem]

    def to_dict(self) -> dict:
        return {'kind': 'case', 'word': self.word, 'items': [i.to_dict() for i in self.items]}


@dataclass
class ArithmeticCommand:
    """(( expression )) - expression kept as written"""
    expression: str

    def to_dict(self) -> dict:
        return {'kind': 'arithmetic', 'expression': self.expression}


CompoundKind = Union[
    BraceGroup, Subshell, ForLoop, WhileLoop, UntilLoop, IfClause, CaseClause, ArithmeticCommand
]


@dataclass
class CompoundCommand(ASTNode):
    """
    Control structure plus the redirections applied to it as a whole.

    Example: while read line; do echo $line; done < input.txt
    """
    kind: CompoundKind
    redirections: List[Redirection] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = {'type': 'compound'}
        data.update(self.kind.to_dict())
        data['redirections'] = [r.to_dict() for r in self.redirections]
        return data

    def __repr__(self):
        return f"Compound({type(self.kind).__name__})"


@dataclass
class FunctionDefinition(ASTNode):
    """name() { body; }"""
    name: str
    body: List['Command']

    def to_dict(self) -> dict:
        return {'type': 'function', 'name': self.name, 'body': _dump_body(self.body)}

    def __repr__(self):
        return f"Function({self.name})"


Command = Union[SimpleCommand, Pipeline, AndOr, CommandList, CompoundCommand, FunctionDefinition]


@dataclass
class Script(ASTNode):
    """
    Parsed script: top-level commands in execution order.

    An empty command list is a valid (empty) script.
    """
    commands: List[Command] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {'type': 'script', 'commands': _dump_body(self.commands)}

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: dict) -> 'Script':
        if data.get('type') != 'script':
            raise ValueError(f"Not a script record: {data.get('type')!r}")
        return cls([node_from_dict(c) for c in data.get('commands', [])])

    def is_empty(self) -> bool:
        return not self.commands


def _dump_body(commands: List[Command]) -> List[dict]:
    return [c.to_dict() for c in commands]


# ============================================================================
# DICT -> NODE
# ============================================================================

def _load_body(items) -> List[Command]:
    return [node_from_dict(item) for item in items or []]


def _load_redirections(items) -> List[Redirection]:
    return [
        Redirection(
            RedirectionKind[r['kind'].upper()],
            r['target'],
            r.get('fd'),
            r.get('strip_tabs', False),
        )
        for r in items or []
    ]


def _load_compound_kind(data: dict) -> CompoundKind:
    kind = data['kind']
    if kind == 'brace_group':
        return BraceGroup(_load_body(data['body']))
    if kind == 'subshell':
        return Subshell(_load_body(data['body']))
    if kind == 'for':
        words = data.get('words')
        return ForLoop(data['variable'], list(words) if words is not None else None, _load_body(data['body']))
    if kind == 'while':
        return WhileLoop(_load_body(data['condition']), _load_body(data['body']))
    if kind == 'until':
        return UntilLoop(_load_body(data['condition']), _load_body(data['body']))
    if kind == 'if':
        else_body = data.get('else_body')
        return IfClause(
            _load_body(data['condition']),
            _load_body(data['then_body']),
            [ElifPart(_load_body(p['condition']), _load_body(p['body'])) for p in data.get('elif_parts', [])],
            _load_body(else_body) if else_body is not None else None,
        )
    if kind == 'case':
        return CaseClause(
            data['word'],
            [CaseItem(list(i['patterns']), _load_body(i['body'])) for i in data.get('items', [])],
        )
    if kind == 'arithmetic':
        return ArithmeticCommand(data['expression'])
    raise ValueError(f"Unknown compound kind: {kind!r}")


def node_from_dict(data: dict) -> Command:
    """Rebuild a command node from its to_dict() form"""
    node_type = data.get('type')

    if node_type == 'simple':
        return SimpleCommand(
            data['name'],
            list(data.get('args', [])),
            [Assignment(a['name'], a['value']) for a in data.get('assignments', [])],
            _load_redirections(data.get('redirections')),
        )
    if node_type == 'pipeline':
        return Pipeline(
            _load_body(data['stages']),
            data.get('background', False),
            data.get('negated', False),
        )
    if node_type == 'and_or':
        return AndOr(
            AndOrOperator[data['operator'].upper()],
            node_from_dict(data['left']),
            node_from_dict(data['right']),
        )
    if node_type == 'list':
        return CommandList(_load_body(data['commands']), data.get('background', False))
    if node_type == 'compound':
        return CompoundCommand(_load_compound_kind(data), _load_redirections(data.get('redirections')))
    if node_type == 'function':
        return FunctionDefinition(data['name'], _load_body(data['body']))

    raise ValueError(f"Unknown node type: {node_type!r}")


# ============================================================================
# AST UTILITIES - Tree printing
# ============================================================================

def format_ast_tree(node, indent: int = 0) -> str:
    """
    Render AST as an indented tree.

    Useful for debugging and understanding command structure.
    """
    lines: List[str] = []
    _format_node(node, indent, lines)
    return '\n'.join(lines)


def print_ast_tree(node, indent: int = 0) -> None:
    print(format_ast_tree(node, indent))


def _format_body(label: str, body: List[Command], indent: int, lines: List[str]) -> None:
    lines.append(f"{'  ' * indent}{label}:")
    for cmd in body:
        _format_node(cmd, indent + 1, lines)


def _format_node(node, indent: int, lines: List[str]) -> None:
    prefix = "  " * indent

    if isinstance(node, Script):
        lines.append(f"{prefix}Script:")
        for cmd in node.commands:
            _format_node(cmd, indent + 1, lines)

    elif isinstance(node, SimpleCommand):
        assigns = ' '.join(repr(a) for a in node.assignments)
        head = ' '.join(p for p in [assigns, node.name, ' '.join(node.args)] if p)
        lines.append(f"{prefix}SimpleCommand: {head}")
        for r in node.redirections:
            lines.append(f"{prefix}  Redirect: {r.kind.value} {r.target}")

    elif isinstance(node, Pipeline):
        flags = []
        if node.negated:
            flags.append('!')
        if node.background:
            flags.append('&')
        suffix = f" ({' '.join(flags)})" if flags else ''
        lines.append(f"{prefix}Pipeline{suffix}:")
        for stage in node.stages:
            _format_node(stage, indent + 1, lines)

    elif isinstance(node, AndOr):
        lines.append(f"{prefix}AndOr ({node.operator.value}):")
        _format_node(node.left, indent + 1, lines)
        _format_node(node.right, indent + 1, lines)

    elif isinstance(node, CommandList):
        suffix = ' (&)' if node.background else ''
        lines.append(f"{prefix}List{suffix}:")
        for cmd in node.commands:
            _format_node(cmd, indent + 1, lines)

    elif isinstance(node, FunctionDefinition):
        _format_body(f"Function {node.name}", node.body, indent, lines)

    elif isinstance(node, CompoundCommand):
        kind = node.kind
        if isinstance(kind, (BraceGroup, Subshell)):
            _format_body(type(kind).__name__, kind.body, indent, lines)
        elif isinstance(kind, ForLoop):
            words = ' '.join(kind.words) if kind.words is not None else '"$@"'
            _format_body(f"For {kind.variable} in {words}", kind.body, indent, lines)
        elif isinstance(kind, (WhileLoop, UntilLoop)):
            lines.append(f"{prefix}{type(kind).__name__}:")
            _format_body('condition', kind.condition, indent + 1, lines)
            _format_body('body', kind.body, indent + 1, lines)
        elif isinstance(kind, IfClause):
            lines.append(f"{prefix}If:")
            _format_body('condition', kind.condition, indent + 1, lines)
            _format_body('then', kind.then_body, indent + 1, lines)
            for part in kind.elif_parts:
                _format_body('elif', part.condition, indent + 1, lines)
                _format_body('then', part.body, indent + 1, lines)
            if kind.else_body is not None:
                _format_body('else', kind.else_body, indent + 1, lines)
        elif isinstance(kind, CaseClause):
            lines.append(f"{prefix}Case {kind.word}:")
            for item in kind.items:
                _format_body('|'.join(item.patterns), item.body, indent + 1, lines)
        elif isinstance(kind, ArithmeticCommand):
            lines.append(f"{prefix}Arithmetic: (( {kind.expression} ))")
        for r in node.redirections:
            lines.append(f"{prefix}  Redirect: {r.kind.value} {r.target}")

    else:
        lines.append(f"{prefix}Unknown node: {type(node)}")


# ============================================================================
# AST UTILITIES - Shell source rendering
# ============================================================================

def format_shell(node) -> str:
    """
    Render a node back to one line of shell source.

    Approximate (quoting is normalized): used to show the source of a
    construct that could not be translated.
    """
    if isinstance(node, Script):
        return '; '.join(format_shell(cmd) for cmd in node.commands)

    if isinstance(node, SimpleCommand):
        words = [repr(a) for a in node.assignments]
        if node.name:
            words.append(_shell_word(node.name))
        words.extend(_shell_word(arg) for arg in node.args)
        words.extend(_shell_redirection(r) for r in node.redirections)
        return ' '.join(words)

    if isinstance(node, Pipeline):
        text = ' | '.join(format_shell(stage) for stage in node.stages)
        if node.negated:
            text = f"! {text}"
        return f"{text} &" if node.background else text

    if isinstance(node, AndOr):
        return f"{format_shell(node.left)} {node.operator.value} {format_shell(node.right)}"

    if isinstance(node, CommandList):
        text = '; '.join(format_shell(cmd) for cmd in node.commands)
        return f"{text} &" if node.background else text

    if isinstance(node, FunctionDefinition):
        return f"{node.name}() {{ {_shell_body(node.body)} }}"

    if isinstance(node, CompoundCommand):
        text = _shell_compound(node.kind)
        redirections = ' '.join(_shell_redirection(r) for r in node.redirections)
        return f"{text} {redirections}" if redirections else text

    return str(node)


def _shell_word(word: str) -> str:
    if word == '' or any(ch in word for ch in ' \t\n;&|<>'):
        return '"' + word.replace('\\', '\\\\').replace('"', '\\"') + '"'
    return word


def _shell_body(body: List[Command]) -> str:
    return '; '.join(format_shell(cmd) for cmd in body) + ';' if body else ':;'


def _shell_redirection(redirection: Redirection) -> str:
    kind = redirection.kind
    if kind == RedirectionKind.HERE_DOC:
        return '<<EOF'
    if kind in (RedirectionKind.ERROR_OUTPUT, RedirectionKind.ERROR_APPEND):
        return f"{kind.value}{_shell_word(redirection.target)}"
    fd = ''
    if redirection.fd is not None and not (kind == RedirectionKind.OUTPUT_DUP and redirection.fd == 1):
        fd = str(redirection.fd)
    return f"{fd}{kind.value}{_shell_word(redirection.target)}"


def _shell_compound(kind: CompoundKind) -> str:
    if isinstance(kind, BraceGroup):
        return f"{{ {_shell_body(kind.body)} }}"
    if isinstance(kind, Subshell):
        return f"( {_shell_body(kind.body)} )"
    if isinstance(kind, ForLoop):
        words = f" in {' '.join(_shell_word(w) for w in kind.words)}" if kind.words is not None else ''
        return f"for {kind.variable}{words}; do {_shell_body(kind.body)} done"
    if isinstance(kind, WhileLoop):
        return f"while {_shell_body(kind.condition)} do {_shell_body(kind.body)} done"
    if isinstance(kind, UntilLoop):
        return f"until {_shell_body(kind.condition)} do {_shell_body(kind.body)} done"
    if isinstance(kind, IfClause):
        text = f"if {_shell_body(kind.condition)} then {_shell_body(kind.then_body)}"
        for part in kind.elif_parts:
            text += f" elif {_shell_body(part.condition)} then {_shell_body(part.body)}"
        if kind.else_body is not None:
            text += f" else {_shell_body(kind.else_body)}"
        return f"{text} fi"
    if isinstance(kind, CaseClause):
        items = ' '.join(f"{'|'.join(item.patterns)}) {_shell_body(item.body)};" for item in kind.items)
        return f"case {_shell_word(kind.word)} in {items} esac"
    if isinstance(kind, ArithmeticCommand):
        return f"(( {kind.expression} ))"
    return str(kind)
