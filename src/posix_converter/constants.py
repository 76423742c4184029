"""
Constants for POSIX shell parsing and Nushell generation
"""

# ============================================================================
# SHELL GRAMMAR - Reserved words
# ============================================================================
# Reserved words are only special in command position. An argument named
# "done" or "fi" is a plain word.

# Words that close a body - sequence parsing stops on them
BODY_TERMINATORS = {'then', 'elif', 'else', 'fi', 'do', 'done', 'esac', '}'}

# Heuristic parser block pairs (opener -> closer)
BLOCK_OPENERS = {
    'if': 'fi',
    'for': 'done',
    'while': 'done',
    'until': 'done',
    'case': 'esac',
}

# NAME=value with a valid shell identifier on the left
ASSIGNMENT_PATTERN = r'^([A-Za-z_][A-Za-z0-9_]*)=(.*)$'
IDENTIFIER_PATTERN = r'^[A-Za-z_][A-Za-z0-9_]*$'


# ============================================================================
# QUOTING - Characters that force a token into a Nushell string literal
# ============================================================================

QUOTE_TRIGGER_CHARS = {
    ' ', '\t', '\n', '\r',   # whitespace
    '"', "'",          # embedded quotes
    '$',               # variable / expansion sigil
    '*', '?', '[',     # glob wildcards
    '#',               # would start a comment
    ';', '|',          # statement / pipe separators
    '(', ')', '{', '}',
}


# ============================================================================
# PREDICATES - Commands whose translation is a boolean expression
# ============================================================================
# Used by && / || / if / while to decide between "if <expr> { }" and the
# exit-code based forms.

PREDICATE_COMMANDS = {'test', '[', 'true', 'false'}


# ============================================================================
# FILE TEST OPERATORS (test / [)
# ============================================================================
# {path} is replaced with the quoted operand.

FILE_TEST_PREDICATES = {
    '-e': '({path} | path exists)',
    '-f': '(({path} | path exists) and (({path} | path type) == "file"))',
    '-d': '(({path} | path exists) and (({path} | path type) == "dir"))',
    '-L': '(({path} | path exists) and (({path} | path type) == "symlink"))',
    '-h': '(({path} | path exists) and (({path} | path type) == "symlink"))',
    '-b': '(({path} | path exists) and (({path} | path type) == "block device"))',
    '-c': '(({path} | path exists) and (({path} | path type) == "char device"))',
    '-p': '(({path} | path exists) and (({path} | path type) == "pipe"))',
    '-S': '(({path} | path exists) and (({path} | path type) == "socket"))',
    '-r': '({path} | path exists)',
    '-w': '({path} | path exists)',
    '-x': '({path} | path exists)',
    '-s': '(({path} | path exists) and ((ls {path} | get 0.size) > 0b))',
}

STRING_TEST_PREDICATES = {
    '-z': '({value} | is-empty)',
    '-n': '({value} | is-not-empty)',
}

# Integer comparisons: both sides coerced with "into int"
NUMERIC_TEST_OPERATORS = {
    '-eq': '==',
    '-ne': '!=',
    '-lt': '<',
    '-le': '<=',
    '-gt': '>',
    '-ge': '>=',
}

STRING_TEST_OPERATORS = {
    '=': '==',
    '==': '==',
    '!=': '!=',
    '<': '<',
    '>': '>',
}


# ============================================================================
# ARITHMETIC - Operator substitution table
# ============================================================================
# Longest operators first so "**" is matched before "*".

ARITHMETIC_OPERATORS = [
    ('**', '**'),
    ('&&', 'and'),
    ('||', 'or'),
    ('==', '=='),
    ('!=', '!='),
    ('<=', '<='),
    ('>=', '>='),
    ('<<', 'bit-shl'),
    ('>>', 'bit-shr'),
    ('+', '+'),
    ('-', '-'),
    ('*', '*'),
    ('/', '//'),       # shell arithmetic is integer division
    ('%', 'mod'),
    ('<', '<'),
    ('>', '>'),
    ('!', 'not '),
    ('&', 'bit-and'),
    ('|', 'bit-or'),
    ('^', 'bit-xor'),
]


# ============================================================================
# LS FLAGS - per-character mapping
# ============================================================================

LS_FLAG_MAP = {
    'l': '--long',
    'a': '--all',
    'A': '--all',
    'd': '--directory',
    'h': '',              # sizes are always human readable
    '1': '',              # one entry per row is the default
    'F': '',              # type markers have no equivalent
    'R': None,            # recursion handled structurally
    'r': None,            # reverse handled structurally
    't': None,            # sort by time handled structurally
    'S': None,            # sort by size handled structurally
}


# ============================================================================
# FIND - type letters to Nushell "type" column values
# ============================================================================

FIND_TYPE_MAP = {
    'f': 'file',
    'd': 'dir',
    'l': 'symlink',
    'b': 'block device',
    'c': 'char device',
    'p': 'pipe',
    's': 'socket',
}

# find -size suffix multipliers
SIZE_UNITS = {
    '': 512,          # default unit is 512-byte blocks
    'b': 512,
    'c': 1,
    'w': 2,
    'k': 1024,
    'M': 1024 ** 2,
    'G': 1024 ** 3,
    'T': 1024 ** 4,
}


# ============================================================================
# EXTERNAL TOOLS - delegated verbatim
# ============================================================================
# Embedded languages that are never translated, only invoked as externals.

DELEGATED_COMMANDS = [
    'awk', 'gawk', 'perl', 'python', 'python3', 'jq', 'bash', 'sh',
]

KILL_SIGNALS = (
    'HUP INT QUIT ILL TRAP ABRT BUS FPE KILL USR1 SEGV USR2 PIPE ALRM TERM'
)
