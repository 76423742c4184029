"""
Converter base - shared helpers for every converter group

A converter group is a class whose command_map maps command names to bound
methods with the signature:

    convert(args: List[str]) -> str

args are the unquoted source words after the command name. The returned
text is one line of Nushell, optionally followed by a ' # note'
annotation that the structural layer hoists to the end of the statement.
"""
import logging
from typing import Callable, Dict, List, Optional, Tuple

from ..constants import QUOTE_TRIGGER_CHARS
from ..quoting import quote_arg, quote_word, quote_value, nu_string

Converter = Callable[[List[str]], str]

_REGEX_SPECIALS = set('.^$*+?()[]{}|\\')
_GLOB_CHARS = set('*?[')


class CommandConverter:
    """
    Base class for a group of command converters.

    Subclasses fill self.command_map in __init__. Converters are pure:
    they never keep state between calls, so one group instance can be
    shared by concurrent conversions.
    """

    def __init__(self, logger=None):
        self.logger = logger or logging.getLogger(type(self).__name__)
        self.command_map: Dict[str, Converter] = {}

    def converters(self) -> Dict[str, Converter]:
        """name -> converter mapping, for registry population"""
        return dict(self.command_map)

    # ========================================================================
    # ARGUMENT SCANNING
    # ========================================================================

    @staticmethod
    def is_flag(arg: str) -> bool:
        return len(arg) > 1 and arg.startswith('-')

    @staticmethod
    def short_flags(arg: str) -> str:
        """'-rf' -> 'rf' (combined short flags, one char each)"""
        return arg[1:] if arg.startswith('-') and not arg.startswith('--') else ''

    @staticmethod
    def split_flags(args: List[str]) -> Tuple[List[str], List[str]]:
        """
        Separate leading flags from operands.

        Scanning stops at '--' or at the first operand, like getopt
        without argument permutation.
        """
        flags = []
        i = 0
        while i < len(args):
            arg = args[i]
            if arg == '--':
                i += 1
                break
            if len(arg) > 1 and arg.startswith('-'):
                flags.append(arg)
                i += 1
            else:
                break
        return flags, args[i:]

    @staticmethod
    def parse_int(text: str, default: Optional[int] = None) -> Optional[int]:
        try:
            return int(text)
        except (TypeError, ValueError):
            return default

    # ========================================================================
    # RENDERING
    # ========================================================================

    @staticmethod
    def quote(word: str) -> str:
        return quote_word(word)

    @staticmethod
    def glob_word(word: str, expand: bool = True) -> str:
        """
        Argument that may be a glob: left bare so it still expands (a
        quoted pattern is a literal file name), unless it also carries
        characters that force quoting.
        """
        if _GLOB_CHARS & set(word) and not (QUOTE_TRIGGER_CHARS - _GLOB_CHARS) & set(word):
            return word
        return quote_word(word, expand)

    @staticmethod
    def quote_all(words: List[str]) -> str:
        return ' '.join(quote_word(w) for w in words)

    @staticmethod
    def value(word: str) -> str:
        return quote_value(word)

    @staticmethod
    def pattern(regex: str) -> str:
        return nu_string(regex)

    @staticmethod
    def regex_escape(text: str) -> str:
        """Escape regex metacharacters (literal match)"""
        return ''.join('\\' + ch if ch in _REGEX_SPECIALS else ch for ch in text)

    @staticmethod
    def glob_to_regex(glob: str) -> str:
        """Anchored regex for a shell glob: * -> .*, ? -> ., [!x] -> [^x]"""
        out = ['^']
        i = 0
        while i < len(glob):
            ch = glob[i]
            if ch == '*':
                out.append('.*')
            elif ch == '?':
                out.append('.')
            elif ch == '[':
                end = glob.find(']', i + 2)
                if end == -1:
                    out.append('\\[')
                else:
                    body = glob[i + 1:end]
                    if body.startswith('!'):
                        body = '^' + body[1:]
                    out.append(f'[{body}]')
                    i = end
            elif ch == '\\' and i + 1 < len(glob):
                i += 1
                out.append(CommandConverter.regex_escape(glob[i]))
            else:
                out.append(CommandConverter.regex_escape(ch))
            i += 1
        out.append('$')
        return ''.join(out)

    @staticmethod
    def external(name: str, args: List[str], expand: bool = True) -> str:
        """^name arg... (run outside the structured pipeline)"""
        return ' '.join(['^' + quote_arg(name)] + [CommandConverter.glob_word(a, expand) for a in args])

    @staticmethod
    def annotate(command: str, note: str) -> str:
        if not note:
            return command
        if not command:
            return f"# {note}"
        return f"{command} # {note}"

    @staticmethod
    def each_path(paths: List[str], operation: str) -> str:
        """
        Apply a path operation to one or more paths.

            one  -> "a" | path basename
            many -> ["a" "b"] | each { |p| $p | path basename } | str join (char nl)
        """
        if len(paths) == 1:
            return f"{quote_value(paths[0])} | {operation}"
        items = ' '.join(quote_value(p) for p in paths)
        return f"[{items}] | each {{ |p| $p | {operation} }} | str join (char nl)"
