"""
Script Parser - parse() front end over the two parsers

ARCHITECTURE:
    parse(text, config)
        ↓
    prefer_primary_parser?
        ├─ yes: PosixLexer + PosixParser on the WHOLE text
        │        ├─ ok → Script
        │        └─ ParseError / RecursionError → strict_mode? raise : HeuristicParser(text)
        └─ no:  HeuristicParser(text)

The two results are never merged: a failed grammar parse is discarded
entirely and the heuristic parser starts again from the raw text.

RESPONSIBILITIES:
- Choose the parser per config
- Recover from ParseError and RecursionError (log + fallback)
- Guarantee a Script for any input outside strict mode

NOT responsible for:
- Conversion (ScriptConverter)
"""
import logging
from typing import Optional

from .config import ConverterConfig, DEFAULT_CONFIG
from .errors import ParseError, ParseErrorKind
from .heuristic_parser import HeuristicParser
from .posix_ast import Script
from .posix_grammar_parser import parse_posix_script


class ScriptParser:
    """
    Dual-strategy parser.

    Stateless between calls: a fresh heuristic parser is created for each
    fallback, so one ScriptParser can serve concurrent callers.
    """

    def __init__(self, config: Optional[ConverterConfig] = None, logger=None):
        self.config = config or DEFAULT_CONFIG
        self.logger = logger or logging.getLogger('ScriptParser')

    def parse(self, text: str) -> Script:
        """
        Parse script text into a Script.

        Raises:
            ParseError: only when strict_mode is set and the grammar
                parser rejects the text
        """
        if text is None:
            text = ''

        if not self.config.prefer_primary_parser:
            self.logger.debug("Primary parser disabled, using heuristic parser")
            return HeuristicParser(logger=self.logger).parse(text)

        try:
            script = parse_posix_script(text, logger=self.logger)
            self.logger.debug(f"Grammar parser produced {len(script.commands)} top-level commands")
            return script
        except ParseError as e:
            if self.config.strict_mode:
                raise
            where = f" at pos {e.position}" if e.position is not None else ''
            self.logger.warning(f"Grammar parser failed ({e.kind.name}{where}): {e.message}; falling back to heuristic parser")
        except RecursionError:
            if self.config.strict_mode:
                raise ParseError(ParseErrorKind.INVALID_SYNTAX, "nesting too deep to parse")
            self.logger.warning("Grammar parser exceeded the recursion limit; falling back to heuristic parser")

        return HeuristicParser(logger=self.logger).parse(text)


def parse(text: str, config: Optional[ConverterConfig] = None, logger=None) -> Script:
    """
    Parse POSIX shell text into a Script.

    Args:
        text: Script source
        config: ConverterConfig (defaults to DEFAULT_CONFIG)

    Returns:
        Script AST (possibly degraded, never None)
    """
    return ScriptParser(config, logger=logger).parse(text)
