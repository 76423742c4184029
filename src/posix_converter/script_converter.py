"""
Script Converter - convert() entry point

ARCHITECTURE:
    convert(source, config)
        ↓
    str?  → ScriptParser.parse()  (grammar parser, heuristic fallback)
        ↓
    Script
        ↓
    StructuralTranslator.translate_body()   ← ConversionRegistry (4 tiers)
        ↓
    format_statements()  (pretty / compact)
        ↓
    Nushell text

USAGE:
    from posix_converter import convert

    convert('echo "hello world"')           # 'print "hello world"'
    convert('ls -la | grep test')           # 'ls --long --all | lines | where $it =~ "test"'
    convert(script, ConverterConfig(pretty_print=False))

Totality: outside strict_mode every input, including unparsable or
unsupported text, yields a string.
"""
import logging
import threading
from typing import Optional, Union

from .config import ConverterConfig, DEFAULT_CONFIG
from .formatter import format_statements
from .posix_ast import Script
from .registry import ConversionRegistry, build_default_registry
from .script_parser import ScriptParser
from .structural import StructuralTranslator

_default_registry: Optional[ConversionRegistry] = None
_default_registry_lock = threading.Lock()


def default_registry() -> ConversionRegistry:
    """Process-wide frozen registry, built on first use"""
    global _default_registry
    if _default_registry is None:
        with _default_registry_lock:
            if _default_registry is None:
                _default_registry = build_default_registry()
    return _default_registry


class ScriptConverter:
    """
    Converts shell text or a parsed Script to Nushell text.

    RESPONSIBILITIES:
    - Parse text input
    - Run the structural translator over top-level commands
    - Lay out the result

    A ScriptConverter keeps no state between convert() calls; each call
    gets its own StructuralTranslator.
    """

    def __init__(self, registry: Optional[ConversionRegistry] = None,
                 config: Optional[ConverterConfig] = None, logger=None):
        self.registry = registry or default_registry()
        self.config = config or DEFAULT_CONFIG
        self.logger = logger or logging.getLogger('ScriptConverter')
        self.parser = ScriptParser(self.config, logger=self.logger)

    def convert(self, source: Union[str, Script, None]) -> str:
        """
        Convert source to Nushell.

        Args:
            source: shell text or a Script from parse()

        Returns:
            Nushell text ('' for empty input)

        Raises:
            ParseError / ConversionError: only in strict_mode
        """
        if source is None:
            return ''
        script = source if isinstance(source, Script) else self.parser.parse(source)
        if script.is_empty():
            return ''

        translator = StructuralTranslator(self.registry, self.config, parser=self.parser, logger=self.logger)
        statements = translator.translate_body(script.commands)
        self.logger.debug(f"Converted {len(script.commands)} commands into {len(statements)} statements")
        return format_statements(statements, self.config)


def convert(source: Union[str, Script, None], config: Optional[ConverterConfig] = None,
            registry: Optional[ConversionRegistry] = None, logger=None) -> str:
    """
    Convert POSIX shell text (or a parsed Script) to Nushell text.

    Args:
        source: Script text or Script
        config: ConverterConfig (defaults to DEFAULT_CONFIG)
        registry: converter registry (defaults to the shared built-in one)

    Returns:
        Nushell source text
    """
    return ScriptConverter(registry, config, logger=logger).convert(source)
