"""
POSIX Converter - POSIX shell scripts to Nushell

Main components:
- parse / ScriptParser: grammar parser with heuristic fallback
- convert / ScriptConverter: Script -> Nushell text
- ConversionRegistry: four-tier command converter lookup
- StructuralTranslator: control flow, operators, redirections
- ConverterConfig: parse/convert options
"""

from .config import ConverterConfig, DEFAULT_CONFIG
from .errors import (
    PosixConverterError,
    ParseError,
    ParseErrorKind,
    ConversionError,
    ConversionErrorKind,
    RegistryError,
    RegistryErrorKind,
)
from .posix_ast import (
    Script,
    SimpleCommand,
    Pipeline,
    AndOr,
    AndOrOperator,
    CommandList,
    CompoundCommand,
    FunctionDefinition,
    Assignment,
    Redirection,
    RedirectionKind,
)
from .script_parser import ScriptParser, parse
from .script_converter import ScriptConverter, convert
from .registry import ConversionRegistry, ConverterTier, GenericFallbackConverter, build_default_registry
from .structural import StructuralTranslator

__all__ = [
    'parse',
    'convert',
    'ScriptParser',
    'ScriptConverter',
    'StructuralTranslator',
    'ConversionRegistry',
    'ConverterTier',
    'GenericFallbackConverter',
    'build_default_registry',
    'ConverterConfig',
    'DEFAULT_CONFIG',
    'PosixConverterError',
    'ParseError',
    'ParseErrorKind',
    'ConversionError',
    'ConversionErrorKind',
    'RegistryError',
    'RegistryErrorKind',
    'Script',
    'SimpleCommand',
    'Pipeline',
    'AndOr',
    'AndOrOperator',
    'CommandList',
    'CompoundCommand',
    'FunctionDefinition',
    'Assignment',
    'Redirection',
    'RedirectionKind',
]
