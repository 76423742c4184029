"""
Error taxonomy for parsing and conversion

ParseError      - raised by the grammar parser, recovered by the front end
ConversionError - raised by converters, recovered per node
RegistryError   - raised while the registry is being populated
"""
from enum import Enum, auto
from typing import Optional


class ParseErrorKind(Enum):
    """Why the grammar parser gave up"""
    INVALID_SYNTAX = auto()        # Unterminated quote or substitution
    UNEXPECTED_TOKEN = auto()      # Token cannot start/continue construct
    INCOMPLETE_COMMAND = auto()    # Input ended inside an open construct


class ConversionErrorKind(Enum):
    """Why a converter could not translate a node"""
    UNSUPPORTED_COMMAND = auto()
    UNSUPPORTED_FEATURE = auto()
    INVALID_ARGUMENT_SHAPE = auto()


class RegistryErrorKind(Enum):
    """Registry construction problems"""
    DUPLICATE_REGISTRATION = auto()
    FROZEN_REGISTRY = auto()


class PosixConverterError(Exception):
    """Base class for every error raised by this package"""


class ParseError(PosixConverterError):
    """
    Grammar parser failure.

    Attributes:
        kind: ParseErrorKind
        message: Human readable description
        position: Offset in the source text (None when unknown)
    """

    def __init__(self, kind: ParseErrorKind, message: str, position: Optional[int] = None):
        self.kind = kind
        self.message = message
        self.position = position
        where = f" at pos {position}" if position is not None else ''
        super().__init__(f"{kind.name}: {message}{where}")


class ConversionError(PosixConverterError):
    """
    Converter failure for a single node.

    Never allowed to abort a whole conversion: the conversion front end
    turns it into an annotated pass-through line.
    """

    def __init__(self, kind: ConversionErrorKind, message: str, command: str = ''):
        self.kind = kind
        self.message = message
        self.command = command
        prefix = f"{command}: " if command else ''
        super().__init__(f"{kind.name}: {prefix}{message}")


class RegistryError(PosixConverterError):
    """Registry population failure (startup time only)"""

    def __init__(self, kind: RegistryErrorKind, message: str):
        self.kind = kind
        self.message = message
        super().__init__(f"{kind.name}: {message}")
