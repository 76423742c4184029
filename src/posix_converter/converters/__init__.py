"""
Command converter groups

One class per group; each exposes command_map {name: convert(args) -> str}.
The registry decides which tier a group is registered in.
"""
from .base import CommandConverter, Converter
from .builtins import BuiltinConverters
from .text_utilities import TextUtilityConverters
from .file_utilities import FileUtilityConverters
from .system_utilities import SystemUtilityConverters
from .external import DelegatedConverters

__all__ = [
    'CommandConverter',
    'Converter',
    'BuiltinConverters',
    'TextUtilityConverters',
    'FileUtilityConverters',
    'SystemUtilityConverters',
    'DelegatedConverters',
]
