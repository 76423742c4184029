"""
Conversion Registry - tiered command name -> converter lookup

TIERS (searched in this order):
    BUILTIN           shell intrinsics (cd, test, read, ...)
    STANDARD_UTILITY  POSIX utilities with structured equivalents (ls, grep, ...)
    EXTERNAL          commands delegated unchanged (awk, jq, python, ...)
    FALLBACK          anything else -> ^name args

USAGE:
    registry = build_default_registry()
    converter = registry.lookup('grep')
    converter(['-i', 'foo'])   # 'lines | where $it =~ "(?i)foo"'

The registry is populated once and then frozen; lookups never mutate it,
so one instance can be shared by concurrent conversions.
"""
import logging
from enum import Enum
from typing import Dict, List, Optional

from .converters import (
    CommandConverter,
    Converter,
    BuiltinConverters,
    TextUtilityConverters,
    FileUtilityConverters,
    SystemUtilityConverters,
    DelegatedConverters,
)
from .errors import RegistryError, RegistryErrorKind


class ConverterTier(Enum):
    """Lookup priority, lowest value wins"""
    BUILTIN = 1
    STANDARD_UTILITY = 2
    EXTERNAL = 3
    FALLBACK = 4


class GenericFallbackConverter:
    """
    Converter for names no tier knows: run the command externally.

        foobar -x 1  ->  ^foobar -x 1
    """

    def __init__(self, name: str):
        self.name = name

    def __call__(self, args: List[str]) -> str:
        return CommandConverter.external(self.name, args)

    def __repr__(self):
        return f"GenericFallbackConverter({self.name!r})"


class ConversionRegistry:
    """
    Four-tier converter registry.

    RESPONSIBILITIES:
    - Hold name -> converter tables per tier
    - Resolve a name by tier priority
    - Hand out a generic fallback converter for unknown names

    NOT responsible for:
    - Converting arguments (converters do)
    - AST traversal (ScriptConverter / StructuralTranslator)
    """

    def __init__(self, logger=None):
        self.logger = logger or logging.getLogger('ConversionRegistry')
        self._tiers: Dict[ConverterTier, Dict[str, Converter]] = {tier: {} for tier in ConverterTier}
        self._frozen = False

    # ========================================================================
    # POPULATION
    # ========================================================================

    def register(self, tier: ConverterTier, name: str, converter: Converter, replace: bool = True):
        """
        Register converter under name in tier.

        A second registration of the same name in the same tier overwrites
        the first (logged). With replace=False it raises instead.

        Raises:
            RegistryError: FROZEN_REGISTRY after freeze(),
                DUPLICATE_REGISTRATION when replace is False
        """
        if self._frozen:
            raise RegistryError(RegistryErrorKind.FROZEN_REGISTRY,
                                f"cannot register '{name}': registry is frozen")

        table = self._tiers[tier]
        if name in table:
            if not replace:
                raise RegistryError(RegistryErrorKind.DUPLICATE_REGISTRATION,
                                    f"'{name}' already registered in tier {tier.name}")
            self.logger.warning(f"Overwriting converter for '{name}' in tier {tier.name}")

        table[name] = converter

    def register_group(self, tier: ConverterTier, group, replace: bool = True):
        """Register every converter of a CommandConverter group"""
        for name, converter in group.converters().items():
            self.register(tier, name, converter, replace=replace)
        self.logger.debug(f"Registered {len(group.command_map)} converters from {type(group).__name__} in {tier.name}")

    def freeze(self):
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    # ========================================================================
    # LOOKUP
    # ========================================================================

    def lookup_tier(self, name: str) -> Optional[ConverterTier]:
        """First tier holding name, None when only the fallback applies"""
        for tier in ConverterTier:
            if name in self._tiers[tier]:
                return tier
        return None

    def lookup(self, name: str) -> Converter:
        """Converter for name; never fails (generic fallback)"""
        tier = self.lookup_tier(name)
        if tier is None:
            self.logger.debug(f"No converter for '{name}', using generic fallback")
            return GenericFallbackConverter(name)
        return self._tiers[tier][name]

    def names(self, tier: ConverterTier) -> List[str]:
        return sorted(self._tiers[tier])

    def __contains__(self, name: str) -> bool:
        return self.lookup_tier(name) is not None

    def describe(self) -> Dict[str, List[str]]:
        """tier name -> sorted command names (for tooling/debugging)"""
        return {tier.name.lower(): self.names(tier) for tier in ConverterTier if self._tiers[tier]}

    def __repr__(self):
        counts = ', '.join(f"{tier.name}={len(table)}" for tier, table in self._tiers.items())
        return f"ConversionRegistry({counts})"


def build_default_registry(logger=None) -> ConversionRegistry:
    """
    Registry with every built-in converter group, frozen.

    The standard-utility cd is registered too; the builtin one wins lookup.
    """
    registry = ConversionRegistry(logger=logger)

    registry.register_group(ConverterTier.BUILTIN, BuiltinConverters())
    for group in (TextUtilityConverters(), FileUtilityConverters(), SystemUtilityConverters()):
        registry.register_group(ConverterTier.STANDARD_UTILITY, group)
    registry.register_group(ConverterTier.EXTERNAL, DelegatedConverters())

    registry.freeze()
    return registry
