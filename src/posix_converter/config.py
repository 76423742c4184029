"""
Converter configuration record

Options recognized by parse() and convert():
    prefer_primary_parser - try the grammar parser first (False = heuristic only)
    strict_mode           - surface parser/converter errors instead of recovering
    pretty_print          - multi-line indented output vs compact output
    indent_width          - spaces per block level when pretty printing
"""
import logging
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class ConverterConfig:
    """
    Options for a parse/convert call.

    Frozen: one instance can be shared by concurrent conversions.
    """
    prefer_primary_parser: bool = True
    strict_mode: bool = False
    pretty_print: bool = True
    indent_width: int = 2

    @classmethod
    def from_dict(cls, options: Optional[Dict[str, Any]], logger=None) -> 'ConverterConfig':
        """
        Build config from a plain dict (e.g. host flags).

        Unknown keys are ignored and logged at debug level.
        """
        logger = logger or logging.getLogger('ConverterConfig')
        if not options:
            return cls()

        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in options.items():
            if key in known:
                values[key] = value
            else:
                logger.debug(f"Ignoring unknown config option: {key}")

        return cls(**values)


DEFAULT_CONFIG = ConverterConfig()
