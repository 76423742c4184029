"""
Delegated converters - commands carrying their own sub-language

awk gawk perl python python3 jq bash sh

Their programs are never translated: the command runs as an external
process and every argument is passed through the quoting engine. Variables
are only substituted for words that are exactly a variable reference, so
'$1' in an awk program stays literal.
"""
from functools import partial
from typing import List

from ..constants import DELEGATED_COMMANDS
from .base import CommandConverter


class DelegatedConverters(CommandConverter):
    """External tier: ^name with quoted arguments"""

    def __init__(self, commands: List[str] = None, logger=None):
        super().__init__(logger)

        self.command_map = {
            name: partial(self._delegate, name)
            for name in (commands or DELEGATED_COMMANDS)
        }

    def _delegate(self, name: str, args: List[str]) -> str:
        self.logger.debug(f"Delegating {name} with {len(args)} args")
        return self.external(name, args, expand=False)
