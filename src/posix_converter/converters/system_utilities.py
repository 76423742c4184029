"""
System utilities - processes, environment, time

date ps which whoami sleep cd
"""
import re
from typing import List

from ..quoting import nu_string
from .base import CommandConverter

_DURATION = re.compile(r'^(\d+(?:\.\d+)?)([smhd]?)$')
_DURATION_UNITS = {'': 'sec', 's': 'sec', 'm': 'min', 'h': 'hr', 'd': 'day'}

_RELATIVE_DATES = {
    'now': 'date now',
    'today': 'date now',
    'yesterday': '(date now) - 1day',
    'tomorrow': '(date now) + 1day',
}


class SystemUtilityConverters(CommandConverter):
    """Process/environment/date utilities (standard-utility tier)"""

    def __init__(self, logger=None):
        super().__init__(logger)

        self.command_map = {
            'date': self._convert_date,
            'ps': self._convert_ps,
            'which': self._convert_which,
            'whoami': self._convert_whoami,
            'sleep': self._convert_sleep,
            # Shadowed by the builtin cd, kept for registries without builtins
            'cd': self._convert_cd,
        }

    def _convert_date(self, args: List[str]) -> str:
        """
        Translate date.

        +FORMAT       -> format date "FORMAT" (strftime specs carry over)
        -d STRING     -> STRING | into datetime (now/today/yesterday/tomorrow, @epoch)
        -r FILE       -> modification time of FILE
        -u            -> date to-timezone UTC
        -I / -R / --rfc-3339=...  -> fixed formats
        """
        source = 'date now'
        fmt = None
        utc = False
        notes = []

        i = 0
        while i < len(args):
            arg = args[i]
            if arg in ('-d', '--date') and i + 1 < len(args):
                source = self._date_source(args[i + 1])
                i += 2
                continue
            if arg.startswith('--date='):
                source = self._date_source(arg.split('=', 1)[1])
            elif arg in ('-r', '--reference') and i + 1 < len(args):
                source = f"ls {self.quote(args[i + 1])} | get 0.modified"
                i += 2
                continue
            elif arg in ('-u', '--utc', '--universal'):
                utc = True
            elif arg.startswith('+'):
                fmt = arg[1:]
            elif arg.startswith('-I') or arg.startswith('--iso-8601'):
                precision = arg.split('=', 1)[1] if '=' in arg else arg[2:]
                fmt = '%Y-%m-%dT%H:%M:%S%:z' if precision in ('seconds', 's') else '%Y-%m-%d'
            elif arg in ('-R', '--rfc-email', '--rfc-2822'):
                fmt = '%a, %d %b %Y %H:%M:%S %z'
            elif arg.startswith('--rfc-3339'):
                precision = arg.split('=', 1)[1] if '=' in arg else 'seconds'
                fmt = '%Y-%m-%d' if precision == 'date' else '%Y-%m-%d %H:%M:%S%:z'
            else:
                notes.append(f"date {arg} not supported")
            i += 1

        command = source
        if utc:
            command += ' | date to-timezone UTC'
        if fmt is not None:
            command += f" | format date {nu_string(fmt)}"
        return self.annotate(command, '; '.join(notes))

    def _date_source(self, text: str) -> str:
        relative = _RELATIVE_DATES.get(text.strip().lower())
        if relative:
            return relative
        if text.startswith('@') and text[1:].isdigit():
            return f"{nu_string(text[1:])} | into datetime --format \"%s\""
        return f"{self.value(text)} | into datetime"

    def _convert_ps(self, args: List[str]) -> str:
        """
        ps -> ps; -p PID / -u USER / -C NAME become where filters.
        Wide/full formats (aux, -ef, -l) map to ps --long.
        """
        filters = []
        notes = []
        long_format = False

        i = 0
        while i < len(args):
            arg = args[i]
            value = args[i + 1] if i + 1 < len(args) else None
            if arg in ('-p', '--pid') and value is not None:
                pids = [p for p in value.split(',') if p.isdigit()]
                filters.append(' or '.join(f"$it.pid == {p}" for p in pids) or 'false')
                i += 2
                continue
            if arg in ('-u', '-U', '--user') and value is not None:
                long_format = True
                filters.append(f"$it.user == {self.value(value)}")
                i += 2
                continue
            if arg == '-C' and value is not None:
                filters.append(f"$it.name == {self.value(value)}")
                i += 2
                continue
            letters = arg.lstrip('-')
            if letters and set(letters) <= set('aefluxwAF'):
                long_format = long_format or bool(set(letters) & set('flu'))
            else:
                notes.append(f"{arg} not fully supported")
            i += 1

        command = 'ps --long' if long_format else 'ps'
        if filters:
            joined = ' and '.join(f"({f})" if ' or ' in f else f for f in filters)
            command += f" | where {joined}"
        return self.annotate(command, '; '.join(notes))

    def _convert_which(self, args: List[str]) -> str:
        flags, names = self.split_flags(args)
        letters = ''.join(self.short_flags(f) for f in flags)
        if not names:
            return 'which'
        command = 'which'
        if 'a' in letters or '--all' in flags:
            command += ' --all'
        command += f" {self.quote_all(names)}"
        if 's' in letters:
            command += ' | ignore'
        return command

    def _convert_whoami(self, args: List[str]) -> str:
        if args:
            return self.external('whoami', args)
        return 'whoami'

    def _convert_sleep(self, args: List[str]) -> str:
        """sleep 1m 30 -> sleep 1min 30sec"""
        if not args:
            return self.annotate('sleep 0sec', 'sleep: missing operand')

        durations = []
        for arg in args:
            match = _DURATION.match(arg)
            if not match:
                if arg.startswith('$'):
                    durations.append(f"({self.quote(arg)} | into duration --unit sec)")
                    continue
                return self.external('sleep', args)
            number, unit = match.groups()
            durations.append(f"{number}{_DURATION_UNITS[unit]}")
        return f"sleep {' '.join(durations)}"

    def _convert_cd(self, args: List[str]) -> str:
        """cd with -P resolves symlinks through path expand"""
        physical = False
        path = ''
        for arg in args:
            if arg == '-':
                return 'cd -'
            if arg == '-P':
                physical = True
            elif arg == '-L':
                physical = False
            elif not arg.startswith('-'):
                path = arg

        if not path or path == '~':
            return 'cd'
        if physical:
            return f"cd ({self.value(path)} | path expand)"
        return f"cd {self.quote(path)}"
