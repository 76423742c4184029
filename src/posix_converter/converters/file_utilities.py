"""
File utilities - filesystem commands

ls find cp mv rm rmdir mkdir touch chmod chown stat basename dirname realpath

Flags are mapped per character, so combined short flags (-la, -rf) work
the same as separate ones. chmod/chown have no structured equivalent and
always run the external binary.
"""
import re
from typing import List

from ..constants import LS_FLAG_MAP, FIND_TYPE_MAP, SIZE_UNITS
from ..errors import ConversionError, ConversionErrorKind
from ..quoting import interpolation_body, nu_string, quote_word
from .base import CommandConverter

# ls --long columns addressed by stat -c format specs
STAT_FIELDS = {
    '%n': 'name',
    '%N': 'name',
    '%s': 'size',
    '%F': 'type',
    '%a': 'mode',
    '%A': 'mode',
    '%U': 'user',
    '%G': 'group',
    '%h': 'num_links',
    '%i': 'inode',
    '%x': 'accessed',
    '%y': 'modified',
    '%w': 'created',
}


class FileUtilityConverters(CommandConverter):
    """Filesystem utilities (standard-utility tier)"""

    def __init__(self, logger=None):
        super().__init__(logger)

        self.command_map = {
            # ===== LISTING =====
            'ls': self._convert_ls,
            'find': self._convert_find,
            'stat': self._convert_stat,

            # ===== MUTATION =====
            'cp': self._convert_cp,
            'mv': self._convert_mv,
            'rm': self._convert_rm,
            'rmdir': self._convert_rmdir,
            'mkdir': self._convert_mkdir,
            'touch': self._convert_touch,

            # ===== EXTERNAL ONLY =====
            'chmod': self._convert_chmod,
            'chown': self._convert_chown,

            # ===== PATHS =====
            'basename': self._convert_basename,
            'dirname': self._convert_dirname,
            'realpath': self._convert_realpath,
        }

    # ========================================================================
    # LISTING
    # ========================================================================

    def _convert_ls(self, args: List[str]) -> str:
        """
        Translate ls.

        Each flag character goes through LS_FLAG_MAP: a target flag, ''
        (dropped, already the default) or None (structural: -R globs
        recursively, -t/-S sort, -r reverses). Unknown flags are annotated.
        """
        target_flags = []
        structural = set()
        unknown = []
        paths = []

        for arg in args:
            if arg.startswith('--'):
                long_flag = arg.split('=', 1)[0]
                if long_flag in ('--all', '--long', '--directory'):
                    target_flags.append(long_flag)
                elif long_flag in ('--color', '--human-readable'):
                    continue
                elif long_flag == '--recursive':
                    structural.add('R')
                elif long_flag == '--reverse':
                    structural.add('r')
                else:
                    unknown.append(arg)
            elif self.is_flag(arg):
                for c in arg[1:]:
                    if c not in LS_FLAG_MAP:
                        unknown.append(f"-{c}")
                    elif LS_FLAG_MAP[c] is None:
                        structural.add(c)
                    elif LS_FLAG_MAP[c]:
                        target_flags.append(LS_FLAG_MAP[c])
            else:
                paths.append(arg)

        if 'R' in structural:
            paths = [f"{p.rstrip('/')}/**/*" for p in paths] or ['**/*']

        parts = ['ls'] + list(dict.fromkeys(target_flags)) + [self.glob_word(p) for p in paths]
        command = ' '.join(parts)

        sort_key = 'modified' if 't' in structural else 'size' if 'S' in structural else None
        if sort_key:
            # ls -t / -S list newest / largest first; -r flips that
            descending = 'r' not in structural
            command += f" | sort-by {sort_key}" + (' --reverse' if descending else '')
        elif 'r' in structural:
            command += ' | sort-by name --reverse'

        if unknown:
            command = self.annotate(command, f"Unknown flag: {' '.join(unknown)}")
        return command

    def _convert_find(self, args: List[str]) -> str:
        """
        Translate find into ls + where filters.

        PATH...     -> ls PATH/**/* (ls **/* for .)
        -maxdepth 1 -> ls PATH
        -name GLOB  -> basename regex match (-iname case-insensitive)
        -path GLOB  -> path regex match
        -type T     -> type == "file" / "dir" / ...
        -size [+-]N[ckMG] -> size comparison in bytes
        -mtime [+-]N / -newer F -> modified comparison
        -exec CMD {} ; / -delete / default: get name
        """
        paths = []
        i = 0
        while i < len(args) and not args[i].startswith('-') and args[i] not in ('!', '('):
            paths.append(args[i])
            i += 1

        filters = []
        notes = []
        action = None
        max_depth = None
        negate_next = False

        while i < len(args):
            arg = args[i]
            value = args[i + 1] if i + 1 < len(args) else None
            condition = None
            consumed = 2

            if arg in ('!', '-not'):
                negate_next = True
                i += 1
                continue
            if arg in ('-name', '-iname') and value is not None:
                regex = self.glob_to_regex(value)
                if arg == '-iname':
                    regex = f"(?i){regex}"
                condition = f"($it.name | path basename) =~ {self.pattern(regex)}"
            elif arg in ('-path', '-wholename') and value is not None:
                condition = f"$it.name =~ {self.pattern(self.glob_to_regex(value).lstrip('^'))}"
            elif arg == '-type' and value is not None:
                kinds = [FIND_TYPE_MAP[t] for t in value.split(',') if t in FIND_TYPE_MAP]
                if not kinds:
                    notes.append(f"unknown -type {value}")
                else:
                    condition = ' or '.join(f'$it.type == "{k}"' for k in kinds)
            elif arg == '-size' and value is not None:
                condition = self._find_size(value)
                if condition is None:
                    notes.append(f"unsupported -size {value}")
            elif arg in ('-mtime', '-mmin') and value is not None:
                condition = self._find_time(value, 'day' if arg == '-mtime' else 'min')
                if condition is None:
                    notes.append(f"unsupported {arg} {value}")
            elif arg == '-newer' and value is not None:
                condition = f"$it.modified > (ls {self.quote(value)} | get 0.modified)"
            elif arg == '-empty':
                condition = '$it.size == 0b'
                consumed = 1
            elif arg == '-maxdepth' and value is not None:
                max_depth = self.parse_int(value)
            elif arg == '-mindepth' and value is not None:
                notes.append(f"-mindepth {value} ignored")
            elif arg in ('-perm', '-user', '-group', '-atime', '-ctime', '-links', '-inum') and value is not None:
                notes.append(f"{arg} {value} not supported")
            elif arg in ('-exec', '-execdir', '-ok'):
                end = i + 1
                while end < len(args) and args[end] not in (';', '\\;', '+'):
                    end += 1
                action = self._find_exec(args[i + 1:end])
                consumed = end - i + 1
            elif arg == '-delete':
                action = 'each { |file| rm $file.name }'
                consumed = 1
            elif arg in ('-print', '-print0', '-o', '-or', '-a', '-and', '(', ')'):
                if arg in ('-o', '-or'):
                    notes.append('-o treated as -a')
                consumed = 1
            else:
                notes.append(f"unsupported find primary {arg}")
                consumed = 1

            if condition:
                if negate_next:
                    condition = f"not ({condition})"
                filters.append(f"({condition})" if ' or ' in condition else condition)
            negate_next = False
            i += consumed

        if max_depth == 1 or max_depth == 0:
            sources = [self.glob_word(p) for p in paths if p != '.']
        else:
            sources = [self.glob_word(f"{p.rstrip('/')}/**/*") for p in paths if p != '.']
            if not paths or '.' in paths:
                sources.insert(0, '**/*')
        command = ' '.join(['ls'] + sources)

        if max_depth is not None and max_depth > 1:
            notes.append(f"-maxdepth {max_depth} ignored")
        if filters:
            command += f" | where {' and '.join(filters)}"
        command += f" | {action}" if action else ' | get name'
        return self.annotate(command, '; '.join(notes))

    def _find_size(self, value: str):
        match = re.match(r'^([+-]?)(\d+)([bcwkMGT]?)$', value)
        if not match:
            return None
        sign, number, unit = match.groups()
        size = int(number) * SIZE_UNITS[unit]
        operator = {'+': '>', '-': '<', '': '=='}[sign]
        return f"$it.size {operator} {size}b"

    @staticmethod
    def _find_time(value: str, unit: str):
        match = re.match(r'^([+-]?)(\d+)$', value)
        if not match:
            return None
        sign, number = match.groups()
        threshold = f"((date now) - {number}{unit})"
        if sign == '+':
            return f"$it.modified < {threshold}"
        if sign == '-':
            return f"$it.modified > {threshold}"
        return f"$it.modified < {threshold} and $it.modified > ((date now) - {int(number) + 1}{unit})"

    def _find_exec(self, command: List[str]) -> str:
        if not command:
            raise ConversionError(
                ConversionErrorKind.INVALID_ARGUMENT_SHAPE,
                '-exec without a command', command='find')
        words = []
        for word in command[1:]:
            if word == '{}':
                words.append('$file.name')
            else:
                words.append(self._exec_word(word))
        invocation = ' '.join([self.external(command[0], [])] + words)
        return f"each {{ |file| {invocation} }}"

    @staticmethod
    def _exec_word(word: str) -> str:
        if '{}' not in word:
            return quote_word(word)
        pieces = (interpolation_body(p) for p in word.split('{}'))
        return '$"' + '($file.name)'.join(pieces) + '"'

    def _convert_stat(self, args: List[str]) -> str:
        """
        stat FILE -> ls --long FILE | first

        -c FORMAT with a single spec selects one column (%s -> size, ...).
        """
        fmt = None
        files = []
        i = 0
        while i < len(args):
            arg = args[i]
            if arg in ('-c', '--format') and i + 1 < len(args):
                fmt = args[i + 1]
                i += 2
                continue
            if arg.startswith('--format='):
                fmt = arg.split('=', 1)[1]
            elif not self.is_flag(arg):
                files.append(arg)
            i += 1

        if not files:
            return self.external('stat', args)

        command = f"ls --long {self.quote_all(files)}"
        if len(files) == 1:
            command += ' | first'

        if fmt is None:
            return command
        field = STAT_FIELDS.get(fmt.strip())
        if field is None:
            return self.annotate(command, f"stat format {fmt} not supported")
        return f"{command} | get {field}"

    # ========================================================================
    # MUTATION
    # ========================================================================

    def _mapped_flags(self, args: List[str], mapping: dict, command: str):
        """Per-character flag mapping shared by cp/mv/rm/mkdir/touch"""
        flags = []
        notes = []
        operands = []
        for arg in args:
            if arg.startswith('--') and len(arg) > 2:
                if arg in mapping.values():
                    flags.append(arg)
                else:
                    notes.append(f"{command} {arg} ignored")
            elif self.is_flag(arg):
                for c in arg[1:]:
                    if c in mapping:
                        if mapping[c]:
                            flags.append(mapping[c])
                    else:
                        notes.append(f"{command} -{c} ignored")
            else:
                operands.append(arg)
        return list(dict.fromkeys(flags)), operands, notes

    _CP_FLAGS = {
        'r': '--recursive', 'R': '--recursive', 'a': '--recursive',
        'v': '--verbose', 'u': '--update', 'n': '--no-clobber',
        'i': '--interactive', 'f': '', 'p': '',
    }
    _MV_FLAGS = {
        'f': '--force', 'v': '--verbose', 'u': '--update',
        'n': '--no-clobber', 'i': '--interactive',
    }
    _RM_FLAGS = {
        'r': '--recursive', 'R': '--recursive', 'f': '--force',
        'v': '--verbose', 'i': '--interactive', 'I': '--interactive',
        'd': '',
    }

    def _copy_or_move(self, args: List[str], name: str, mapping: dict) -> str:
        flags, operands, notes = self._mapped_flags(args, mapping, name)
        command = ' '.join([name] + flags + [self.glob_word(p) for p in operands])
        if len(operands) < 2:
            notes.append(f"{name} needs a source and a destination")
        return self.annotate(command, '; '.join(notes))

    def _convert_cp(self, args: List[str]) -> str:
        return self._copy_or_move(args, 'cp', self._CP_FLAGS)

    def _convert_mv(self, args: List[str]) -> str:
        return self._copy_or_move(args, 'mv', self._MV_FLAGS)

    def _convert_rm(self, args: List[str]) -> str:
        flags, operands, notes = self._mapped_flags(args, self._RM_FLAGS, 'rm')
        command = ' '.join(['rm'] + flags + [self.glob_word(p) for p in operands])
        return self.annotate(command, '; '.join(notes))

    def _convert_rmdir(self, args: List[str]) -> str:
        flags, operands = self.split_flags(args)
        parents = any('p' in self.short_flags(f) or f == '--parents' for f in flags)
        command = ' '.join(['rm'] + (['--recursive'] if parents else []) + [self.glob_word(p) for p in operands])
        return self.annotate(command, 'rmdir only removes empty directories')

    def _convert_mkdir(self, args: List[str]) -> str:
        """mkdir always creates parents, so -p needs no flag"""
        notes = []
        flags = []
        operands = []
        i = 0
        while i < len(args):
            arg = args[i]
            if arg == '-m' and i + 1 < len(args):
                notes.append(f"mode {args[i + 1]} ignored")
                i += 2
                continue
            if arg in ('-v', '--verbose'):
                flags.append('--verbose')
            elif self.is_flag(arg):
                if 'v' in self.short_flags(arg):
                    flags.append('--verbose')
            else:
                operands.append(arg)
            i += 1
        command = ' '.join(['mkdir'] + list(dict.fromkeys(flags)) + [self.quote(p) for p in operands])
        return self.annotate(command, '; '.join(notes))

    def _convert_touch(self, args: List[str]) -> str:
        flags = []
        notes = []
        files = []
        i = 0
        while i < len(args):
            arg = args[i]
            if arg in ('-r', '--reference') and i + 1 < len(args):
                flags.append(f"--reference {self.quote(args[i + 1])}")
                i += 2
                continue
            if arg in ('-d', '-t') and i + 1 < len(args):
                notes.append(f"touch {arg} {args[i + 1]} not supported")
                i += 2
                continue
            if self.is_flag(arg):
                for c in self.short_flags(arg):
                    if c == 'a':
                        flags.append('--access')
                    elif c == 'm':
                        flags.append('--modified')
                    elif c == 'c':
                        flags.append('--no-create')
            else:
                files.append(arg)
            i += 1
        command = ' '.join(['touch'] + list(dict.fromkeys(flags)) + [self.quote(f) for f in files])
        return self.annotate(command, '; '.join(notes))

    # ========================================================================
    # EXTERNAL ONLY
    # ========================================================================

    def _convert_chmod(self, args: List[str]) -> str:
        return self.external('chmod', args)

    def _convert_chown(self, args: List[str]) -> str:
        return self.external('chown', args)

    # ========================================================================
    # PATHS
    # ========================================================================

    def _convert_basename(self, args: List[str]) -> str:
        """
        basename PATH [SUFFIX] / basename -a PATH... / basename -s SUF PATH...
        """
        suffix = None
        multiple = False
        paths = []
        i = 0
        while i < len(args):
            arg = args[i]
            if arg in ('-s', '--suffix') and i + 1 < len(args):
                suffix = args[i + 1]
                multiple = True
                i += 2
                continue
            if arg in ('-a', '--multiple'):
                multiple = True
            elif not self.is_flag(arg):
                paths.append(arg)
            i += 1

        if not paths:
            return self.external('basename', args)
        if not multiple and len(paths) == 2:
            paths, suffix = paths[:1], paths[1]
        elif not multiple:
            paths = paths[:1]

        operation = 'path basename'
        if suffix:
            operation += f" | str replace --regex {nu_string(self.regex_escape(suffix) + '$')} \"\""
        return self.each_path(paths, operation)

    def _convert_dirname(self, args: List[str]) -> str:
        _, paths = self.split_flags(args)
        if not paths:
            return self.external('dirname', args)
        return self.each_path(paths, 'path dirname')

    def _convert_realpath(self, args: List[str]) -> str:
        relative_to = None
        paths = []
        i = 0
        while i < len(args):
            arg = args[i]
            if arg.startswith('--relative-to='):
                relative_to = arg.split('=', 1)[1]
            elif not self.is_flag(arg):
                paths.append(arg)
            i += 1

        if not paths:
            return self.external('realpath', args)
        operation = 'path expand'
        if relative_to:
            operation += f" | path relative-to ({self.value(relative_to)} | path expand)"
        return self.each_path(paths, operation)
