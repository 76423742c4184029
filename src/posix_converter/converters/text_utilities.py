"""
Text utilities - stream and field processing commands

echo printf cat grep sed cut sort uniq wc head tail tee seq

Each converter maps its command onto a short pipeline of structured
operations over lines:

    grep foo file    -> open --raw file | lines | where $it =~ "foo"
    head -n 5        -> first 5
    cut -d, -f2      -> each { |line| $line | split row "," | select 1 | str join "," }

Without file operands the command reads its pipeline input, so the
translation starts with the structured operation itself.
"""
import re
from collections import namedtuple
from typing import List, Optional, Tuple

from ..errors import ConversionError, ConversionErrorKind
from ..quoting import NuExpression, interpolation_body, join_words, nu_string
from .base import CommandConverter

_PRINTF_SPEC = re.compile(r'%(%|([-+ 0#]*)(\d*)(?:\.(\d+))?([sdifgeExXocub]))')
_ECHO_ESCAPE = re.compile(r'\\([nrt\\])')
_ECHO_ESCAPES = {'n': '\n', 'r': '\r', 't': '\t', '\\': '\\'}

# sed script command: address is (first, last) or None
SedCommand = namedtuple('SedCommand', ['address', 'command', 'argument'])

# Characters whose escaping flips meaning between basic and extended regex
_BRE_SWAPPED = set('(){}+?|')


class TextUtilityConverters(CommandConverter):
    """Stream/field utilities (standard-utility tier)"""

    def __init__(self, logger=None):
        super().__init__(logger)

        self.command_map = {
            # ===== OUTPUT =====
            'echo': self._convert_echo,
            'printf': self._convert_printf,
            'cat': self._convert_cat,
            'tee': self._convert_tee,
            'seq': self._convert_seq,

            # ===== FILTERS =====
            'grep': self._convert_grep,
            'sed': self._convert_sed,
            'cut': self._convert_cut,
            'head': self._convert_head,
            'tail': self._convert_tail,

            # ===== AGGREGATES =====
            'sort': self._convert_sort,
            'uniq': self._convert_uniq,
            'wc': self._convert_wc,
        }

    # ========================================================================
    # HELPERS
    # ========================================================================

    def _read_text(self, files: List[str]) -> str:
        """Whole-file text of one or more files (concatenated like cat)"""
        if len(files) == 1:
            return f"open --raw {self.quote(files[0])}"
        opened = ' '.join(f"(open --raw {self.quote(f)})" for f in files)
        return f"[{opened}] | str join"

    def _read_lines(self, files: List[str]) -> str:
        return f"{self._read_text(files)} | lines"

    @staticmethod
    def _option_value(args: List[str], i: int, flag: str) -> Tuple[Optional[str], int]:
        """
        Value of an option written as '-k 2' or '-k2'.

        Returns (value, next index); value is None when the option is
        missing its argument.
        """
        arg = args[i]
        if arg == flag:
            if i + 1 < len(args):
                return args[i + 1], i + 2
            return None, i + 1
        return arg[len(flag):], i + 1

    # ========================================================================
    # OUTPUT
    # ========================================================================

    def _convert_echo(self, args: List[str]) -> str:
        """
        echo a b c -> print "a b c"

        Arguments are joined with single spaces into one string. -n maps to
        print -n. With -e the escapes \\n \\t \\r \\\\ are decoded before
        quoting and \\c ends the output.
        """
        newline = True
        escapes = False
        i = 0
        while i < len(args) and re.match(r'^-[neE]+$', args[i]):
            if 'n' in args[i]:
                newline = False
            for flag in args[i][1:]:
                if flag in 'eE':
                    escapes = flag == 'e'
            i += 1

        text = join_words(args[i:])
        if escapes and not isinstance(text, NuExpression):
            if '\\c' in text:
                text, newline = text[:text.index('\\c')], False
            text = _ECHO_ESCAPE.sub(lambda m: _ECHO_ESCAPES[m.group(1)], text)

        command = 'print' if newline else 'print -n'
        if not text:
            return f'{command} ""'
        return f"{command} {self.quote(text)}"

    def _convert_printf(self, args: List[str]) -> str:
        """
        printf FORMAT ARG... -> print -n $"..."

        Conversion specs are filled from the arguments in order; a trailing
        \\n in the format becomes a plain print. Width and precision are
        not reproduced.
        """
        if not args:
            return 'print -n ""'

        fmt, values = args[0], args[1:]
        parts = []
        notes = []
        used = 0
        pos = 0
        for match in _PRINTF_SPEC.finditer(fmt):
            parts.append(self._printf_text(fmt[pos:match.start()]))
            pos = match.end()
            if match.group(1) == '%':
                parts.append('%')
                continue
            if match.group(3) or match.group(4):
                notes.append('printf width/precision ignored')
            if used < len(values):
                parts.append(interpolation_body(values[used]))
                used += 1
        parts.append(self._printf_text(fmt[pos:]))

        if used < len(values) and used > 0:
            notes.append('extra printf arguments ignored')

        text = ''.join(parts)
        command = 'print -n'
        if text.endswith('\\n'):
            text = text[:-2]
            command = 'print'

        if '(' in text or used:
            literal = f'$"{text}"'
        else:
            literal = f'"{text}"'
        return self.annotate(f"{command} {literal}", '; '.join(dict.fromkeys(notes)))

    @staticmethod
    def _printf_text(text: str) -> str:
        # Backslash escapes in the format keep their meaning in the target string
        return text.replace('"', '\\"').replace('(', '\\(').replace(')', '\\)')

    def _convert_cat(self, args: List[str]) -> str:
        """
        Translate cat.

        Flags:
        - -n: number all lines
        - -b: number non-blank lines
        - -s: squeeze repeated blank lines
        - -E: mark line ends with $
        - -T: show tabs as ^I
        """
        letters = ''
        files = []
        for arg in args:
            if self.is_flag(arg) and not arg.startswith('--'):
                letters += arg[1:]
            elif arg == '-' or not arg.startswith('-'):
                files.append(arg)

        if not files or files == ['-']:
            command = '$in'
        else:
            command = self._read_text([f for f in files if f != '-'])

        if 's' in letters:
            command += ' | str replace --all --regex "\\n{3,}" "\\n\\n"'
        if 'T' in letters:
            command += ' | str replace --all "\\t" "^I"'
        if 'E' in letters:
            command += ' | lines | each { |line| $line + "$" } | str join (char nl)'
        if 'n' in letters:
            command += ' | lines | enumerate | each { |x| $"($x.index + 1)\\t($x.item)" }'
        elif 'b' in letters:
            command += (' | lines | enumerate | each { |x| if ($x.item | is-empty) { "" }'
                        ' else { $"($x.index + 1)\\t($x.item)" } }')
        return command

    def _convert_tee(self, args: List[str]) -> str:
        flags, files = self.split_flags(args)
        mode = '--append' if any('a' in self.short_flags(f) or f == '--append' for f in flags) else '--force'
        if not files:
            return 'tee { ignore }'
        return ' | '.join(f"tee {{ save {mode} {self.quote(f)} }}" for f in files)

    def _convert_seq(self, args: List[str]) -> str:
        """
        seq [FIRST [INCR]] LAST -> FIRST..LAST or FIRST..NEXT..LAST

        Descending output needs an explicit negative increment, as in seq.
        """
        separator = None
        equal_width = False
        notes = []
        numbers = []

        i = 0
        while i < len(args):
            arg = args[i]
            if arg.startswith('-s'):
                separator, i = self._option_value(args, i, '-s')
                continue
            if arg.startswith('-f'):
                _, i = self._option_value(args, i, '-f')
                notes.append('seq format ignored')
                continue
            if arg == '-w':
                equal_width = True
            else:
                numbers.append(arg)
            i += 1

        values = [self.parse_int(n) for n in numbers]
        if not numbers or len(numbers) > 3 or None in values:
            return self.external('seq', args)

        if len(values) == 1:
            first, step, last = 1, 1, values[0]
        elif len(values) == 2:
            first, step, last = values[0], 1, values[1]
        else:
            first, step, last = values

        if step == 0:
            return self.external('seq', args)
        if (step > 0 and first > last) or (step < 0 and first < last):
            return '[]'

        if step == 1:
            command = f"{first}..{last}"
        else:
            command = f"{first}..{first + step}..{last}"

        if equal_width:
            width = max(len(str(first)), len(str(last)))
            command += f' | each {{ |n| $n | fill --alignment right --character "0" --width {width} }}'
        if separator is not None:
            command += f" | each {{ |n| $n | into string }} | str join {nu_string(separator)}"
        return self.annotate(command, '; '.join(notes))

    # ========================================================================
    # FILTERS
    # ========================================================================

    _GREP_LONG_OPTIONS = {
        '--ignore-case': 'i',
        '--invert-match': 'v',
        '--count': 'c',
        '--quiet': 'q',
        '--silent': 'q',
        '--line-number': 'n',
        '--word-regexp': 'w',
        '--fixed-strings': 'F',
        '--only-matching': 'o',
        '--recursive': 'r',
        '--files-with-matches': 'l',
        '--extended-regexp': 'E',
    }

    def _convert_grep(self, args: List[str]) -> str:
        """
        Translate grep into a line filter.

        -i          -> (?i) regex prefix
        -v          -> !~
        -w          -> \\b...\\b
        -F          -> metacharacters escaped
        -c / -q     -> | length / | is-not-empty
        -n / -o     -> enumerate / parse --regex
        -m N        -> | first N

        Recursive search, context lines, -l and several files are delegated
        to the external grep unchanged.
        """
        options = set()
        pattern = None
        files = []
        max_count = None
        delegate = False

        i = 0
        while i < len(args):
            arg = args[i]
            if arg == '--':
                rest = args[i + 1:]
                if pattern is None and rest:
                    pattern, rest = rest[0], rest[1:]
                files.extend(rest)
                break
            if arg in ('-e', '--regexp') and i + 1 < len(args):
                pattern = args[i + 1]
                i += 2
                continue
            if arg == '-m' and i + 1 < len(args):
                max_count = self.parse_int(args[i + 1])
                i += 2
                continue
            if arg in ('-A', '-B', '-C', '-f') and i + 1 < len(args):
                delegate = True
                i += 2
                continue
            if arg.startswith('--'):
                if arg in self._GREP_LONG_OPTIONS:
                    options.add(self._GREP_LONG_OPTIONS[arg])
                else:
                    delegate = True
            elif self.is_flag(arg):
                for c in arg[1:]:
                    if c in 'ivcqnwFoErRlHhs':
                        options.add(c)
                    else:
                        delegate = True
            elif pattern is None:
                pattern = arg
            else:
                files.append(arg)
            i += 1

        if pattern is None or delegate or len(files) > 1 or options & {'r', 'R', 'l'}:
            return self.external('grep', args)

        regex = self.regex_escape(pattern) if 'F' in options else pattern
        if 'w' in options:
            regex = f"\\b{regex}\\b"
        if 'i' in options:
            regex = f"(?i){regex}"
        operator = '!~' if 'v' in options else '=~'

        stages = [self._read_lines(files)] if files else ['lines']
        if 'o' in options:
            stages.append(f"each {{ |line| $line | parse --regex {self.pattern(f'(?P<match>{regex})')} | get match }}")
            stages.append('flatten')
        elif 'n' in options:
            stages.append(f"enumerate | where $it.item {operator} {self.pattern(regex)}")
            stages.append('each { |x| $"($x.index + 1):($x.item)" }')
        else:
            stages.append(f"where $it {operator} {self.pattern(regex)}")

        if max_count is not None:
            stages.append(f"first {max_count}")
        if 'c' in options:
            stages.append('length')
        elif 'q' in options:
            stages.append('is-not-empty')
        return ' | '.join(stages)

    def _convert_sed(self, args: List[str]) -> str:
        """
        Translate sed scripts into line operations.

        Supported commands: s (g, i, p flags), d, p, q, =, a, i, c, y, w.
        Addresses: N, $, /re/, N,M, N,$. Hold-space commands, branches and
        blocks are annotated. -n, -i, -e and -E/-r are honored; -f script
        files cannot be translated.
        """
        scripts = []
        files = []
        quiet = False
        in_place = False
        extended = False

        i = 0
        while i < len(args):
            arg = args[i]
            if arg in ('-e', '--expression') and i + 1 < len(args):
                scripts.append(args[i + 1])
                i += 2
                continue
            if arg in ('-f', '--file'):
                raise ConversionError(
                    ConversionErrorKind.UNSUPPORTED_FEATURE,
                    'sed script files cannot be translated', command='sed')
            if arg in ('-n', '--quiet', '--silent'):
                quiet = True
            elif arg.startswith('-i') or arg == '--in-place':
                in_place = True
            elif arg in ('-E', '-r', '--regexp-extended'):
                extended = True
            elif self.is_flag(arg):
                quiet = quiet or 'n' in arg[1:]
                extended = extended or 'E' in arg[1:] or 'r' in arg[1:]
            elif not scripts:
                scripts.append(arg)
            else:
                files.append(arg)
            i += 1

        if not scripts:
            return self.external('sed', args)

        commands = []
        for script in scripts:
            commands.extend(self._parse_sed_script(script))

        stages = []
        notes = []
        printed = False
        for command in commands:
            if command.command == 'p' or (command.command == 's' and 'p' in command.argument[2]):
                printed = True
            stage = self._sed_stage(command, quiet, extended, notes)
            if stage:
                stages.append(stage)
        if quiet and not printed:
            stages.append('ignore')
            notes.append('sed -n without p prints nothing')

        if files:
            stages.insert(0, self._read_lines(files))
        if in_place and files:
            stages.append(f"str join (char nl) | save --force {self.quote(files[0])}")
        elif in_place:
            notes.append('sed -i without a file')

        if not stages:
            stages.append('$in')
        return self.annotate(' | '.join(stages), '; '.join(dict.fromkeys(notes)))

    # ---- sed script parsing ---------------------------------------------------

    def _parse_sed_script(self, script: str) -> List[SedCommand]:
        commands = []
        n = len(script)
        i = 0
        while i < n:
            while i < n and script[i] in ' \t\n;':
                i += 1
            if i >= n:
                break

            address, i = self._sed_address(script, i)
            while i < n and script[i] in ' \t':
                i += 1
            if i >= n:
                raise ConversionError(
                    ConversionErrorKind.INVALID_ARGUMENT_SHAPE,
                    f"missing command in sed script: {script}", command='sed')

            command = script[i]
            i += 1

            if command in 'sy':
                if i >= n:
                    raise ConversionError(
                        ConversionErrorKind.INVALID_ARGUMENT_SHAPE,
                        f"unterminated {command} command: {script}", command='sed')
                delimiter = script[i]
                pattern, i = self._sed_delimited(script, i + 1, delimiter)
                replacement, i = self._sed_delimited(script, i, delimiter)
                start = i
                while i < n and script[i] not in ';\n}':
                    i += 1
                commands.append(SedCommand(address, command, (pattern, replacement, script[start:i].strip())))
            elif command in 'aic':
                if i < n and script[i] == '\\':
                    i += 1
                end = script.find('\n', i)
                if end == -1:
                    end = n
                commands.append(SedCommand(address, command, script[i:end].strip()))
                i = end
            elif command in 'wrqQ':
                end = i
                while end < n and script[end] not in ';\n':
                    end += 1
                commands.append(SedCommand(address, command, script[i:end].strip()))
                i = end
            else:
                commands.append(SedCommand(address, command, ''))
        return commands

    def _sed_address(self, script: str, i: int):
        first, i = self._sed_address_part(script, i)
        if first is None:
            return None, i
        last = None
        if i < len(script) and script[i] == ',':
            last, i = self._sed_address_part(script, i + 1)
        return (first, last), i

    def _sed_address_part(self, script: str, i: int):
        if i >= len(script):
            return None, i
        if script[i] == '$':
            return '$', i + 1
        if script[i].isdigit():
            start = i
            while i < len(script) and script[i].isdigit():
                i += 1
            return script[start:i], i
        if script[i] == '/':
            regex, i = self._sed_delimited(script, i + 1, '/')
            return f"/{regex}/", i
        return None, i

    @staticmethod
    def _sed_delimited(script: str, i: int, delimiter: str):
        """Read up to the next unescaped delimiter; returns (text, index after it)"""
        chars = []
        while i < len(script):
            ch = script[i]
            if ch == '\\' and i + 1 < len(script):
                nxt = script[i + 1]
                if nxt == delimiter:
                    chars.append(nxt)
                elif nxt == 'n':
                    chars.append('\n')
                else:
                    chars.append(ch + nxt)
                i += 2
                continue
            if ch == delimiter:
                return ''.join(chars), i + 1
            chars.append(ch)
            i += 1
        raise ConversionError(
            ConversionErrorKind.INVALID_ARGUMENT_SHAPE,
            f"unterminated expression in sed script: {script}", command='sed')

    # ---- sed translation --------------------------------------------------------

    @staticmethod
    def _bre_to_ere(regex: str) -> str:
        """Basic regex -> extended: \\( \\) \\{ \\} \\+ \\? \\| lose the backslash, bare ones gain it"""
        out = []
        i = 0
        while i < len(regex):
            ch = regex[i]
            if ch == '\\' and i + 1 < len(regex):
                nxt = regex[i + 1]
                out.append(nxt if nxt in _BRE_SWAPPED else ch + nxt)
                i += 2
                continue
            out.append('\\' + ch if ch in _BRE_SWAPPED else ch)
            i += 1
        return ''.join(out)

    @staticmethod
    def _sed_replacement(text: str) -> str:
        """\\1 -> $1, & -> $0, \\& -> &, literal $ doubled"""
        out = []
        i = 0
        while i < len(text):
            ch = text[i]
            if ch == '\\' and i + 1 < len(text):
                nxt = text[i + 1]
                if nxt.isdigit():
                    out.append(f"${{{nxt}}}")
                else:
                    out.append('\n' if nxt == 'n' else nxt)
                i += 2
                continue
            if ch == '&':
                out.append('${0}')
            elif ch == '$':
                out.append('$$')
            else:
                out.append(ch)
            i += 1
        return ''.join(out)

    def _sed_regex(self, regex: str, extended: bool) -> str:
        return regex if extended else self._bre_to_ere(regex)

    def _sed_condition(self, address, extended: bool) -> Optional[str]:
        """Boolean over an enumerate record ($it.index, $it.item), None if inexpressible"""
        first, last = address

        def part(value: str) -> Optional[str]:
            if value.isdigit():
                return f"$it.index == {int(value) - 1}"
            if value.startswith('/'):
                return f"$it.item =~ {self.pattern(self._sed_regex(value[1:-1], extended))}"
            return None

        if last is None:
            return part(first)
        if first.isdigit() and last.isdigit():
            return f"$it.index >= {int(first) - 1} and $it.index <= {int(last) - 1}"
        if first.isdigit() and last == '$':
            return f"$it.index >= {int(first) - 1}"
        return None

    def _sed_stage(self, command: SedCommand, quiet: bool, extended: bool, notes: List[str]) -> Optional[str]:
        name = command.command
        address = command.address
        condition = self._sed_condition(address, extended) if address else None
        last_line = address == ('$', None)

        if address and condition is None and not last_line:
            notes.append(f"sed address {','.join(p for p in address if p)} not supported")
            return None

        if name == 's':
            return self._sed_substitute(command.argument, condition, quiet, extended, notes)

        if name == 'd':
            if last_line:
                return 'drop 1'
            if condition:
                return f"enumerate | where not ({condition}) | get item"
            return 'where false'

        if name == 'p':
            if last_line:
                return 'last 1' if quiet else None
            if not quiet:
                if condition:
                    return f"enumerate | each {{ |it| if {condition} {{ [$it.item $it.item] }} else {{ [$it.item] }} }} | flatten"
                return 'each { |line| [$line $line] } | flatten'
            if condition:
                return f"enumerate | where {condition} | get item"
            return None

        if name in ('q', 'Q'):
            if address and address[0].isdigit() and address[1] is None:
                count = int(address[0]) - (1 if name == 'Q' else 0)
                return f"first {count}"
            if last_line:
                return None
            return 'first 1' if name == 'q' else 'first 0'

        if name == '=':
            return 'enumerate | each { |it| [($it.index + 1 | into string) $it.item] } | flatten'

        if name in 'aic':
            text = nu_string(command.argument)
            if name == 'a':
                hit, miss = f"[$it.item {text}]", '[$it.item]'
            elif name == 'i':
                hit, miss = f"[{text} $it.item]", '[$it.item]'
            else:
                hit, miss = f"[{text}]", '[$it.item]'
            if condition:
                return f"enumerate | each {{ |it| if {condition} {{ {hit} }} else {{ {miss} }} }} | flatten"
            return f"each {{ |it| {hit.replace('$it.item', '$it')} }} | flatten"

        if name == 'y':
            source, target, _ = command.argument
            if len(source) != len(target):
                raise ConversionError(
                    ConversionErrorKind.INVALID_ARGUMENT_SHAPE,
                    'y command strings have different lengths', command='sed')
            replaces = ' | '.join(f"str replace --all {nu_string(a)} {nu_string(b)}"
                                  for a, b in zip(source, target) if a != b)
            return f"each {{ |line| $line | {replaces} }}" if replaces else None

        if name == 'w':
            return f"tee {{ save --force {self.quote(command.argument)} }}"

        notes.append(f"sed command '{name}' not supported")
        return None

    def _sed_substitute(self, argument, condition, quiet: bool, extended: bool, notes: List[str]) -> str:
        pattern, replacement, flags = argument
        regex = self._sed_regex(pattern, extended)
        if 'i' in flags or 'I' in flags:
            regex = f"(?i){regex}"
        if any(c.isdigit() for c in flags):
            notes.append('sed occurrence number ignored')

        all_flag = ' --all' if 'g' in flags else ''
        operation = f"str replace{all_flag} --regex {self.pattern(regex)} {nu_string(self._sed_replacement(replacement))}"

        if condition:
            return (f"enumerate | each {{ |it| if {condition} {{ $it.item | {operation} }}"
                    f" else {{ $it.item }} }}")
        if quiet and 'p' in flags:
            return f"where $it =~ {self.pattern(regex)} | each {{ |line| $line | {operation} }}"
        return f"each {{ |line| $line | {operation} }}"

    # ------------------------------------------------------------------------

    def _convert_cut(self, args: List[str]) -> str:
        """
        Translate cut.

        -d D -f LIST  -> split row D | select ... | str join D
        -c/-b LIST    -> str substring
        -s            -> only lines containing the delimiter
        LIST items are N, N-M, N- and -M (1-based).
        """
        delimiter = '\t'
        fields = None
        chars = None
        only_delimited = False
        files = []

        i = 0
        while i < len(args):
            arg = args[i]
            if arg.startswith('-d'):
                delimiter, i = self._option_value(args, i, '-d')
                continue
            if arg.startswith('-f'):
                fields, i = self._option_value(args, i, '-f')
                continue
            if arg.startswith('-c') or arg.startswith('-b'):
                chars, i = self._option_value(args, i, arg[:2])
                continue
            if arg == '-s':
                only_delimited = True
            elif not self.is_flag(arg):
                files.append(arg)
            i += 1

        if delimiter is None or (fields is None and chars is None):
            return self.annotate(self.external('cut', args), 'cut needs -f, -c or -b')

        ranges = self._parse_ranges(fields if fields is not None else chars)
        if not ranges:
            raise ConversionError(
                ConversionErrorKind.INVALID_ARGUMENT_SHAPE,
                f"invalid list: {fields if fields is not None else chars}", command='cut')

        stages = [self._read_lines(files)] if files else ['lines']
        d = nu_string(delimiter)

        if fields is not None:
            if only_delimited:
                stages.append(f"where ($it | str contains {d})")
            stages.append(f"each {{ |line| $line | split row {d} | {self._field_selection(ranges)} | str join {d} }}")
        else:
            substrings = [self._substring_range(start, end) for start, end in ranges]
            if len(substrings) == 1:
                stages.append(f"str substring {substrings[0]}")
            else:
                parts = ' '.join(f"($line | str substring {r})" for r in substrings)
                stages.append(f"each {{ |line| [{parts}] | str join }}")
        return ' | '.join(stages)

    @staticmethod
    def _parse_ranges(spec: str) -> List[Tuple[int, Optional[int]]]:
        ranges = []
        for item in spec.split(','):
            item = item.strip()
            match = re.match(r'^(\d*)(-?)(\d*)$', item)
            if not item or not match:
                return []
            start, dash, end = match.groups()
            if not dash:
                ranges.append((int(start), int(start)))
            else:
                ranges.append((int(start) if start else 1, int(end) if end else None))
        return ranges

    @staticmethod
    def _field_selection(ranges) -> str:
        if len(ranges) == 1 and ranges[0][1] is None:
            return f"skip {ranges[0][0] - 1}"
        indexes = []
        for start, end in ranges:
            if end is None:
                end = start
            indexes.extend(str(n - 1) for n in range(start, end + 1))
        return f"select {' '.join(dict.fromkeys(indexes))}"

    @staticmethod
    def _substring_range(start: int, end: Optional[int]) -> str:
        if end is None:
            return f"{start - 1}.."
        return f"{start - 1}..{end - 1}"

    def _convert_head(self, args: List[str]) -> str:
        return self._take_lines(args, 'head')

    def _convert_tail(self, args: List[str]) -> str:
        return self._take_lines(args, 'tail')

    def _take_lines(self, args: List[str], which: str) -> str:
        """
        Shared head/tail translation.

        -n N / -N   -> first N / last N
        -n +N       -> skip N-1 (tail)
        -n -N       -> drop N (head)
        -c N        -> characters instead of lines
        -f          -> annotated (tail only)
        Several files get ==> name <== headers like the originals.
        """
        count = '10'
        by_chars = False
        quiet = False
        notes = []
        files = []

        i = 0
        while i < len(args):
            arg = args[i]
            if arg.startswith('-n') or arg.startswith('--lines='):
                if arg.startswith('--lines='):
                    count, i = arg.split('=', 1)[1], i + 1
                else:
                    count, i = self._option_value(args, i, '-n')
                continue
            if arg.startswith('-c'):
                count, i = self._option_value(args, i, '-c')
                by_chars = True
                continue
            if re.match(r'^-\d+$', arg):
                count = arg[1:]
            elif arg in ('-f', '-F', '--follow'):
                notes.append('follow mode not supported')
            elif arg in ('-q', '--quiet', '--silent'):
                quiet = True
            elif not self.is_flag(arg):
                files.append(arg)
            i += 1

        if count is None or not re.match(r'^[+-]?\d+$', count):
            return self.external(which, args)

        number = int(count.lstrip('+'))
        if which == 'head':
            if count.startswith('-'):
                take = f"drop {-number}"
            else:
                take = f"first {number}"
        else:
            if count.startswith('+'):
                take = f"skip {max(number - 1, 0)}"
            else:
                take = f"last {abs(number)}"

        if by_chars:
            take = f"split chars | {take} | str join"

        reader = 'open --raw {}' if by_chars else 'open --raw {} | lines'
        if not files:
            command = take
        elif len(files) == 1:
            command = f"{reader.format(self.quote(files[0]))} | {take}"
        else:
            statements = []
            for f in files:
                if not quiet:
                    statements.append(f'print "==> {f} <=="')
                statements.append(f"{reader.format(self.quote(f))} | {take} | print")
            command = '; '.join(statements)
        return self.annotate(command, '; '.join(notes))

    # ========================================================================
    # AGGREGATES
    # ========================================================================

    def _convert_sort(self, args: List[str]) -> str:
        """
        Translate sort.

        -r/-n/-f    -> sort --reverse/--natural/--ignore-case
        -u          -> | uniq
        -k N -t D   -> split column D | sort-by columnN, joined back with D
        -o FILE     -> | save --force FILE
        """
        letters = ''
        key = None
        separator = None
        output = None
        files = []

        i = 0
        while i < len(args):
            arg = args[i]
            if arg.startswith('-k'):
                key, i = self._option_value(args, i, '-k')
                continue
            if arg.startswith('-t'):
                separator, i = self._option_value(args, i, '-t')
                continue
            if arg.startswith('-o'):
                output, i = self._option_value(args, i, '-o')
                continue
            if arg == '--reverse':
                letters += 'r'
            elif arg == '--numeric-sort':
                letters += 'n'
            elif arg == '--unique':
                letters += 'u'
            elif arg == '--ignore-case':
                letters += 'f'
            elif self.is_flag(arg) and not arg.startswith('--'):
                letters += arg[1:]
            elif not self.is_flag(arg):
                files.append(arg)
            i += 1

        options = ''
        if 'n' in letters or 'g' in letters or 'h' in letters:
            options += ' --natural'
        if 'f' in letters:
            options += ' --ignore-case'
        if 'r' in letters:
            options += ' --reverse'

        stages = [self._read_lines(files)] if files else []
        column = re.match(r'^(\d+)', key) if key else None
        if column:
            if separator is not None:
                split, joiner = f"split column {nu_string(separator)}", nu_string(separator)
            else:
                split, joiner = 'split column --regex "\\\\s+"', '" "'
            stages.append(split)
            stages.append(f"sort-by column{column.group(1)}{options}")
            stages.append(f"each {{ |row| $row | values | str join {joiner} }}")
        else:
            stages.append(f"sort{options}")

        if 'u' in letters:
            stages.append('uniq')
        if output:
            stages.append(f"str join (char nl) | save --force {self.quote(output)}")
        return ' | '.join(stages)

    def _convert_uniq(self, args: List[str]) -> str:
        letters = ''
        notes = []
        operands = []

        i = 0
        while i < len(args):
            arg = args[i]
            if arg in ('-f', '-s', '-w') and i + 1 < len(args):
                notes.append(f"uniq {arg} {args[i + 1]} not supported")
                i += 2
                continue
            if self.is_flag(arg) and not arg.startswith('--'):
                letters += arg[1:]
            elif not self.is_flag(arg):
                operands.append(arg)
            i += 1

        options = ''
        if 'c' in letters:
            options += ' --count'
        if 'd' in letters:
            options += ' --repeated'
        if 'u' in letters:
            options += ' --unique'
        if 'i' in letters:
            options += ' --ignore-case'

        stages = []
        if operands and operands[0] != '-':
            stages.append(self._read_lines(operands[:1]))
        stages.append(f"uniq{options}")
        if len(operands) > 1:
            stages.append(f"to text | save --force {self.quote(operands[1])}")
        return self.annotate(' | '.join(stages), '; '.join(notes))

    _WC_COUNTS = [
        ('l', 'lines', 'lines | length'),
        ('w', 'words', 'split words | length'),
        ('m', 'chars', 'str length'),
        ('c', 'bytes', 'into binary | length'),
    ]

    def _convert_wc(self, args: List[str]) -> str:
        """
        wc -l -> lines | length; several counts -> a record of counts
        """
        letters = ''
        files = []
        for arg in args:
            if arg == '--lines':
                letters += 'l'
            elif arg == '--words':
                letters += 'w'
            elif arg == '--bytes':
                letters += 'c'
            elif arg == '--chars':
                letters += 'm'
            elif self.is_flag(arg) and not arg.startswith('--'):
                letters += arg[1:]
            elif not self.is_flag(arg):
                files.append(arg)

        selected = [c for c in self._WC_COUNTS if c[0] in letters]
        if not selected:
            selected = [c for c in self._WC_COUNTS if c[0] in 'lwc']

        if len(selected) == 1:
            operation = selected[0][2]
        else:
            fields = ', '.join(f"{name}: ($text | {op})" for _, name, op in selected)
            operation = f"collect {{ |text| {{{fields}}} }}"

        if not files:
            return operation
        if len(files) == 1:
            return f"open --raw {self.quote(files[0])} | {operation}"
        names = ' '.join(self.value(f) for f in files)
        return f"[{names}] | each {{ |file| {{file: $file, count: (open --raw $file | {operation})}} }}"
