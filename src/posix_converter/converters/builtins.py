"""
Builtin converters - shell intrinsics (highest lookup priority)

cd exit true false jobs kill pwd read test [ export unset alias source . wait
"""
from typing import List

from ..constants import (
    FILE_TEST_PREDICATES, STRING_TEST_PREDICATES,
    NUMERIC_TEST_OPERATORS, STRING_TEST_OPERATORS, KILL_SIGNALS,
)
from ..errors import ConversionError, ConversionErrorKind
from ..quoting import is_identifier, nu_variable, split_assignment
from .base import CommandConverter

SIGNAL_NUMBERS = {name: number for number, name in enumerate(KILL_SIGNALS.split(), start=1)}


class BuiltinConverters(CommandConverter):
    """
    Shell builtins.

    test/[ produce boolean expressions; the structural layer relies on this
    when it turns `[ ... ] && cmd` into `if <expr> { cmd }`.
    """

    def __init__(self, logger=None):
        super().__init__(logger)

        self.command_map = {
            # ===== DIRECT EQUIVALENTS =====
            'cd': self._convert_cd,
            'exit': self._convert_exit,
            'true': self._convert_true,
            'false': self._convert_false,
            'pwd': self._convert_pwd,
            'source': self._convert_source,
            '.': self._convert_source,

            # ===== PREDICATES =====
            'test': self._convert_test,
            '[': self._convert_test,

            # ===== ENVIRONMENT =====
            'export': self._convert_export,
            'unset': self._convert_unset,
            'alias': self._convert_alias,
            'read': self._convert_read,

            # ===== JOB CONTROL =====
            'jobs': self._convert_jobs,
            'kill': self._convert_kill,
            'wait': self._convert_wait,
        }

    # ========================================================================
    # DIRECT EQUIVALENTS
    # ========================================================================

    def _convert_cd(self, args: List[str]) -> str:
        _, operands = self.split_flags(args)
        if args and args[0] == '-':
            return 'cd -'
        if not operands or operands[0] == '~':
            return 'cd'
        return f"cd {self.quote(operands[0])}"

    def _convert_exit(self, args: List[str]) -> str:
        if not args:
            return 'exit'
        code = self.parse_int(args[0])
        if code is None:
            if args[0].startswith('$'):
                return f"exit {self.quote(args[0])}"
            return self.annotate('exit 1', f"non-numeric exit status: {args[0]}")
        return f"exit {code}"

    def _convert_true(self, args: List[str]) -> str:
        return 'true'

    def _convert_false(self, args: List[str]) -> str:
        return 'false'

    def _convert_pwd(self, args: List[str]) -> str:
        flags, _ = self.split_flags(args)
        if '-P' in flags:
            return 'pwd | path expand'
        return 'pwd'

    def _convert_source(self, args: List[str]) -> str:
        if not args:
            return self.annotate('', 'source: missing file operand')
        path = args[0]
        command = f"source {self.quote(path)}"
        if len(args) > 1:
            command = self.annotate(command, 'arguments to sourced scripts are not passed')
        elif not path.endswith('.nu'):
            command = self.annotate(command, 'source expects a converted .nu script')
        return command

    # ========================================================================
    # PREDICATES
    # ========================================================================

    def _convert_test(self, args: List[str]) -> str:
        """
        Translate test / [ into a boolean expression.

        Arity rules:
            0 args -> false
            1 arg  -> non-empty string test
            2 args -> unary operator (-f, -d, -z, ...)
            3 args -> binary comparison (=, -eq, -nt, ...)
        '!' negates, -a / -o combine sub-expressions (-o binds loosest).
        """
        if args and args[-1] == ']':
            args = args[:-1]
        return self._test_expression(args)

    def _test_expression(self, args: List[str]) -> str:
        if not args:
            return 'false'

        for connective, keyword in (('-o', 'or'), ('-a', 'and')):
            if connective in args[1:-1]:
                index = args.index(connective, 1)
                left = self._test_expression(args[:index])
                right = self._test_expression(args[index + 1:])
                return f"({left} {keyword} {right})"

        if args[0] == '!' and len(args) > 1:
            return f"(not {self._test_expression(args[1:])})"

        if len(args) == 1:
            return f"({self.value(args[0])} | is-not-empty)"

        if len(args) == 2:
            return self._unary_test(args[0], args[1])

        if len(args) == 3:
            return self._binary_test(args[0], args[1], args[2])

        return self.annotate('false', f"unsupported test expression: {' '.join(args)}")

    def _unary_test(self, operator: str, operand: str) -> str:
        if operator in FILE_TEST_PREDICATES:
            return FILE_TEST_PREDICATES[operator].format(path=self.value(operand))
        if operator in STRING_TEST_PREDICATES:
            return STRING_TEST_PREDICATES[operator].format(value=self.value(operand))
        return self.annotate('false', f"unsupported test operator: {operator}")

    def _binary_test(self, left: str, operator: str, right: str) -> str:
        lhs = self.value(left)
        rhs = self.value(right)

        if operator in NUMERIC_TEST_OPERATORS:
            return f"(({lhs} | into int) {NUMERIC_TEST_OPERATORS[operator]} ({rhs} | into int))"
        if operator in STRING_TEST_OPERATORS:
            return f"({lhs} {STRING_TEST_OPERATORS[operator]} {rhs})"
        if operator == '=~':
            return f"({lhs} =~ {rhs})"
        if operator == '-nt':
            return f"((ls {self.quote(left)} | get 0.modified) > (ls {self.quote(right)} | get 0.modified))"
        if operator == '-ot':
            return f"((ls {self.quote(left)} | get 0.modified) < (ls {self.quote(right)} | get 0.modified))"
        if operator == '-ef':
            return f"(({lhs} | path expand) == ({rhs} | path expand))"
        return self.annotate('false', f"unsupported test operator: {operator}")

    # ========================================================================
    # ENVIRONMENT
    # ========================================================================

    def _convert_export(self, args: List[str]) -> str:
        """
        export NAME=value -> $env.NAME = value

        Names are kept as written: exported variables always live in $env.
        """
        flags, operands = self.split_flags(args)
        if not operands:
            return '$env'

        statements = []
        for operand in operands:
            name, sep, value = split_assignment(operand)
            if not is_identifier(name):
                raise ConversionError(
                    ConversionErrorKind.INVALID_ARGUMENT_SHAPE,
                    f"not a valid identifier: {name}", command='export')
            if sep:
                statements.append(f"$env.{name} = {self.value(value)}")
            elif name.isupper():
                statements.append(f"$env.{name} = ($env.{name}? | default \"\")")
            else:
                statements.append(f"$env.{name} = ${name}")
        return '; '.join(statements)

    def _convert_unset(self, args: List[str]) -> str:
        flags, names = self.split_flags(args)
        if not names:
            return self.annotate('', 'unset: nothing to unset')
        if '-f' in flags:
            return self.annotate('', f"custom commands cannot be removed: {' '.join(names)}")

        statements = []
        for name in names:
            if name.isupper():
                statements.append(f"hide-env {name}")
            else:
                statements.append(f"{nu_variable(name)} = null")
        return '; '.join(statements)

    def _convert_alias(self, args: List[str]) -> str:
        if not args:
            return 'scope aliases'

        statements = []
        for arg in args:
            name, sep, value = arg.partition('=')
            if not sep:
                statements.append(f"scope aliases | where name == {self.value(name)}")
                continue
            if not name or not value:
                raise ConversionError(
                    ConversionErrorKind.INVALID_ARGUMENT_SHAPE,
                    f"malformed alias: {arg}", command='alias')
            statements.append(f"alias {name} = {value}")
        return '; '.join(statements)

    def _convert_read(self, args: List[str]) -> str:
        """
        Translate read.

        -p prompt   -> input "prompt"
        -s          -> input -s (no echo)
        -t / -d     -> annotated, no equivalent
        one NAME    -> NAME bound to the line
        NAME...     -> line split into words, one per name
        """
        prompt = None
        silent = False
        notes = []
        names = []

        i = 0
        while i < len(args):
            arg = args[i]
            if arg in ('-p', '-t', '-d', '-n', '-u') and i + 1 < len(args):
                if arg == '-p':
                    prompt = args[i + 1]
                elif arg == '-t':
                    notes.append(f"timeout {args[i + 1]}s ignored")
                elif arg == '-d':
                    notes.append(f"delimiter {args[i + 1]!r} ignored")
                else:
                    notes.append(f"read {arg} ignored")
                i += 2
                continue
            if self.is_flag(arg):
                if 's' in arg[1:]:
                    silent = True
                i += 1
                continue
            names.append(arg)
            i += 1

        command = 'input'
        if silent:
            command += ' -s'
        if prompt is not None:
            command += f" {self.value(prompt)}"

        if not names:
            result = command
        elif len(names) == 1:
            result = self._bind(names[0], f"({command})")
        else:
            bindings = [f"let fields = ({command} | split words)"]
            for index, name in enumerate(names):
                bindings.append(self._bind(name, f"($fields | get {index}? | default \"\")"))
            result = '; '.join(bindings)

        return self.annotate(result, '; '.join(notes))

    @staticmethod
    def _bind(name: str, expression: str) -> str:
        if name.isupper():
            return f"$env.{name} = {expression}"
        return f"let {name} = {expression}"

    # ========================================================================
    # JOB CONTROL
    # ========================================================================

    def _convert_jobs(self, args: List[str]) -> str:
        flags, specs = self.split_flags(args)
        letters = ''.join(self.short_flags(f) for f in flags)

        command = 'job list'
        if specs:
            ids = [s.lstrip('%') for s in specs]
            condition = ' or '.join(f"id == {i}" for i in ids if i.isdigit())
            if condition:
                command += f" | where {condition}"
        if 'p' in letters:
            command += ' | get pids | flatten'
        return command

    def _convert_kill(self, args: List[str]) -> str:
        """
        kill [-s SIG | -SIG | -N] pid... / %job

        Signal names map to their numbers (kill --signal takes a number);
        TERM is the default and is left implicit.
        """
        if not args:
            return self.annotate('', 'Usage: kill [-signal] pid...')

        if args[0] in ('-l', '-L'):
            return self.annotate('', f"Signal list: {KILL_SIGNALS}")

        signal = None
        targets = []
        i = 0
        while i < len(args):
            arg = args[i]
            if arg in ('-s', '-n') and i + 1 < len(args):
                signal = args[i + 1]
                i += 2
                continue
            if self.is_flag(arg) and not targets:
                signal = arg[1:]
                i += 1
                continue
            targets.append(arg)
            i += 1

        number = self._signal_number(signal) if signal else None
        if signal and number is None:
            self.logger.debug(f"Unknown signal {signal}, using default")

        flag = f" --signal {number}" if number and number != 15 else ''

        statements = []
        pids = []
        for target in targets:
            if target.startswith('%'):
                statements.append(f"job kill {target[1:]}")
            else:
                pids.append(target)

        if len(pids) == 1:
            statements.append(f"kill{flag} {self.quote(pids[0])}")
        elif pids:
            statements.append(f"[{self.quote_all(pids)}] | each {{ |pid| kill{flag} $pid }}")

        return '; '.join(statements)

    @staticmethod
    def _signal_number(signal: str):
        if signal.isdigit():
            return int(signal)
        name = signal.upper()
        if name.startswith('SIG'):
            name = name[3:]
        return SIGNAL_NUMBERS.get(name)

    def _convert_wait(self, args: List[str]) -> str:
        return self.annotate('', 'wait: background jobs are not awaited')
