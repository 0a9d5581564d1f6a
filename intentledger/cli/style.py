"""
Terminal styling shared by the CLI commands.
"""

import sys


class Color:
    """
    Minimal ANSI color wrapper.
    Auto-disables when not a TTY or --no-color is passed.
    """
    _on: bool = True

    @classmethod
    def configure(cls, enabled: bool) -> None:
        cls._on = enabled and sys.stdout.isatty()

    @classmethod
    def _wrap(cls, code: str, s: str) -> str:
        return f"\033[{code}m{s}\033[0m" if cls._on else s

    @classmethod
    def green(cls, s: str) -> str:
        return cls._wrap("32", s)

    @classmethod
    def red(cls, s: str) -> str:
        return cls._wrap("31", s)

    @classmethod
    def yellow(cls, s: str) -> str:
        return cls._wrap("33", s)

    @classmethod
    def cyan(cls, s: str) -> str:
        return cls._wrap("36", s)

    @classmethod
    def bold(cls, s: str) -> str:
        return cls._wrap("1", s)

    @classmethod
    def dim(cls, s: str) -> str:
        return cls._wrap("2", s)


def row_ok(label: str, value: str) -> str:
    return f"  {Color.dim(f'{label:<16}')}  {Color.green('✅')}  {value}"


def row_fail(label: str, value: str) -> str:
    return f"  {Color.dim(f'{label:<16}')}  {Color.red('❌')}  {value}"


def row_info(label: str, value: str) -> str:
    return f"  {Color.dim(f'{label:<16}')}     {Color.dim(value)}"
