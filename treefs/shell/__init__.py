"""
treefs Shell Module

Provides the interactive command-line shell:
- Command parsing
- Built-in commands mapped onto filesystem operations
"""

from .parser import CommandParser, ParsedCommand
from .builtins import BuiltinCommands
from .shell import Shell, create_shell

__all__ = [
    'CommandParser',
    'ParsedCommand',
    'BuiltinCommands',
    'Shell',
    'create_shell',
]
