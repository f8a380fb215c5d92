"""
treefs Shell Module

The interactive command-line front end of the filesystem.
"""

import sys
from typing import Optional, TextIO

from .builtins import BuiltinCommands
from .parser import CommandParser
from treefs.core.config_loader import ShellConfig, get_config
from treefs.filesystem.vfs import FileSystem, create_filesystem
from treefs.logger import Logger, get_logger


class Shell:
    """
    treefs Interactive Shell.

    Example:
        >>> shell = Shell(create_filesystem())
        >>> shell.execute_line('mkdir /docs')
        ok
        0
        >>> shell.run()
    """

    def __init__(
        self,
        filesystem: Optional[FileSystem] = None,
        config: Optional[ShellConfig] = None,
        output: Optional[TextIO] = None
    ):
        self._config = config or get_config().shell
        self._filesystem = filesystem or create_filesystem()
        self._output = output
        self._logger = get_logger('shell')
        self._parser = CommandParser(history_size=self._config.history_size)
        self._builtins = BuiltinCommands(self)
        self._running = False
        self._exiting = False

    @property
    def filesystem(self) -> FileSystem:
        return self._filesystem

    @filesystem.setter
    def filesystem(self, value: FileSystem) -> None:
        self._filesystem = value
        self._logger.info("Filesystem replaced", context={'nodes': value.get_stats()['total_nodes']})

    @property
    def parser(self) -> CommandParser:
        return self._parser

    @property
    def logger(self) -> Logger:
        return self._logger

    @property
    def prompt(self) -> str:
        return self._config.prompt

    def write(self, text: str = "") -> None:
        """Print a line of output."""
        print(text, file=self._output or sys.stdout)

    def run(self) -> None:
        """
        Run the interactive shell.

        This is the main REPL loop; it ends on 'exit', EOF or Ctrl-D.
        """
        self._running = True

        while self._running and not self._exiting:
            try:
                line = input(self.prompt)
            except EOFError:
                self.write()
                break
            except KeyboardInterrupt:
                self.write("^C")
                continue

            try:
                self.execute_line(line)
            except Exception as e:
                self._logger.exception("Command crashed", context={'line': line})
                self.write(f"err: internal error: {e}")

        self._running = False

    def execute_line(self, line: str) -> int:
        """
        Execute a command line.

        Returns:
            Exit code
        """
        try:
            cmd = self._parser.parse(line)
        except ValueError as e:
            self.write(f"err: {e}")
            return 2

        if cmd is None:
            return 0

        return self._builtins.execute(cmd.command, cmd.args)

    def run_script(self, script: str) -> int:
        """
        Run several commands, one per line.

        Returns:
            Last exit code
        """
        exit_code = 0
        for line in script.splitlines():
            if self._exiting:
                break
            exit_code = self.execute_line(line)
        return exit_code

    def request_exit(self) -> None:
        """Request the shell to exit."""
        self._exiting = True

    def stop(self) -> None:
        """Stop the shell."""
        self._running = False


def create_shell(filesystem: Optional[FileSystem] = None) -> Shell:
    """Factory function to create a shell."""
    return Shell(filesystem)
