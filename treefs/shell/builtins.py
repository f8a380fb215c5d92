"""
Shell Built-in Commands

Each command maps onto one filesystem operation. Mutating commands
reply ``ok`` or ``err: <reason>``; query commands print their result.
"""

from typing import Callable, List

from treefs.exceptions import FileSystemException, InvalidArgumentError
from treefs.filesystem.descriptors import OpenMode, Whence
from treefs.filesystem.metadata import format_attributes, format_time, parse_attributes
from treefs.filesystem.persistence import load_image, save_image
from treefs.logger import Logger, LogLevel


HELP_TEXT = """\
Directories:
  mkdir PATH...          Create directories (parents as needed)
  ls [PATH]              List a directory (default: current)
  cd [PATH]              Change directory (default: /)
  pwd                    Print the current directory
  rmdir PATH             Remove an empty directory
  find TERM              Search names below the current directory

Files:
  create PATH            Create an empty file
  write PATH DATA...     Write DATA at offset 0
  read PATH              Print a file's content
  rm PATH                Remove a file
  mv OLD NEW             Rename or move
  touch PATH             Update modified/accessed time

Metadata:
  stat PATH              Show metadata
  attrib PATH [MASK]     Show or set attributes (letters HRSA or a number)

Descriptors:
  open PATH [r|w|rw]     Open a file, prints the descriptor
  close FD               Close a descriptor
  fread FD LEN           Read at the cursor
  fwrite FD DATA...      Write at the cursor
  seek FD OFFSET [set|cur|end]

Session:
  save FILE              Save the tree to a JSON image
  load FILE              Replace the tree with a saved image
  stats                  Show filesystem statistics
  history                Show command history
  logs [LEVEL] [COUNT]    Show recent log records (default: last 20)
  help                   Show this help
  exit                   Leave the shell
"""

_WHENCE_NAMES = {
    'set': Whence.SET,
    'cur': Whence.CUR,
    'end': Whence.END,
}

_READ_CHUNK = 1024


class BuiltinCommands:
    """
    Built-in shell commands.

    Commands receive their argument list and return an exit code.
    """

    def __init__(self, shell):
        """
        Initialize built-in commands.

        Args:
            shell: The shell instance
        """
        self._shell = shell
        self._commands: dict[str, Callable[[List[str]], int]] = {
            'help': self.cmd_help,
            'exit': self.cmd_exit,
            'quit': self.cmd_exit,
            'mkdir': self.cmd_mkdir,
            'ls': self.cmd_ls,
            'cd': self.cmd_cd,
            'pwd': self.cmd_pwd,
            'rmdir': self.cmd_rmdir,
            'find': self.cmd_find,
            'create': self.cmd_create,
            'write': self.cmd_write,
            'read': self.cmd_read,
            'rm': self.cmd_rm,
            'mv': self.cmd_mv,
            'touch': self.cmd_touch,
            'stat': self.cmd_stat,
            'attrib': self.cmd_attrib,
            'open': self.cmd_open,
            'close': self.cmd_close,
            'fread': self.cmd_fread,
            'fwrite': self.cmd_fwrite,
            'seek': self.cmd_seek,
            'save': self.cmd_save,
            'load': self.cmd_load,
            'stats': self.cmd_stats,
            'history': self.cmd_history,
            'logs': self.cmd_logs,
        }

    @property
    def fs(self):
        return self._shell.filesystem

    def _print(self, text: str = "") -> None:
        self._shell.write(text)

    def get_commands(self) -> dict[str, Callable[[List[str]], int]]:
        """Get all built-in commands."""
        return self._commands

    def is_builtin(self, name: str) -> bool:
        """Check if a command is built-in."""
        return name in self._commands

    def execute(self, name: str, args: List[str]) -> int:
        """
        Execute a built-in command.

        Filesystem errors are reported as ``err: ...`` and exit code 1.

        Returns:
            Exit code
        """
        cmd = self._commands.get(name)
        if cmd is None:
            self._print("Unknown Command")
            return 127
        try:
            return cmd(args)
        except FileSystemException as e:
            self._shell.logger.debug(
                f"{name} failed",
                context={'error': type(e).__name__, 'code': int(e.error_code)}
            )
            self._print(f"err: {e.message}")
            return 1
        except OSError as e:
            self._print(f"err: {e.strerror or e}")
            return 1

    def _usage(self, text: str) -> int:
        self._print(f"usage: {text}")
        return 2

    def _ok(self) -> int:
        self._print("ok")
        return 0

    @staticmethod
    def _parse_int(text: str, what: str) -> int:
        try:
            return int(text, 0)
        except ValueError as e:
            raise InvalidArgumentError(f"{what} must be an integer: {text}") from e

    # Command implementations

    def cmd_help(self, args: List[str]) -> int:
        """Display help information."""
        self._print(HELP_TEXT.rstrip('\n'))
        return 0

    def cmd_exit(self, args: List[str]) -> int:
        """Exit the shell."""
        self._shell.request_exit()
        return 0

    def cmd_mkdir(self, args: List[str]) -> int:
        if not args:
            return self._usage("mkdir PATH...")
        for path in args:
            self.fs.make_directory_path(path)
        return self._ok()

    def cmd_ls(self, args: List[str]) -> int:
        """List directory contents."""
        path = args[0] if args else None
        for entry in self.fs.list_directory(path):
            self._print(entry.display_name)
        return 0

    def cmd_cd(self, args: List[str]) -> int:
        self.fs.change_directory(args[0] if args else '/')
        return 0

    def cmd_pwd(self, args: List[str]) -> int:
        self._print(self.fs.current_directory())
        return 0

    def cmd_rmdir(self, args: List[str]) -> int:
        if len(args) != 1:
            return self._usage("rmdir PATH")
        self.fs.remove_empty_directory(args[0])
        return self._ok()

    def cmd_find(self, args: List[str]) -> int:
        """Search names below the current directory."""
        if len(args) != 1:
            return self._usage("find TERM")
        matches = self.fs.search(args[0])
        for path in matches:
            self._print(path)
        noun = "match" if len(matches) == 1 else "matches"
        self._print(f"{len(matches)} {noun}")
        return 0

    def cmd_create(self, args: List[str]) -> int:
        if len(args) != 1:
            return self._usage("create PATH")
        self.fs.create_file(args[0])
        return self._ok()

    def cmd_write(self, args: List[str]) -> int:
        if len(args) < 2:
            return self._usage("write PATH DATA...")
        data = ' '.join(args[1:]).encode('utf-8')
        self._print(str(self.fs.write_file(args[0], 0, data)))
        return 0

    def cmd_read(self, args: List[str]) -> int:
        """Print a whole file."""
        if len(args) != 1:
            return self._usage("read PATH")
        chunks = []
        offset = 0
        while True:
            chunk = self.fs.read_file(args[0], offset, _READ_CHUNK)
            if not chunk:
                break
            chunks.append(chunk)
            offset += len(chunk)
        self._print(b''.join(chunks).decode('utf-8', errors='replace'))
        return 0

    def cmd_rm(self, args: List[str]) -> int:
        if len(args) != 1:
            return self._usage("rm PATH")
        self.fs.remove_file(args[0])
        return self._ok()

    def cmd_mv(self, args: List[str]) -> int:
        if len(args) != 2:
            return self._usage("mv OLD NEW")
        self.fs.rename_or_move(args[0], args[1])
        return self._ok()

    def cmd_touch(self, args: List[str]) -> int:
        if len(args) != 1:
            return self._usage("touch PATH")
        self.fs.touch(args[0])
        return self._ok()

    def cmd_stat(self, args: List[str]) -> int:
        """Show a node's metadata."""
        if len(args) != 1:
            return self._usage("stat PATH")
        info = self.fs.get_info(args[0])
        self._print(f"Name:       {info.name or '/'}")
        self._print(f"Type:       {'Directory' if info.is_directory else 'File'}")
        if info.is_directory:
            self._print(f"Children:   {info.child_count}")
        else:
            self._print(f"Size:       {info.size}")
        self._print(f"Attributes: {format_attributes(info.attributes)}")
        self._print(f"Created:    {format_time(info.created)}")
        self._print(f"Modified:   {format_time(info.modified)}")
        self._print(f"Accessed:   {format_time(info.accessed)}")
        return 0

    def cmd_attrib(self, args: List[str]) -> int:
        if len(args) == 1:
            self._print(format_attributes(self.fs.get_info(args[0]).attributes))
            return 0
        if len(args) != 2:
            return self._usage("attrib PATH [MASK]")
        self.fs.set_attributes(args[0], parse_attributes(args[1]))
        return self._ok()

    def cmd_open(self, args: List[str]) -> int:
        if len(args) not in (1, 2):
            return self._usage("open PATH [r|w|rw]")
        mode = args[1] if len(args) == 2 else OpenMode.READ
        self._print(str(self.fs.open(args[0], mode)))
        return 0

    def cmd_close(self, args: List[str]) -> int:
        if len(args) != 1:
            return self._usage("close FD")
        self.fs.close(self._parse_int(args[0], "FD"))
        return self._ok()

    def cmd_fread(self, args: List[str]) -> int:
        if len(args) != 2:
            return self._usage("fread FD LEN")
        data = self.fs.read(self._parse_int(args[0], "FD"), self._parse_int(args[1], "LEN"))
        self._print(data.decode('utf-8', errors='replace'))
        return 0

    def cmd_fwrite(self, args: List[str]) -> int:
        if len(args) < 2:
            return self._usage("fwrite FD DATA...")
        data = ' '.join(args[1:]).encode('utf-8')
        self._print(str(self.fs.write(self._parse_int(args[0], "FD"), data)))
        return 0

    def cmd_seek(self, args: List[str]) -> int:
        if len(args) not in (2, 3):
            return self._usage("seek FD OFFSET [set|cur|end]")
        whence_name = args[2].lower() if len(args) == 3 else 'set'
        if whence_name not in _WHENCE_NAMES:
            raise InvalidArgumentError(f"Unknown whence: {args[2]}")
        position = self.fs.seek(
            self._parse_int(args[0], "FD"),
            self._parse_int(args[1], "OFFSET"),
            _WHENCE_NAMES[whence_name]
        )
        self._print(str(position))
        return 0

    def cmd_save(self, args: List[str]) -> int:
        if len(args) != 1:
            return self._usage("save FILE")
        save_image(self.fs, args[0])
        return self._ok()

    def cmd_load(self, args: List[str]) -> int:
        if len(args) != 1:
            return self._usage("load FILE")
        self._shell.filesystem = load_image(args[0], config=self.fs.config)
        return self._ok()

    def cmd_stats(self, args: List[str]) -> int:
        for key, value in self.fs.get_stats().items():
            self._print(f"{key}: {value}")
        return 0

    def cmd_history(self, args: List[str]) -> int:
        for number, line in enumerate(self._shell.parser.get_history(), start=1):
            self._print(f"{number:5d}  {line}")
        return 0

    def cmd_logs(self, args: List[str]) -> int:
        """Show log records kept in memory, optionally from LEVEL up."""
        level = None
        limit = 20
        for arg in args:
            if arg.isdigit():
                limit = int(arg)
            elif arg.upper() in LogLevel.__members__:
                level = LogLevel[arg.upper()]
            else:
                return self._usage("logs [LEVEL] [COUNT]")

        for entry in Logger.get_recent_logs(level=level, limit=limit):
            self._print(f"{format_time(entry.created)} {entry}")
        return 0
