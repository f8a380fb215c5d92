#!/usr/bin/env python3
"""
treefs - entry point.

Startup sequence:
1. Load configuration (optional JSON file)
2. Initialize logging
3. Create the filesystem, or load it from an image
4. Run the shell interactively, or run a script file
"""

import argparse
import sys
from typing import List, Optional

from treefs.core.config_loader import ConfigLoader
from treefs.exceptions import CoreException, FileSystemException
from treefs.filesystem.persistence import load_image, save_image
from treefs.filesystem.vfs import create_filesystem
from treefs.logger import LogLevel, Logger, get_logger
from treefs.shell.shell import Shell


def build_parser() -> argparse.ArgumentParser:
    """Construct the argument parser for the treefs CLI."""
    p = argparse.ArgumentParser(
        prog="treefs",
        description="In-memory hierarchical filesystem with an interactive shell.",
    )
    p.add_argument(
        "-c", "--config",
        dest="config_path",
        help="JSON configuration file",
        default=None,
    )
    p.add_argument(
        "-i", "--image",
        dest="image_path",
        help="load the tree from a saved JSON image",
        default=None,
    )
    p.add_argument(
        "-s", "--script",
        dest="script_path",
        help="run commands from a file instead of the interactive prompt",
        default=None,
    )
    p.add_argument(
        "--save-on-exit",
        dest="save_path",
        help="write the tree to this image when the shell exits",
        default=None,
    )
    p.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="log debug messages to stderr",
    )
    return p


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for treefs.

    Returns:
        Process exit code
    """
    args = build_parser().parse_args(argv)

    loader = ConfigLoader()
    try:
        config = loader.load(args.config_path) if args.config_path else loader.config
    except CoreException as e:
        print(f"treefs: {e}", file=sys.stderr)
        return 1

    level = LogLevel.DEBUG if args.verbose else LogLevel[config.logging.level.upper()]
    Logger.initialize(
        level=level,
        log_file=config.logging.log_file,
        console_output=config.logging.console_output,
    )
    logger = get_logger('main')

    try:
        if args.image_path:
            fs = load_image(args.image_path, config=config.filesystem)
        else:
            fs = create_filesystem(config.filesystem)
    except (FileSystemException, OSError) as e:
        print(f"treefs: cannot load image: {e}", file=sys.stderr)
        return 1

    shell = Shell(fs, config=config.shell)
    exit_code = 0

    try:
        if args.script_path:
            with open(args.script_path, 'r', encoding='utf-8') as f:
                exit_code = shell.run_script(f.read())
        else:
            shell.run()
    except OSError as e:
        print(f"treefs: cannot read script: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\n\nInterrupted")
    finally:
        if args.save_path:
            try:
                save_image(shell.filesystem, args.save_path)
            except OSError as e:
                logger.error("Saving image failed", context={'path': args.save_path, 'error': e})
                exit_code = 1

    return exit_code


if __name__ == '__main__':
    sys.exit(main())
