"""
CLI entrypoint for copydir package.
"""
import argparse
import sys
from pathlib import Path
from typing import List, Optional

from colorama import Fore, init as colorama_init

from . import __version__
from .clipboard import copy_to_clipboard
from .core import (
    TraversalConfig,
    load_extra_patterns,
    select,
    render_selection,
    warn,
    say,
    InvalidPathError,
    InvalidFilterError,
    ConfigFileError,
    ClipboardError,
)

SUCCESS_MESSAGE = "Directory contents and file contents have been copied to clipboard!"


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="copydir",
        description="Copy directory contents to clipboard.",
    )
    p.add_argument(
        "-b",
        "--base-dir",
        default=".",
        help="Base directory to start processing (default: .)",
    )
    p.add_argument(
        "-r",
        "--recursive",
        action="store_true",
        help="Recursively process subdirectories",
    )
    p.add_argument(
        "-f",
        "--filter",
        metavar="PATTERN",
        help='Filter files by pattern (e.g., "*.py")',
    )
    p.add_argument(
        "-x",
        "--x11",
        action="store_true",
        help="Use xsel instead of the default clipboard backend",
    )
    p.add_argument(
        "--no-ignore",
        action="store_true",
        help="Do not skip files listed in .gitignore",
    )
    p.add_argument(
        "--config",
        type=Path,
        help="Path to a file with extra ignore patterns (one per line)",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p.parse_args(argv)


def _fail(e: Exception) -> None:
    say(f"Error: {e}", Fore.RED)
    sys.exit(1)


def main(argv: Optional[List[str]] = None) -> None:
    colorama_init()
    try:
        ns = _parse_args(argv)

        extra_spec = None
        if ns.config:
            try:
                extra_spec = load_extra_patterns(ns.config.resolve())
                if ns.verbose:
                    say(f"[copydir] Loaded extra patterns from {ns.config}")
            except ConfigFileError as e:
                _fail(e)

        config = TraversalConfig(
            base_dir=Path(ns.base_dir),
            recursive=ns.recursive,
            filter_pattern=ns.filter,
            use_ignore=not ns.no_ignore,
            extra_spec=extra_spec,
        )

        if ns.verbose:
            say(f"[copydir] Scanning {ns.base_dir} …")

        try:
            selection = select(config)
        except (InvalidPathError, InvalidFilterError) as e:
            _fail(e)

        if ns.verbose:
            for notice in selection.notices:
                warn(notice)
            say(
                f"[copydir] {len(selection.entries)} directories, "
                f"{len(selection.files)} files selected."
            )
        if not selection.entries:
            warn("No matching files found.")

        rendered = render_selection(selection, display_root=ns.base_dir, verbose=ns.verbose)

        try:
            copy_to_clipboard(rendered.text, use_xsel=ns.x11)
        except ClipboardError as e:
            _fail(e)

        say(SUCCESS_MESSAGE, Fore.GREEN, stream=sys.stdout)
        if ns.filter:
            print(f"Filtered files using pattern: {ns.filter}")
        if ns.recursive:
            print(
                "Processed subdirectories recursively "
                "(showing only directories with matching files)"
            )
        if ns.verbose:
            say(
                f"[copydir] Done. {rendered.files_written} files copied, "
                f"{len(rendered.skipped)} skipped, {len(rendered.text)} characters."
            )

    except KeyboardInterrupt:
        print("\nCancelled.", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
