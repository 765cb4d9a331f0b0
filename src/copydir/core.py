"""
Core logic for copydir package.
"""

from __future__ import annotations

import fnmatch
import os
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Union

import pathspec
from colorama import Fore, Style

from .listing import long_listing

# Exceptions
class CopydirError(Exception): ...
class InvalidPathError(CopydirError): ...
class InvalidFilterError(CopydirError): ...
class ConfigFileError(CopydirError): ...
class ClipboardError(CopydirError): ...


class FileReadError(CopydirError):
    """Raised when a selected file cannot be included as text."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Could not read {path}: {reason}")
        self.path = path
        self.reason = reason


# Defaults & helpers
GITIGNORE_NAME = ".gitignore"

DEFAULT_PATTERNS: List[str] = [
    ".git/",          # exclude VCS data
]
DEFAULT_SPEC = pathspec.PathSpec.from_lines("gitwildmatch", DEFAULT_PATTERNS)

EMPTY_SPEC = pathspec.PathSpec.from_lines("gitwildmatch", [])


def say(msg: str, color: str = "", *, stream=None) -> None:
    if stream is None:
        stream = sys.stderr
    if color:
        msg = color + msg + Style.RESET_ALL
    print(msg, file=stream)


def warn(msg: str) -> None:
    say(f"[copydir] ! {msg}", Fore.YELLOW)


def _relative(path: Path, directory: Path) -> Optional[str]:
    try:
        return path.relative_to(directory).as_posix()
    except ValueError:
        return None


# Ignore-file utilities
def load_gitignore(directory: Path) -> "pathspec.PathSpec":
    """Compile *directory*'s ``.gitignore`` into a :class:`pathspec.PathSpec`."""
    gitignore_path = directory / GITIGNORE_NAME
    if not gitignore_path.is_file():
        return EMPTY_SPEC
    with gitignore_path.open("r", encoding="utf-8") as fh:
        patterns = [line.rstrip("\n") for line in fh]
    return pathspec.PathSpec.from_lines("gitwildmatch", patterns)


def load_extra_patterns(config_path: Path) -> "pathspec.PathSpec":
    """Read newline-separated patterns from *config_path* and compile spec."""
    if not config_path.exists():
        raise ConfigFileError(f"Config file '{config_path}' does not exist")
    if not config_path.is_file():
        raise ConfigFileError(f"'{config_path}' is not a file")
    try:
        with config_path.open("r", encoding="utf-8") as fh:
            lines = [
                ln.strip()
                for ln in fh
                if ln.strip() and not ln.lstrip().startswith("#")
            ]
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigFileError(f"Could not read config file '{config_path}': {e}")
    try:
        return pathspec.PathSpec.from_lines("gitwildmatch", lines)
    except ValueError as e:
        raise ConfigFileError(f"Invalid pattern in config file '{config_path}': {e}")


def _gitignore_chain(base: Path) -> List[Path]:
    """Directories whose ``.gitignore`` applies to *base*, outermost first.

    Ancestors are only consulted when *base* sits inside a git work tree;
    the walk stops at the directory holding ``.git``.
    """
    dirs: List[Path] = []
    current = base
    while True:
        dirs.append(current)
        if (current / ".git").exists():
            return list(reversed(dirs))
        if current.parent == current:
            return [base]
        current = current.parent


class IgnoreRules:
    """
    Layered gitignore rules for one traversal.

    Each layer is a ``(directory, spec)`` pair whose patterns are matched
    against paths relative to that directory. Layers are evaluated outermost
    first and the last matching pattern wins, so a nested ``!pattern`` can
    re-include what an outer file excluded. Extra patterns apply relative to
    the base directory even when gitignore handling is disabled.
    """

    def __init__(
        self,
        base: Path,
        layers: Tuple[Tuple[Path, "pathspec.PathSpec"], ...] = (),
        extra_spec: Optional["pathspec.PathSpec"] = None,
        enabled: bool = True,
    ) -> None:
        self.base = base
        self.layers = layers
        self.extra_spec = extra_spec
        self.enabled = enabled

    @classmethod
    def load(
        cls,
        base: Path,
        *,
        enabled: bool = True,
        extra_spec: Optional["pathspec.PathSpec"] = None,
        notices: Optional[List[str]] = None,
    ) -> "IgnoreRules":
        if not enabled:
            return cls(base, (), extra_spec, enabled=False)
        layers: List[Tuple[Path, pathspec.PathSpec]] = [(base, DEFAULT_SPEC)]
        for directory in _gitignore_chain(base):
            spec = _try_load_gitignore(directory, base, notices)
            if spec is not None:
                layers.append((directory, spec))
        return cls(base, tuple(layers), extra_spec, enabled=True)

    def descend(self, directory: Path, notices: Optional[List[str]] = None) -> "IgnoreRules":
        """Return the rules in effect inside *directory* (adds its ``.gitignore``)."""
        if not self.enabled:
            return self
        spec = _try_load_gitignore(directory, self.base, notices)
        if spec is None:
            return self
        return IgnoreRules(
            self.base,
            self.layers + ((directory, spec),),
            self.extra_spec,
            enabled=True,
        )

    def is_ignored(self, path: Path, is_dir: bool = False) -> bool:
        ignored = False
        for directory, spec in self.layers:
            rel = _relative(path, directory)
            if not rel or rel == ".":
                continue
            if is_dir:
                rel += "/"
            for pattern in spec.patterns:
                if pattern.include is not None and pattern.match_file(rel) is not None:
                    ignored = pattern.include
        if ignored:
            return True
        if self.extra_spec is not None:
            rel = _relative(path, self.base)
            if rel and rel != ".":
                return self.extra_spec.match_file(rel + "/" if is_dir else rel)
        return False


def _try_load_gitignore(
    directory: Path, base: Path, notices: Optional[List[str]]
) -> Optional["pathspec.PathSpec"]:
    if not (directory / GITIGNORE_NAME).is_file():
        return None
    try:
        return load_gitignore(directory)
    except (OSError, UnicodeDecodeError, ValueError) as e:
        if notices is not None:
            path = directory / GITIGNORE_NAME
            shown = _relative(path, base) or str(path)
            notices.append(f"Skipping unreadable {shown}: {e}")
        return None


# Filename filter
def _check_class(pattern: str, start: int) -> int:
    """Validate the ``[...]`` class opening at *start*; return the index after it."""
    j = start + 1
    if j < len(pattern) and pattern[j] == "!":
        j += 1
    if j < len(pattern) and pattern[j] == "]":
        j += 1
    while j < len(pattern) and pattern[j] != "]":
        j += 1
    if j >= len(pattern):
        raise InvalidFilterError(
            f"Invalid filter pattern '{pattern}': unclosed character class"
        )
    return j + 1


def compile_filter(pattern: str) -> Callable[[str], bool]:
    """
    Validate a shell-glob *pattern* and return a filename predicate.

    Matching is case-sensitive and applies to the file name only. ``**`` is
    accepted as a whole component and behaves like ``*`` on a single name.
    A reversed range such as ``[z-a]`` is accepted and matches nothing.
    """
    if not pattern:
        raise InvalidFilterError("Invalid filter pattern: pattern is empty")

    i = 0
    n = len(pattern)
    while i < n:
        c = pattern[i]
        if c == "*":
            j = i
            while j < n and pattern[j] == "*":
                j += 1
            run = j - i
            if run > 2:
                raise InvalidFilterError(
                    f"Invalid filter pattern '{pattern}': wildcards are either "
                    "regular `*` or recursive `**`"
                )
            if run == 2:
                starts_component = i == 0 or pattern[i - 1] == "/"
                ends_component = j == n or pattern[j] == "/"
                if not (starts_component and ends_component):
                    raise InvalidFilterError(
                        f"Invalid filter pattern '{pattern}': recursive wildcards "
                        "must form a single path component"
                    )
            i = j
        elif c == "[":
            i = _check_class(pattern, i)
        else:
            i += 1

    regex = re.compile(fnmatch.translate(pattern))
    return lambda name: regex.match(name) is not None


# Selection
@dataclass(frozen=True)
class TraversalConfig:
    base_dir: Path
    recursive: bool = False
    filter_pattern: Optional[str] = None
    use_ignore: bool = True
    extra_spec: Optional["pathspec.PathSpec"] = None


@dataclass
class DirectoryEntry:
    path: Path
    depth: int
    files: List[Path] = field(default_factory=list)
    listing: str = ""


@dataclass
class Selection:
    base: Path
    entries: List[DirectoryEntry] = field(default_factory=list)
    notices: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def files(self) -> List[Path]:
        return [f for entry in self.entries for f in entry.files]


def _validate_base(base_dir: Path) -> Path:
    try:
        base = base_dir.resolve()
    except (OSError, RuntimeError) as e:
        raise InvalidPathError(f"Could not resolve base directory '{base_dir}': {e}")
    if not base.exists():
        raise InvalidPathError(f"Base directory '{base_dir}' does not exist")
    if not base.is_dir():
        raise InvalidPathError(f"Base path '{base_dir}' is not a directory")
    return base


class _Walker:
    def __init__(
        self,
        base: Path,
        recursive: bool,
        matcher: Optional[Callable[[str], bool]],
        notices: List[str],
    ) -> None:
        self.base = base
        self.recursive = recursive
        self.matcher = matcher
        self.notices = notices

    def _rel(self, path: Path) -> str:
        return _relative(path, self.base) or path.as_posix()

    def visit(self, directory: Path, depth: int, rules: IgnoreRules) -> List[DirectoryEntry]:
        """Return the included entries of *directory*'s subtree in pre-order."""
        try:
            with os.scandir(directory) as it:
                children = sorted(it, key=lambda e: e.name)
        except OSError as e:
            if depth == 0:
                raise InvalidPathError(f"Could not read base directory '{directory}': {e}")
            self.notices.append(f"Skipping unreadable directory {self._rel(directory)}: {e}")
            return []

        if depth > 0:
            rules = rules.descend(directory, self.notices)

        files: List[Path] = []
        subdirs: List[Path] = []
        for entry in children:
            path = Path(entry.path)
            try:
                if entry.is_symlink():
                    self.notices.append(f"Skipping symlink {self._rel(path)}")
                    continue
                is_dir = entry.is_dir(follow_symlinks=False)
                is_file = entry.is_file(follow_symlinks=False)
            except OSError as e:
                self.notices.append(f"Skipping {self._rel(path)}: {e}")
                continue

            if is_dir:
                if self.recursive and not rules.is_ignored(path, is_dir=True):
                    subdirs.append(path)
            elif is_file:
                if rules.is_ignored(path):
                    continue
                if self.matcher is not None and not self.matcher(entry.name):
                    continue
                files.append(path)

        nested: List[DirectoryEntry] = []
        for sub in subdirs:
            nested.extend(self.visit(sub, depth + 1, rules))

        if not files and not nested:
            return []
        node = DirectoryEntry(
            path=directory,
            depth=depth,
            files=files,
            listing=long_listing(directory),
        )
        return [node] + nested


def select(config: TraversalConfig) -> Selection:
    """
    Walk ``config.base_dir`` and return the directories and files to copy.

    A directory is part of the result when it directly holds an eligible
    file or, in recursive mode, when any directory beneath it does. Entries
    come in pre-order with each directory's eligible files in name order.
    """
    matcher = None
    if config.filter_pattern is not None:
        matcher = compile_filter(config.filter_pattern)
    base = _validate_base(config.base_dir)

    notices: List[str] = []
    rules = IgnoreRules.load(
        base,
        enabled=config.use_ignore,
        extra_spec=config.extra_spec,
        notices=notices,
    )
    walker = _Walker(base, config.recursive, matcher, notices)
    entries = walker.visit(base, 0, rules)
    return Selection(base=base, entries=entries, notices=notices)


# Output
def _is_binary(data: bytes) -> bool:
    return b"\0" in data


def read_text_file(path: Path) -> str:
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise FileReadError(path, e.strerror or str(e))
    if _is_binary(raw):
        raise FileReadError(path, "binary file")
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        raise FileReadError(path, "not valid UTF-8")


@dataclass
class Rendered:
    text: str
    files_written: int = 0
    skipped: List[FileReadError] = field(default_factory=list)


def _display(path: Path, base: Path, display_root: Union[str, Path]) -> str:
    # joined as text so a typed "." or "dir/" prefix survives
    rel = path.relative_to(base)
    if rel == Path("."):
        return str(display_root)
    return os.path.join(str(display_root), str(rel))


def render_selection(
    selection: Selection,
    display_root: Optional[Union[str, Path]] = None,
    verbose: bool = False,
) -> Rendered:
    """Concatenate listings and file contents for *selection*.

    Files that cannot be read as text are reported and left out; the rest
    of the output is still produced.
    """
    if display_root is None:
        display_root = selection.base

    parts: List[str] = []
    written = 0
    skipped: List[FileReadError] = []
    for entry in selection.entries:
        parts.append(f"\n=== Directory: {_display(entry.path, selection.base, display_root)} ===\n")
        parts.append(entry.listing)
        for p in entry.files:
            shown = _display(p, selection.base, display_root)
            try:
                contents = read_text_file(p)
            except FileReadError as e:
                skipped.append(e)
                warn(f"Could not read {shown}: {e.reason}")
                continue
            if verbose:
                say(f"[copydir] + {shown}")
            parts.append(f"\n=== File: {shown} ===\n")
            parts.append(contents)
            parts.append("\n")
            written += 1

    return Rendered(text="".join(parts), files_written=written, skipped=skipped)
