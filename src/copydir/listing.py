"""
Long-format directory listings, in the layout of ``ls -l``.
"""

from __future__ import annotations

import datetime
import os
import stat
import time
from pathlib import Path
from typing import List, NamedTuple, Optional

try:
    import grp
    import pwd
except ImportError:  # pragma: no cover - not available on Windows
    grp = pwd = None  # type: ignore[assignment]

# ls switches to the year column for timestamps older than ~6 months
SIX_MONTHS = 365.2425 * 24 * 60 * 60 / 2


class _Row(NamedTuple):
    mode: str
    nlink: str
    owner: str
    group: str
    size: str
    mtime: str
    name: str


def _owner_name(uid: int) -> str:
    if pwd is None:
        return str(uid)
    try:
        return pwd.getpwuid(uid).pw_name
    except KeyError:
        return str(uid)


def _group_name(gid: int) -> str:
    if grp is None:
        return str(gid)
    try:
        return grp.getgrgid(gid).gr_name
    except KeyError:
        return str(gid)


def format_mtime(mtime: float, now: Optional[float] = None) -> str:
    """Render *mtime* the way ``ls -l`` does (``Mon DD HH:MM`` or ``Mon DD  YYYY``)."""
    if now is None:
        now = time.time()
    dt = datetime.datetime.fromtimestamp(mtime)
    if now - SIX_MONTHS < mtime <= now + 60:
        return f"{dt:%b} {dt.day:>2} {dt:%H:%M}"
    return f"{dt:%b} {dt.day:>2}  {dt.year}"


def _row_for(entry: os.DirEntry, now: float) -> Optional[_Row]:
    try:
        st = entry.stat(follow_symlinks=False)
    except OSError:
        return None
    name = entry.name
    if stat.S_ISLNK(st.st_mode):
        try:
            name = f"{name} -> {os.readlink(entry.path)}"
        except OSError:
            pass
    return _Row(
        mode=stat.filemode(st.st_mode),
        nlink=str(st.st_nlink),
        owner=_owner_name(st.st_uid),
        group=_group_name(st.st_gid),
        size=str(st.st_size),
        mtime=format_mtime(st.st_mtime, now),
        name=name,
    )


def _blocks(entry: os.DirEntry) -> int:
    try:
        st = entry.stat(follow_symlinks=False)
    except OSError:
        return 0
    blocks = getattr(st, "st_blocks", None)
    if blocks is None:
        # no block count on this platform; approximate from the size
        return (st.st_size + 1023) // 1024 * 2
    return blocks


def long_listing(directory: Path, now: Optional[float] = None) -> str:
    """
    Return the ``ls -l`` style listing of *directory*'s direct entries.

    Hidden entries (leading ``.``) are left out, as ``ls`` does without
    ``-a``. Entries whose metadata cannot be read are skipped, and a
    directory that cannot be listed yields an empty string.
    """
    if now is None:
        now = time.time()
    try:
        with os.scandir(directory) as it:
            entries = sorted(
                (e for e in it if not e.name.startswith(".")),
                key=lambda e: e.name,
            )
    except OSError:
        return ""

    rows: List[_Row] = []
    total_blocks = 0
    for entry in entries:
        row = _row_for(entry, now)
        if row is None:
            continue
        rows.append(row)
        total_blocks += _blocks(entry)

    lines = [f"total {(total_blocks + 1) // 2}"]
    if rows:
        w_link = max(len(r.nlink) for r in rows)
        w_owner = max(len(r.owner) for r in rows)
        w_group = max(len(r.group) for r in rows)
        w_size = max(len(r.size) for r in rows)
        for r in rows:
            lines.append(
                f"{r.mode} {r.nlink:>{w_link}} {r.owner:<{w_owner}} "
                f"{r.group:<{w_group}} {r.size:>{w_size}} {r.mtime} {r.name}"
            )
    return "\n".join(lines) + "\n"
