import datetime
import os
import time

import pytest

from copydir.listing import format_mtime, long_listing


def test_long_listing_lists_direct_entries(make_tree):
    root = make_tree({
        "b.txt": "hello",
        "a.py": "x = 1\n",
        ".hidden": "secret",
        "sub": {"nested.txt": "deep"},
    })
    lines = long_listing(root).splitlines()

    assert lines[0].startswith("total ")
    names = [line.split()[-1] for line in lines[1:]]
    assert names == ["a.py", "b.txt", "sub"]
    assert "nested.txt" not in long_listing(root)


def test_long_listing_columns(make_tree):
    root = make_tree({"data.bin": b"12345", "dir": {}})
    lines = long_listing(root).splitlines()[1:]
    file_line = next(line for line in lines if line.endswith("data.bin"))
    dir_line = next(line for line in lines if line.endswith("dir"))

    assert file_line.startswith("-")
    assert dir_line.startswith("d")
    assert file_line.split()[4] == "5"


def test_long_listing_aligns_size_column(make_tree):
    root = make_tree({"big.txt": "x" * 12345, "tiny.txt": "x"})
    lines = long_listing(root).splitlines()[1:]
    widths = {line.index(line.split()[5]) for line in lines}
    assert len(widths) == 1


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
def test_long_listing_shows_symlink_target(make_tree):
    root = make_tree({"target.txt": "t"})
    os.symlink("target.txt", root / "alias")
    listing = long_listing(root)
    assert "alias -> target.txt" in listing
    line = next(line for line in listing.splitlines() if "alias" in line)
    assert line.startswith("l")


def test_long_listing_empty_directory(tmp_path):
    assert long_listing(tmp_path) == "total 0\n"


def test_long_listing_missing_directory(tmp_path):
    assert long_listing(tmp_path / "gone") == ""


def test_format_mtime_recent_uses_clock():
    now = time.time()
    stamp = now - 3600
    dt = datetime.datetime.fromtimestamp(stamp)
    assert format_mtime(stamp, now) == f"{dt:%b} {dt.day:>2} {dt:%H:%M}"


def test_format_mtime_old_uses_year():
    now = time.time()
    stamp = now - 400 * 24 * 3600
    dt = datetime.datetime.fromtimestamp(stamp)
    assert format_mtime(stamp, now) == f"{dt:%b} {dt.day:>2}  {dt.year}"
