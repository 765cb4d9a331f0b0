from pathlib import Path

import pytest


def build_tree(root: Path, layout: dict) -> Path:
    """Create files and directories under *root* from a nested dict.

    String values become file contents, dict values become directories.
    """
    root.mkdir(parents=True, exist_ok=True)
    for name, value in layout.items():
        target = root / name
        if isinstance(value, dict):
            build_tree(target, value)
        elif isinstance(value, bytes):
            target.write_bytes(value)
        else:
            target.write_text(value, encoding="utf-8")
    return root


@pytest.fixture
def make_tree(tmp_path):
    def _make(layout, name="project"):
        return build_tree(tmp_path / name, layout)
    return _make


@pytest.fixture
def rust_tree(make_tree):
    """
    project/
      a.rs
      b.txt
      sub/
        c.rs
    """
    return make_tree({
        "a.rs": "fn a() {}\n",
        "b.txt": "plain text\n",
        "sub": {"c.rs": "fn c() {}\n"},
    })
