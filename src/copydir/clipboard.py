"""
Clipboard transport: pyperclip by default, ``xsel`` on request.
"""

from __future__ import annotations

import subprocess

import pyperclip

from .core import ClipboardError

XSEL_COMMAND = ["xsel", "-b"]


def _copy_with_xsel(text: str) -> None:
    try:
        subprocess.run(XSEL_COMMAND, input=text.encode("utf-8"), check=True)
    except FileNotFoundError:
        raise ClipboardError("Failed to write clipboard: 'xsel' is not installed")
    except subprocess.CalledProcessError as e:
        raise ClipboardError(f"Failed to write clipboard: xsel exited with status {e.returncode}")
    except OSError as e:
        raise ClipboardError(f"Failed to write clipboard: {e}")


def copy_to_clipboard(text: str, use_xsel: bool = False) -> None:
    """Place *text* on the system clipboard or raise :class:`ClipboardError`."""
    if use_xsel:
        _copy_with_xsel(text)
        return
    try:
        pyperclip.copy(text)
    except pyperclip.PyperclipException as e:
        raise ClipboardError(f"Failed to set clipboard contents: {e}")
