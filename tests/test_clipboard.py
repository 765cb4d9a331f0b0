import subprocess
from unittest.mock import patch

import pyperclip
import pytest

from copydir.clipboard import XSEL_COMMAND, copy_to_clipboard
from copydir.core import ClipboardError


def test_default_backend_uses_pyperclip():
    with patch("copydir.clipboard.pyperclip.copy") as mock_copy:
        copy_to_clipboard("snapshot")
    mock_copy.assert_called_once_with("snapshot")


def test_pyperclip_failure_becomes_clipboard_error():
    failure = pyperclip.PyperclipException("no clipboard mechanism")
    with patch("copydir.clipboard.pyperclip.copy", side_effect=failure):
        with pytest.raises(ClipboardError, match="no clipboard mechanism"):
            copy_to_clipboard("snapshot")


def test_xsel_backend_pipes_text():
    with patch("copydir.clipboard.subprocess.run") as mock_run, \
         patch("copydir.clipboard.pyperclip.copy") as mock_copy:
        copy_to_clipboard("héllo", use_xsel=True)
    mock_run.assert_called_once_with(XSEL_COMMAND, input="héllo".encode("utf-8"), check=True)
    mock_copy.assert_not_called()


def test_xsel_missing_binary():
    with patch("copydir.clipboard.subprocess.run", side_effect=FileNotFoundError("xsel")):
        with pytest.raises(ClipboardError, match="not installed"):
            copy_to_clipboard("x", use_xsel=True)


def test_xsel_non_zero_exit():
    error = subprocess.CalledProcessError(returncode=2, cmd=XSEL_COMMAND)
    with patch("copydir.clipboard.subprocess.run", side_effect=error):
        with pytest.raises(ClipboardError, match="status 2"):
            copy_to_clipboard("x", use_xsel=True)
