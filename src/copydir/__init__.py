"""
Copydir - copy directory listings and file contents to the clipboard.

This package walks a base directory, selects files by an optional filename
glob and the project's .gitignore rules, and places a single text snapshot
(directory listings followed by file contents) on the system clipboard for
pasting into a chat tool.
"""

__version__ = "0.1.0"
__author__ = "Copydir Team"
