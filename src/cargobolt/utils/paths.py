"""
Path utilities that work on both `/` and `\\` separated paths.

Paths coming out of debug info were recorded on the machine that built the
code (possibly another OS), so they are treated as plain strings rather than
host Path objects.
"""
import ntpath
import os
import posixpath
import re
from typing import List, Optional

RE_SEPARATORS = re.compile(r"[\\/]+")


def components(path: str) -> List[str]:
    return [c for c in RE_SEPARATORS.split(path) if c]


def separator(path: str) -> str:
    return "\\" if "\\" in path and "/" not in path else "/"


def is_absolute(path: str) -> bool:
    return posixpath.isabs(path) or ntpath.isabs(path)


def _find(path: str, sub_path: str) -> Optional[int]:
    """Index of the component right after the first occurrence of `sub_path`."""
    haystack = components(path)
    needle = components(sub_path)
    if not needle:
        return 0
    for i in range(len(haystack) - len(needle) + 1):
        if haystack[i:i + len(needle)] == needle:
            return i + len(needle)
    return None


def contains(path: str, sub_path: str) -> bool:
    """Does `path` contain the components of `sub_path`, contiguously?"""
    return _find(path, sub_path) is not None


def after(path: str, sub_path: str) -> str:
    """The part of `path` that follows `sub_path`."""
    idx = _find(path, sub_path)
    if idx is None:
        raise ValueError(f"'{path}' does not contain '{sub_path}'")
    return separator(path).join(components(path)[idx:])


def display_path(path: str, rust_src_component: str, cwd: Optional[str] = None) -> str:
    """
    Shorten `path` for display.

    Standard library files are shown relative to the rust-src component
    (`library/core/src/...`), files of the current project relative to the
    working directory. Anything else is returned unchanged.
    """
    if not is_absolute(path):
        return path
    cwd = cwd if cwd is not None else os.getcwd()
    if contains(path, rust_src_component):
        return after(path, rust_src_component)
    if contains(path, cwd):
        return after(path, cwd)
    return path
