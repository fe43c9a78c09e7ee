"""
Source correlation: the Rust lines that the debug locations of a function
point to.

Only the referenced lines (plus short gaps between them) are read, each file
once. Standard library paths recorded on the machine that built the
toolchain are moved under the local sysroot's rust-src component.
"""
import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Set

from ..exceptions import IncompleteFileTableError, SourceLineError
from ..utils import paths
from .ast import File, Function, Loc

logger = logging.getLogger(__name__)

# Gaps shorter than this between two referenced lines are read as well
SOURCE_GAP_THRESHOLD = 5

# Prefix of std paths in very old toolchains built on Travis CI
LEGACY_CI_PREFIX = "travis/build/rust-lang/rust"

STD_CRATES = {
    "alloc",
    "backtrace",
    "core",
    "panic_abort",
    "panic_unwind",
    "portable-simd",
    "proc_macro",
    "std",
    "stdarch",
    "test",
    "unwind",
}


@dataclass
class SourceFile:
    ast: File
    # line number -> text; None until read
    lines: Dict[int, Optional[str]] = field(default_factory=dict)

    def line(self, line_idx: int) -> Optional[str]:
        return self.lines.get(line_idx)


@dataclass
class SourceFiles:
    files: Dict[int, SourceFile] = field(default_factory=dict)

    def line_at(self, file_index: int, line_idx: int) -> Optional[str]:
        f = self.files.get(file_index)
        if f is None:
            return None
        return f.line(line_idx)

    def line(self, loc: Loc) -> Optional[str]:
        return self.line_at(loc.file_index, loc.file_line)

    def file_path(self, loc: Loc) -> Optional[str]:
        f = self.files.get(loc.file_index)
        return f.ast.path if f is not None else None


@dataclass
class Correlation:
    sources: SourceFiles
    # Paths that do not exist on disk and were dropped
    missing: List[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.missing


def referenced_lines(function: Function) -> Dict[int, Set[int]]:
    """file index -> line numbers referenced by the function's locations."""
    refs: Dict[int, Set[int]] = {}
    for stmt in function.statements:
        loc = stmt if isinstance(stmt, Loc) else stmt.rust_loc
        if loc is not None:
            refs.setdefault(loc.file_index, set()).add(loc.file_line)
    return refs


def fill_gaps(lines: Iterable[int], threshold: int = SOURCE_GAP_THRESHOLD) -> List[int]:
    """
    Add the line numbers between two referenced lines that are less than
    `threshold` apart, so short unannotated stretches still show up.
    """
    ordered = sorted(set(lines))
    result = list(ordered)
    for prev, nxt in zip(ordered, ordered[1:]):
        # line 0 means "no line"
        if prev != 0 and 1 < nxt - prev < threshold:
            result.extend(range(prev + 1, nxt))
    return sorted(result)


def std_source_tail(path: str) -> Optional[List[str]]:
    """
    The components of `path` starting at the standard library directory
    (`library/core/...`, `src/libcore/...`), or None for non-std paths.
    """
    if paths.contains(path, LEGACY_CI_PREFIX):
        return paths.components(paths.after(path, LEGACY_CI_PREFIX))
    comps = paths.components(path)
    for i, comp in enumerate(comps[:-1]):
        nxt = comps[i + 1]
        if comp == "library" and nxt in STD_CRATES:
            return comps[i:]
        if comp == "src" and nxt.startswith("lib") and nxt[3:] in STD_CRATES:
            return comps[i:]
    return None


def correct_rust_paths(files: Dict[int, SourceFile], sysroot: Callable[[], str]) -> None:
    """
    Rewrite std paths that do not exist locally to point into
    `<sysroot>/lib/rustlib/src/rust/`. The sysroot is queried lazily.
    """
    root: Optional[str] = None
    for f in files.values():
        if os.path.exists(f.ast.path):
            continue
        tail = std_source_tail(f.ast.path)
        if tail is None:
            continue
        if root is None:
            root = sysroot()
            logger.debug("sysroot: %s", root)
        corrected = os.path.join(root, "lib", "rustlib", "src", "rust", *tail)
        logger.debug("correcting path %s -> %s", f.ast.path, corrected)
        f.ast.path = corrected


def _resolve_relative(files: Dict[int, SourceFile], base_dir: Optional[str]) -> None:
    if base_dir is None:
        return
    for f in files.values():
        if not paths.is_absolute(f.ast.path):
            candidate = os.path.join(base_dir, f.ast.path)
            if os.path.exists(candidate):
                f.ast.path = candidate


def _read_lines(f: SourceFile) -> None:
    wanted = sum(1 for idx in f.lines if idx != 0)
    filled = 0
    with open(f.ast.path, "r", errors="replace") as fh:
        for line_idx, text in enumerate(fh, start=1):
            if line_idx in f.lines:
                f.lines[line_idx] = text.strip()
                filled += 1
                if filled == wanted:
                    break


def correlate(
    function: Function,
    file_table: Dict[int, File],
    sysroot: Callable[[], str],
    gap_threshold: int = SOURCE_GAP_THRESHOLD,
    base_dir: Optional[str] = None,
) -> Correlation:
    """
    Load the source lines referenced by `function`.

    Args:
        function: The located function.
        file_table: file index -> File, complete for every location.
        sysroot: Returns the local toolchain sysroot; only called when a
            standard library path has to be corrected.
        gap_threshold: See fill_gaps.
        base_dir: Directory that relative paths are resolved against.

    Returns:
        The loaded lines plus the paths that had to be dropped because they
        do not exist on disk.

    Raises:
        IncompleteFileTableError: a location refers to an unknown file index.
        SourceLineError: a referenced line is past the end of its file.
    """
    files: Dict[int, SourceFile] = {}
    for file_index, line_numbers in referenced_lines(function).items():
        entry = file_table.get(file_index)
        if entry is None:
            raise IncompleteFileTableError(function.id, [file_index], list(file_table))
        lines = fill_gaps(line_numbers, gap_threshold)
        # Copy: the function keeps the build-time path
        files[file_index] = SourceFile(ast=replace(entry), lines={l: None for l in lines})

    _resolve_relative(files, base_dir)
    correct_rust_paths(files, sysroot)

    missing = []
    for file_index in list(files):
        path = files[file_index].ast.path
        if not Path(path).exists():
            missing.append(path)
            del files[file_index]

    if missing:
        logger.warning(
            "could not find the source files: %s. Is the rust-src component installed? "
            "(rustup component add rust-src)",
            ", ".join(missing),
        )

    for f in files.values():
        _read_lines(f)
        for line_idx, text in f.lines.items():
            if text is None and line_idx != 0:
                raise SourceLineError(f.ast.path, line_idx)

    return Correlation(sources=SourceFiles(files), missing=missing)
