"""
Rust symbol demangling through rustfilt, falling back to llvm-cxxfilt, or to
the raw names when neither is installed.

Symbols are piped through the tool in batches (one process per batch, not per
symbol) and the results are cached. The function locator asks for every
label in every assembly file.
"""
import logging
import re
import shutil
import subprocess
from typing import Dict, Iterable, List, Optional

from ..utils.target import TargetInfo

logger = logging.getLogger(__name__)

# Rust appends ::h<16 hex digits> hash suffix to mangled symbol names
RE_RUST_HASH = re.compile(r"::h[0-9a-f]{16}$")
HASH_SUFFIX_LEN = 19


def has_rustfilt() -> bool:
    """Check if rustfilt is installed."""
    return shutil.which("rustfilt") is not None


def find_demangle_tool() -> Optional[str]:
    """rustfilt first; recent llvm-cxxfilt versions also handle Rust mangling."""
    return shutil.which("rustfilt") or shutil.which("llvm-cxxfilt")


def has_hash(name: str) -> bool:
    """True if `name` ends in `::h` followed by 16 lowercase hex digits."""
    return RE_RUST_HASH.search(name) is not None


def strip_hash(name: str) -> str:
    if has_hash(name):
        return name[:-HASH_SUFFIX_LEN]
    return name


class RustDemangler:
    """
    Demangles symbol names for one target.

    On Linux `@PLT` suffixes are stripped before demangling; afterwards any
    trailing `::h<hash>` is removed.
    """

    def __init__(self, target: TargetInfo, tool: Optional[str] = None):
        self.target = target
        self.tool = tool if tool is not None else find_demangle_tool()
        self._cache: Dict[str, str] = {}
        self._warned = False

    def _prepare(self, name: str) -> str:
        if self.target.is_linux():
            return name.split("@PLT", 1)[0]
        return name

    def _run_tool(self, names: List[str]) -> List[str]:
        if not self.tool:
            if not self._warned:
                logger.warning(
                    "rustfilt not found, Rust symbols stay mangled. Install: cargo install rustfilt"
                )
                self._warned = True
            return names

        try:
            process = subprocess.Popen(
                [self.tool],
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
            )
            stdout, stderr = process.communicate(input="\n".join(names) + "\n")
        except OSError as e:
            logger.warning("failed to run %s: %s", self.tool, e)
            return names

        if process.returncode != 0:
            logger.warning("%s exited with %d: %s", self.tool, process.returncode, stderr.strip())
            return names

        demangled = stdout.splitlines()
        if len(demangled) != len(names):
            logger.debug("%s returned %d lines for %d names", self.tool, len(demangled), len(names))
            return names
        return demangled

    def demangle_many(self, names: Iterable[str]) -> List[str]:
        """Demangle a batch of names with a single tool invocation."""
        names = list(names)
        pending = [n for n in dict.fromkeys(names) if n not in self._cache]

        if pending:
            prepared = [self._prepare(n) for n in pending]
            for raw, demangled in zip(pending, self._run_tool(prepared)):
                self._cache[raw] = strip_hash(demangled)

        return [self._cache[n] for n in names]

    def demangle(self, name: str) -> str:
        if name in self._cache:
            return self._cache[name]
        return self.demangle_many([name])[0]

    __call__ = demangle
