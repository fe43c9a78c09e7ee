"""
Target triple classification.

TargetInfo is the one place that knows how the assembly dialect of a target
differs: which directives carry file/line information, how function labels
start, which marker ends a function and which mnemonics jump or call.
Every parser entry point receives it explicitly, so fixtures for any dialect
can be parsed on any host.
"""
import platform
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple


class Arch(str, Enum):
    X86 = "x86"
    AARCH64 = "aarch64"
    ARM = "arm"
    SPARC = "sparc"
    POWER = "power"
    MIPS = "mips"
    UNKNOWN = "unknown"


# Leading component of the triple -> architecture family
_ARCH_PREFIXES = [
    ("x86_64", Arch.X86),
    ("i386", Arch.X86),
    ("i586", Arch.X86),
    ("i686", Arch.X86),
    ("aarch64", Arch.AARCH64),
    ("arm64", Arch.AARCH64),
    ("arm", Arch.ARM),
    ("thumb", Arch.ARM),
    ("sparc", Arch.SPARC),
    ("powerpc", Arch.POWER),
    ("mips", Arch.MIPS),
]

# platform.machine() spellings -> rust triple architecture
_HOST_MACHINES = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "i386": "i686",
    "i686": "i686",
    "arm64": "aarch64",
    "aarch64": "aarch64",
}


def host_triple() -> str:
    """
    Best-effort guess of the native target triple, used when the user did not
    pass --target.
    """
    machine = _HOST_MACHINES.get(platform.machine().lower(), "x86_64")
    system = platform.system()
    if system == "Darwin":
        return f"{machine}-apple-darwin"
    if system == "Windows":
        return f"{machine}-pc-windows-msvc"
    return f"{machine}-unknown-linux-gnu"


@dataclass(frozen=True)
class TargetInfo:
    """Dialect-relevant predicates derived from a target triple."""

    triple: str

    @classmethod
    def from_triple(cls, triple: Optional[str]) -> "TargetInfo":
        return cls(triple or host_triple())

    # --- Platform ---

    def is_windows(self) -> bool:
        return "windows" in self.triple

    def is_linux(self) -> bool:
        return "linux" in self.triple

    def is_apple(self) -> bool:
        return "apple" in self.triple or "darwin" in self.triple

    @property
    def arch(self) -> Arch:
        head = self.triple.split("-", 1)[0].lower()
        for prefix, arch in _ARCH_PREFIXES:
            if head.startswith(prefix):
                return arch
        return Arch.UNKNOWN

    # --- Dialect ---

    @property
    def file_directive(self) -> str:
        return ".cv_file" if self.is_windows() else ".file"

    @property
    def loc_directive(self) -> str:
        return ".cv_loc" if self.is_windows() else ".loc"

    @property
    def loc_fields(self) -> Tuple[int, int, int]:
        """Token positions of (file index, line, column) in a location directive."""
        # .cv_loc <function id> <file> <line> [<column>]
        if self.is_windows():
            return (2, 3, 4)
        # .loc <file> <line> [<column>]
        return (1, 2, 3)

    @property
    def function_label_prefix(self) -> str:
        return "__" if self.is_apple() else "_"

    @property
    def function_end_marker(self) -> str:
        return ".seh_endproc" if self.is_windows() else ".cfi_endproc"

    @property
    def comment_markers(self) -> Tuple[str, ...]:
        arch = self.arch
        if arch == Arch.X86:
            return (";", "#")
        if arch == Arch.AARCH64:
            return (";", "//")
        if arch == Arch.ARM:
            return (";", "@")
        return (";",)

    @property
    def housekeeping_label_prefixes(self) -> List[str]:
        """Compiler-internal labels that are never worth displaying."""
        names = ["Lcfi", "Ltmp", "Lfunc_begin", "Lfunc_end"]
        if self.is_apple():
            return names
        return ["." + n for n in names]

    @property
    def rust_src_component(self) -> str:
        """Path component identifying files inside the rust-src component."""
        if self.is_windows():
            return r"lib\rustlib\src\rust"
        return "lib/rustlib/src/rust"

    # --- Instruction classification ---

    def is_jump(self, mnemonic: str, args: List[str]) -> bool:
        arch = self.arch
        m = mnemonic.lower()
        if arch == Arch.X86:
            return m.startswith("j")
        if arch == Arch.AARCH64:
            return m == "b" or m.startswith("b.")
        if arch in (Arch.ARM, Arch.SPARC):
            return bool(args) and args[0].startswith(".L")
        if arch == Arch.POWER:
            return m.startswith("b") and not m.startswith("bl")
        if arch == Arch.MIPS:
            return m.startswith("b")
        return False

    def is_call(self, mnemonic: str, args: List[str]) -> bool:
        arch = self.arch
        m = mnemonic.lower()
        if arch == Arch.X86:
            return m.startswith("call")
        if arch in (Arch.AARCH64, Arch.POWER):
            return m in ("bl", "blr")
        if arch == Arch.ARM:
            return m in ("bl", "blx")
        if arch == Arch.SPARC:
            return m == "call"
        if arch == Arch.MIPS:
            return m in ("jal", "jalr", "bal")
        return False
