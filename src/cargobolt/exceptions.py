"""
Error taxonomy for cargobolt.

Everything fatal derives from CargoBoltError so the CLI can report it with a
single handler. "Function not found" is not an error: it is a normal result
of the locator and is reported through the suggestion list instead.
"""
from typing import Optional


class CargoBoltError(Exception):
    """Base class for every fatal condition raised by cargobolt."""


class BuildError(CargoBoltError):
    """cargo exited with a non-zero status."""

    def __init__(self, message: str, stdout: str = "", stderr: str = ""):
        self.stdout = stdout
        self.stderr = stderr
        details = message
        if stderr:
            details += f"\n\nBuild errors:\n\n{stderr}"
        if stdout:
            details += f"\n\nBuild output:\n\n{stdout}"
        super().__init__(details)


class NoOutputFilesError(CargoBoltError):
    """The build finished but no assembly / IR files were found."""


class ToolchainError(CargoBoltError):
    """A toolchain query (cargo metadata, rustc --print sysroot) failed."""


class ParseError(CargoBoltError):
    """An assembly line matched none of the statement classifiers."""

    def __init__(self, function_path: str, line_offset: int, line: str,
                 reason: str = "cannot parse function"):
        self.function_path = function_path
        self.line_offset = line_offset
        self.line = line
        super().__init__(
            f"{reason}: {function_path}\n"
            f"  line off: {line_offset}\n"
            f"{line}"
        )


class FileTableError(CargoBoltError):
    """The same .file index was declared twice with different paths."""

    def __init__(self, index: int, first_path: str, second_path: str):
        self.index = index
        self.first_path = first_path
        self.second_path = second_path
        super().__init__(
            f"file directive {index} declared with two different paths: "
            f"'{first_path}' and '{second_path}'"
        )


class IncompleteFileTableError(CargoBoltError):
    """A .loc inside the located function points to an undeclared file index."""

    def __init__(self, function_path: str, missing: list, known: Optional[list] = None):
        self.function_path = function_path
        self.missing = missing
        self.known = known or []
        super().__init__(
            f"incomplete file table for '{function_path}': no .file directive "
            f"found for file indices {sorted(set(missing))} "
            f"(known: {sorted(self.known)})"
        )


class SourceLineError(CargoBoltError):
    """A source file exists but does not have a line the debug info references."""

    def __init__(self, path: str, line: int):
        self.path = path
        self.line = line
        super().__init__(
            f"could not read line {line} of file {path} "
            "(is the build stale or the source tree different?)"
        )
