"""
LLVM-IR counterpart of the assembly locator.

IR functions start at a `define` line:

    define internal fastcc void @_ZN4core3ptr13drop_in_place17h...E(ptr %0) unnamed_addr #3 {

and end at the last closing brace before the next `define`.
"""
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Union

from .parser import NotFound

logger = logging.getLogger(__name__)

RE_DEFINE_SYMBOL = re.compile(r'@("(?:[^"\\]|\\.)*"|[^\s(]+)\(')


@dataclass
class IrFound:
    path: str
    lines: List[str]


def define_symbol(line: str) -> Optional[str]:
    """The mangled symbol of a `define` line, quotes removed."""
    if not line.startswith("define"):
        return None
    match = RE_DEFINE_SYMBOL.search(line)
    if not match:
        return None
    return match.group(1).strip('"')


def _trim_to_closing_brace(lines: List[str]) -> List[str]:
    for idx in range(len(lines) - 1, -1, -1):
        if lines[idx].strip() == "}":
            return lines[: idx + 1]
    return lines


def locate_ir_in_file(ir_file, path: str, demangler, function_table: List[str]) -> Optional[IrFound]:
    with open(ir_file, "r", errors="replace") as f:
        lines = [l.rstrip("\n") for l in f]

    symbols = [define_symbol(l.strip()) for l in lines]
    demangler.demangle_many([s for s in symbols if s])

    function_lines: Optional[List[str]] = None
    for line, symbol in zip(lines, symbols):
        if function_lines is not None:
            if symbol is not None or line.startswith("define"):
                break
            function_lines.append(line)
            continue
        if symbol is None:
            continue
        name = demangler.demangle(symbol)
        if name != path:
            function_table.append(name)
            continue
        logger.debug("IR function found: %s (%s)", path, ir_file)
        function_lines = [line]

    if function_lines is None:
        return None
    return IrFound(path=path, lines=_trim_to_closing_brace(function_lines))


def locate_ir_function(
    files: Iterable[Union[str, Path]],
    path: Optional[str],
    demangler,
) -> Union[IrFound, NotFound]:
    path = path or ""
    function_table: List[str] = []
    for ir_file in files:
        found = locate_ir_in_file(ir_file, path, demangler, function_table)
        if found is not None:
            return found
    return NotFound(sorted(set(function_table)))
