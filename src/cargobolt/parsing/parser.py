"""
Function locator and function body parser.

The locator scans assembly files line by line for the label whose demangled
name equals the requested path, hands the lines up to the function end marker
to the body parser, and then keeps scanning the same file until the
function's `.loc` can be tied to a `.file` directive.
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from ..exceptions import FileTableError, IncompleteFileTableError, ParseError
from ..utils.target import TargetInfo
from .ast import File, Function, Loc
from .lexer import (
    call_target,
    parse_comment,
    parse_directive,
    parse_file_directive,
    parse_instruction,
    parse_label,
    split_comment,
)

logger = logging.getLogger(__name__)

FileTable = Dict[int, File]


@dataclass
class Found:
    function: Function
    file_table: FileTable


@dataclass
class NotFound:
    """Every demangled function name seen, sorted and deduplicated."""
    names: List[str]


LocateResult = Union[Found, NotFound]


def parse_function_body(
    lines: List[str],
    path: str,
    target: TargetInfo,
    demangler=None,
) -> Function:
    """
    Build the AST of a function from its raw lines (label line excluded).

    Args:
        lines: Raw assembly lines between the function label and the end marker.
        path: The function's demangled path, used as its id and in errors.
        target: Dialect of the assembly.
        demangler: Optional object with `demangle(name)` and
            `demangle_many(names)`; used for call targets.

    Raises:
        ParseError: a line matched none of the statement classifiers.
    """
    function = Function(id=path)
    markers = target.comment_markers

    demangle = None
    if demangler is not None:
        # One tool invocation for all call targets of the body
        targets = [call_target(split_comment(l.strip(), markers)[0], target) for l in lines]
        demangler.demangle_many([t for t in targets if t])
        demangle = demangler.demangle

    current_loc: Optional[Loc] = None

    for line_off, raw in enumerate(lines):
        line = raw.strip()
        if not line:
            continue
        logger.debug("parsing line: %s", line)

        node_str, comment_str = split_comment(line, markers)

        # The comment is appended before the statement it trails
        comment = parse_comment(comment_str, target)
        if comment is not None:
            function.statements.append(comment)
        if not node_str:
            continue

        directive = parse_directive(node_str, target)
        if directive is not None:
            if isinstance(directive, File) and function.file is None:
                # A .file before the first .loc belongs to the function; after
                # it, only if it is the file the function's location points to.
                if function.loc is None or function.loc.file_index == directive.index:
                    logger.debug(" * function file: %s", directive)
                    function.file = directive
            elif isinstance(directive, Loc):
                current_loc = directive
                if function.loc is None:
                    if function.file is not None and function.file.index != directive.file_index:
                        raise ParseError(
                            path, line_off, line,
                            reason=f"location does not match function file {function.file.index}",
                        )
                    function.loc = directive
            function.statements.append(directive)
            continue

        label = parse_label(node_str, target, current_loc)
        if label is not None:
            function.statements.append(label)
            continue

        instruction = parse_instruction(node_str, target, current_loc, demangle)
        if instruction is not None:
            function.statements.append(instruction)
            continue

        raise ParseError(path, line_off, line)

    return function


def _register_file(file_table: FileTable, file: File) -> None:
    known = file_table.get(file.index)
    if known is None:
        file_table[file.index] = file
    elif known.path != file.path:
        raise FileTableError(file.index, known.path, file.path)


def _finalize(function: Function, file_table: FileTable) -> None:
    """Merge the body's own .file directives and check every .loc is covered."""
    if function.file is not None:
        _register_file(file_table, function.file)
    for f in function.file_directives():
        _register_file(file_table, f)

    missing = [l.file_index for l in function.locations() if l.file_index not in file_table]
    if missing:
        raise IncompleteFileTableError(function.id, missing, list(file_table))


def _function_label(line: str, target: TargetInfo):
    if not line.startswith(target.function_label_prefix):
        return None
    node, _ = split_comment(line, target.comment_markers)
    return parse_label(node, target)


def locate_in_file(
    asm_file: Union[str, Path],
    path: str,
    target: TargetInfo,
    demangler,
    function_table: List[str],
) -> Optional[Found]:
    """
    Look for `path` in one assembly file.

    Names of the other functions seen are appended to `function_table`.
    Returns None if the function is not in this file.
    """
    with open(asm_file, "r", errors="replace") as f:
        lines = [l.strip() for l in f]

    # Demangle every candidate label of the file in one go
    candidates = []
    for line in lines:
        label = _function_label(line, target)
        if label is not None:
            candidates.append(label.id)
    demangler.demangle_many(candidates)

    end_marker = target.function_end_marker
    file_table: FileTable = {}
    function: Optional[Function] = None

    i = 0
    while i < len(lines):
        line = lines[i]
        i += 1

        if function is None:
            label = _function_label(line, target)
            if label is not None:
                name = demangler.demangle(label.id)
                if name != path:
                    function_table.append(name)
                    continue

                body = []
                while i < len(lines) and not lines[i].startswith(end_marker):
                    body.append(lines[i])
                    i += 1
                logger.debug("function found: %s (%s)", path, asm_file)

                function = parse_function_body(body, path, target, demangler)
                # Either the body named its file, or there is no location
                # that could ever be resolved: done.
                if function.file is not None or function.loc is None:
                    break
                resolved = file_table.get(function.loc.file_index)
                if resolved is not None:
                    function.file = resolved
                    break
                continue

        file = parse_file_directive(split_comment(line, target.comment_markers)[0], target)
        if file is not None:
            logger.debug("found file directive: %s", file)
            _register_file(file_table, file)

        # Found, with a .loc but no .file yet: keep scanning for it
        if function is not None:
            resolved = file_table.get(function.loc.file_index)
            if resolved is not None:
                function.file = resolved
                break

    if function is None:
        return None

    _finalize(function, file_table)
    return Found(function, file_table)


def locate_function(
    files: Iterable[Union[str, Path]],
    path: Optional[str],
    target: TargetInfo,
    demangler,
) -> LocateResult:
    """
    Search `files` in order and stop at the first file containing `path`.

    Returns Found(function, file_table) or NotFound(names of all functions).
    """
    path = path or ""
    function_table: List[str] = []
    for asm_file in files:
        logger.debug("scanning %s", asm_file)
        found = locate_in_file(asm_file, path, target, demangler, function_table)
        if found is not None:
            return found
    return NotFound(sorted(set(function_table)))
