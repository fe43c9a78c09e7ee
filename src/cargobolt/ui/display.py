"""
Merge / display engine.

The function's statements are walked in order; every statement with a debug
location is preceded by the Rust line it came from. Consecutive repeats of the
same Rust line are collapsed. What is actually shown (comments, directives,
Rust lines) is decided at render time from the run options.
"""
import json
from dataclasses import dataclass
from typing import List, Optional, Union

from rich.console import Console
from rich.text import Text

from ..parsing.ast import (
    Comment,
    File,
    Function,
    Instruction,
    Label,
    Loc,
    Statement,
    is_directive,
    loc_to_dict,
    statement_to_dict,
)
from ..parsing.rust_source import SourceFiles
from ..utils.options import Options
from ..utils.paths import display_path
from ..utils.target import TargetInfo

INSTR_STYLE = "bold bright_blue"
LABEL_STYLE = "bold bright_green"
RUST_STYLE = "bold bright_red"
CALL_ARG_STYLE = RUST_STYLE

MAIN_INDENT = 1
INLINED_INDENT = 5


@dataclass
class RustLine:
    line: str
    path: str
    loc: Loc


@dataclass
class AsmNode:
    stmt: Statement


Node = Union[AsmNode, RustLine]


# --- Merge ---

def merge_rust_and_asm(function: Function, sources: SourceFiles) -> List[Node]:
    """Interleave Rust lines with the function's statements, deduplicated."""
    output: List[Node] = []
    for stmt in function.statements:
        loc = stmt.rust_loc
        if loc is not None:
            line = sources.line(loc)
            # Rust comments carry no information about the generated code
            if line is not None and not line.strip().startswith("//"):
                output.append(RustLine(line, sources.file_path(loc), loc))
        output.append(AsmNode(stmt))
    return dedup_rust_lines(output)


def dedup_rust_lines(nodes: List[Node]) -> List[Node]:
    """Drop a Rust line if the previous Rust line has the same file and line."""
    result: List[Node] = []
    last = None
    for node in nodes:
        if isinstance(node, RustLine):
            if last is not None and last == node.loc.key():
                continue
            last = node.loc.key()
        result.append(node)
    return result


# --- Filtering ---

def is_housekeeping_label(label: Label, target: TargetInfo) -> bool:
    return any(label.id.startswith(p) for p in target.housekeeping_label_prefixes)


def is_visible(node: Node, options: Options, target: TargetInfo) -> bool:
    if isinstance(node, RustLine):
        return options.rust
    stmt = node.stmt
    if isinstance(stmt, Comment):
        return options.print_comments
    if is_directive(stmt):
        return options.print_directives
    if isinstance(stmt, Label):
        return not is_housekeeping_label(stmt, target)
    return True


def is_stmt_in_function(function: Function, stmt: Statement) -> bool:
    """True unless the statement provably comes from another file (inlined)."""
    if function.loc is None:
        return True
    loc = stmt.rust_loc
    if loc is None:
        return True
    return loc.file_index == function.loc.file_index


def is_rust_in_function(function: Function, rust: RustLine) -> bool:
    if function.loc is None:
        return True
    return rust.loc.file_index == function.loc.file_index


# --- Rendering ---

def format_function_name(function: Function, target: TargetInfo, cwd: Optional[str] = None) -> str:
    if function.file is not None and function.loc is not None:
        path = display_path(function.file.path, target.rust_src_component, cwd)
        return f"{function.id} ({path}:{function.loc.file_line})"
    return function.id


def _debug_suffix(loc: Optional[Loc]) -> str:
    if loc is None:
        return "   [-:-]"
    return f"   [{loc.file_index}:{loc.file_line}]"


def _format_directive(stmt) -> str:
    if isinstance(stmt, File):
        return f'.file {stmt.index} "{stmt.path}"'
    if isinstance(stmt, Loc):
        return f".loc {stmt.file_index} {stmt.file_line} {stmt.file_column}"
    return stmt.string


def render_node(
    node: Node,
    function: Function,
    options: Options,
    target: TargetInfo,
    cwd: Optional[str] = None,
) -> Optional[Text]:
    """One output line for `node`, or None if it is filtered out."""
    if not is_visible(node, options, target):
        return None

    if isinstance(node, RustLine):
        in_function = is_rust_in_function(function, node)
        indent = MAIN_INDENT if in_function else INLINED_INDENT
    else:
        in_function = is_stmt_in_function(function, node.stmt)
        if isinstance(node.stmt, Label):
            indent = 0
        elif not options.rust or in_function:
            indent = MAIN_INDENT
        else:
            indent = INLINED_INDENT

    text = Text(" " * indent)

    if isinstance(node, RustLine):
        if in_function:
            text.append(node.line, style=RUST_STYLE)
            if options.debug_mode:
                text.append(_debug_suffix(node.loc), style=RUST_STYLE)
        else:
            path = display_path(node.path, target.rust_src_component, cwd)
            text.append(f"{node.line} ({path}:{node.loc.file_line})", style=RUST_STYLE)
        return text

    stmt = node.stmt
    if isinstance(stmt, Label):
        text.append(f"{stmt.id}:", style=LABEL_STYLE)
    elif isinstance(stmt, Comment):
        text.append(stmt.string)
    elif isinstance(stmt, Instruction):
        if stmt.args:
            text.append(f"{stmt.instr:<7}", style=INSTR_STYLE)
            if stmt.is_jump:
                arg_style = LABEL_STYLE
            elif stmt.is_call:
                arg_style = CALL_ARG_STYLE
            else:
                arg_style = ""
            text.append(" " + ", ".join(stmt.args), style=arg_style)
        else:
            text.append(stmt.instr, style=INSTR_STYLE)
    else:
        text.append(_format_directive(stmt))
        return text

    if options.debug_mode:
        text.append(_debug_suffix(stmt.rust_loc))
    return text


def print_function(
    function: Function,
    sources: SourceFiles,
    options: Options,
    target: TargetInfo,
    console: Console,
    cwd: Optional[str] = None,
) -> None:
    """Render the merged function to `console`."""
    if not options.rust:
        # Without Rust lines the function path is the only context
        console.print(Text(f"{format_function_name(function, target, cwd)}:", style=RUST_STYLE), soft_wrap=True)

    for node in merge_rust_and_asm(function, sources):
        line = render_node(node, function, options, target, cwd)
        if line is not None:
            console.print(line, soft_wrap=True)


def print_lines(lines: List[str], console: Console) -> None:
    for line in lines:
        console.print(Text(line), soft_wrap=True)


# --- JSON ---

def node_to_dict(node: Node) -> dict:
    if isinstance(node, RustLine):
        return {"Rust": {"line": node.line, "path": node.path, "loc": loc_to_dict(node.loc)}}
    return {"Asm": statement_to_dict(node.stmt)}


def to_json(function: Function, sources: SourceFiles) -> str:
    """The merged node sequence as a pretty-printed JSON array."""
    nodes = merge_rust_and_asm(function, sources)
    return json.dumps([node_to_dict(n) for n in nodes], indent=2)
