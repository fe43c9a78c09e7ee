import re
import ntpath
import posixpath
from typing import Callable, List, Optional, Tuple

from ..utils.target import TargetInfo
from .ast import Comment, Directive, File, GenericDirective, Instruction, Label, Loc, Statement

# --- UNIVERSAL REGEX REGISTRY ---

# 1. QUOTED STRINGS (paths in .file / .cv_file), escaped quotes allowed
RE_QUOTED = re.compile(r'"((?:[^"\\]|\\.)*)"')

# 2. LABELS
# Linux: .LBB0_1:  macOS: LBB0_1:  mangled: _ZN3foo3bar17h0123456789abcdefE:
# Quoted symbols show up for names with odd characters: "foo bar":
RE_LABEL = re.compile(r'^(?:"[^"]+"|[^\s"]+):$')

# 3. INSTRUCTIONS
# Mnemonic, then operands separated by commas outside [] and ()
RE_MNEMONIC = re.compile(r"^[A-Za-z_][\w.]*$")

Demangle = Callable[[str], str]


def split_comment(line: str, markers: Tuple[str, ...]) -> Tuple[str, str]:
    """
    Split `line` at the first comment marker that is not inside a
    double-quoted string.

    Returns: (node part, comment part). Either may be empty.
    """
    in_quotes = False
    i = 0
    while i < len(line):
        ch = line[i]
        if ch == "\\" and in_quotes:
            i += 2
            continue
        if ch == '"':
            in_quotes = not in_quotes
        elif not in_quotes:
            for marker in markers:
                if line.startswith(marker, i):
                    return line[:i].rstrip(), line[i:]
        i += 1
    return line, ""


def _starts_with_comment(s: str, target: TargetInfo) -> bool:
    return any(s.startswith(m) for m in target.comment_markers)


def parse_comment(s: str, target: TargetInfo) -> Optional[Comment]:
    if s and _starts_with_comment(s, target):
        return Comment(s)
    return None


def _join_dir(directory: str, name: str) -> str:
    if "\\" in directory and "/" not in directory:
        return ntpath.join(directory, name)
    return posixpath.join(directory, name)


def parse_file_directive(s: str, target: TargetInfo) -> Optional[File]:
    """
    Parse a file directive in the target's dialect.

    ELF / Mach-O:  .file 1 "/path/to/lib.rs"
                   .file 1 "/path/to" "lib.rs" md5 0x...     (DWARF 5)
    CodeView:      .cv_file 1 "C:\\\\path\\\\lib.rs" "HASH" 1
    """
    tokens = s.split()
    if not tokens or tokens[0] != target.file_directive:
        return None
    # `.file "name"` without an index only names the translation unit
    if len(tokens) < 3 or not tokens[1].isdigit():
        return None
    quoted = RE_QUOTED.findall(s)
    if not quoted:
        return None
    index = int(tokens[1])

    if target.is_windows():
        return File(path=quoted[0].replace("\\\\", "\\"), index=index)

    path = quoted[0]
    if len(quoted) >= 2 and quoted[1]:
        name = quoted[1]
        path = name if posixpath.isabs(name) or ntpath.isabs(name) else _join_dir(path, name)
    return File(path=path, index=index)


def parse_loc_directive(s: str, target: TargetInfo) -> Optional[Loc]:
    """
    Parse a location directive in the target's dialect.

    ELF / Mach-O:  .loc 1 42 7 prologue_end
    CodeView:      .cv_loc 0 1 42 7
    """
    tokens = s.split()
    if not tokens or tokens[0] != target.loc_directive:
        return None
    file_pos, line_pos, col_pos = target.loc_fields
    if len(tokens) <= line_pos:
        return None
    try:
        file_index = int(tokens[file_pos])
        file_line = int(tokens[line_pos])
        file_column = int(tokens[col_pos]) if len(tokens) > col_pos and tokens[col_pos].isdigit() else 0
    except ValueError:
        return None
    return Loc(file_index, file_line, file_column)


def parse_directive(s: str, target: TargetInfo) -> Optional[Directive]:
    # Local labels (.LBB0_1:) start with a dot too
    if not s.startswith(".") or RE_LABEL.match(s):
        return None
    file = parse_file_directive(s, target)
    if file is not None:
        return file
    loc = parse_loc_directive(s, target)
    if loc is not None:
        return loc
    return GenericDirective(s)


def parse_label(s: str, target: TargetInfo, loc: Optional[Loc] = None) -> Optional[Label]:
    if not RE_LABEL.match(s) or _starts_with_comment(s, target):
        return None
    return Label(id=s[:-1], loc=loc)


def split_instruction(s: str) -> Optional[Tuple[str, List[str]]]:
    """
    Split `s` into mnemonic and operands. Commas inside brackets or
    parentheses (`[rdi + 8*rcx]`, `8(%rsp, %rax)`) do not separate operands.
    Returns None if the first token is not a mnemonic.
    """
    parts = s.split(None, 1)
    if not parts or not RE_MNEMONIC.match(parts[0]):
        return None
    rest = parts[1] if len(parts) > 1 else ""

    args: List[str] = []
    current = []
    depth = 0
    for ch in rest:
        if ch in "[(":
            depth += 1
        elif ch in "])":
            depth = max(depth - 1, 0)
        if ch == "," and depth == 0:
            args.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
    args.append("".join(current).strip())
    return parts[0], [a for a in args if a]


def parse_instruction(
    s: str,
    target: TargetInfo,
    loc: Optional[Loc] = None,
    demangle: Optional[Demangle] = None,
) -> Optional[Instruction]:
    """
    Everything that is not a directive or a label.

    The first token is the mnemonic, the rest are operands. The target of a
    call is demangled in place when a demangler is given.
    """
    split = split_instruction(s)
    if split is None:
        return None
    instr, args = split
    is_call = target.is_call(instr, args)
    if is_call and args and demangle is not None:
        args[0] = demangle(args[0])
    return Instruction(
        instr=instr,
        args=args,
        loc=loc,
        is_jump=target.is_jump(instr, args),
        is_call=is_call,
    )


def call_target(s: str, target: TargetInfo) -> Optional[str]:
    """The raw (mangled) call target of `s`, or None if `s` is not a call."""
    split = split_instruction(s)
    if split is None or not split[1]:
        return None
    instr, args = split
    if target.is_call(instr, args):
        return args[0]
    return None


def classify(
    s: str,
    target: TargetInfo,
    loc: Optional[Loc] = None,
    demangle: Optional[Demangle] = None,
) -> Optional[Statement]:
    """
    Classify one trimmed line fragment. Order matters: directive, label,
    instruction, comment. Returns None if nothing matches.
    """
    directive = parse_directive(s, target)
    if directive is not None:
        return directive
    label = parse_label(s, target, loc)
    if label is not None:
        return label
    if not _starts_with_comment(s, target):
        instruction = parse_instruction(s, target, loc, demangle)
        if instruction is not None:
            return instruction
    return parse_comment(s, target)

