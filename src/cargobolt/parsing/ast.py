"""
Structured representation of one assembly function.

A Statement is exactly one of Label, File, Loc, GenericDirective, Instruction
or Comment. File / Loc / GenericDirective are the three directive variants.
Labels and instructions carry the debug location that was active when they
were parsed (`rust_loc`); directives and comments never do.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


@dataclass(frozen=True)
class Loc:
    """A debug location: `.loc <file> <line> <column>`."""
    file_index: int
    file_line: int
    file_column: int = 0

    @property
    def rust_loc(self) -> Optional["Loc"]:
        return None

    def key(self):
        """Identity used when comparing source lines (column ignored)."""
        return (self.file_index, self.file_line)


@dataclass
class File:
    """A file directive: `.file <index> "<path>"`."""
    path: str
    index: int

    @property
    def rust_loc(self) -> Optional[Loc]:
        return None


@dataclass
class GenericDirective:
    string: str

    @property
    def rust_loc(self) -> Optional[Loc]:
        return None


@dataclass
class Label:
    id: str
    loc: Optional[Loc] = None

    @property
    def rust_loc(self) -> Optional[Loc]:
        return self.loc


@dataclass
class Instruction:
    instr: str
    args: List[str] = field(default_factory=list)
    loc: Optional[Loc] = None
    is_jump: bool = False
    is_call: bool = False

    @property
    def rust_loc(self) -> Optional[Loc]:
        return self.loc


@dataclass
class Comment:
    string: str

    @property
    def rust_loc(self) -> Optional[Loc]:
        return None


Directive = Union[File, Loc, GenericDirective]
Statement = Union[Label, File, Loc, GenericDirective, Instruction, Comment]

DIRECTIVE_TYPES = (File, Loc, GenericDirective)


def is_directive(stmt: Statement) -> bool:
    return isinstance(stmt, DIRECTIVE_TYPES)


@dataclass
class Function:
    """
    The parsed body of one function.

    `file` / `loc` are the function's own defining location: the first
    `.file` / `.loc` that plausibly belongs to the function rather than to
    inlined code.
    """
    id: str
    file: Optional[File] = None
    loc: Optional[Loc] = None
    statements: List[Statement] = field(default_factory=list)

    def locations(self) -> List[Loc]:
        """All `.loc` directives in statement order."""
        return [s for s in self.statements if isinstance(s, Loc)]

    def file_directives(self) -> List[File]:
        return [s for s in self.statements if isinstance(s, File)]


# --- JSON conversion ---

def loc_to_dict(loc: Optional[Loc]) -> Optional[Dict[str, int]]:
    if loc is None:
        return None
    return {
        "file_index": loc.file_index,
        "file_line": loc.file_line,
        "file_column": loc.file_column,
    }


def statement_to_dict(stmt: Statement) -> Dict[str, Any]:
    """Tagged-union encoding: {"<Variant>": {...fields}}."""
    if isinstance(stmt, Label):
        return {"Label": {"id": stmt.id, "rust_loc": loc_to_dict(stmt.loc)}}
    if isinstance(stmt, File):
        return {"Directive": {"File": {"path": stmt.path, "index": stmt.index}}}
    if isinstance(stmt, Loc):
        return {"Directive": {"Loc": loc_to_dict(stmt)}}
    if isinstance(stmt, GenericDirective):
        return {"Directive": {"Generic": {"string": stmt.string}}}
    if isinstance(stmt, Instruction):
        return {
            "Instruction": {
                "instr": stmt.instr,
                "args": list(stmt.args),
                "rust_loc": loc_to_dict(stmt.loc),
            }
        }
    if isinstance(stmt, Comment):
        return {"Comment": {"string": stmt.string}}
    raise TypeError(f"not a statement: {stmt!r}")
