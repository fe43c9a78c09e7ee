from .ast import Comment, File, Function, GenericDirective, Instruction, Label, Loc
from .llvm_ir import IrFound, locate_ir_function
from .parser import Found, NotFound, locate_function, parse_function_body
from .rust_demangle import RustDemangler, strip_hash
from .rust_source import Correlation, SourceFiles, correlate
from .suggest import not_found_message, rank_suggestions
