"""cargobolt: show the assembly (or LLVM IR) generated for a Rust function."""

__version__ = "0.1.0"
