import sys
import argparse

from rich.console import Console
from rich.text import Text

from .engine import AsmEngine
from .exceptions import CargoBoltError
from .utils.config import ConfigManager
from .utils.log import setup_logging
from .utils.options import ASM_MODE, LLVM_IR_MODE, Options


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("path", nargs="?", help="Path of the function, e.g. my_crate::module::function. "
                                                "Omit it to list every function.")

    build = parser.add_argument_group("build")
    build.add_argument("--target", help="Build for the target triple")
    build.add_argument("--build-type", choices=["debug", "release"], default=None,
                       help="Build type (default from config: release)")
    build.add_argument("--features", nargs="+", default=[], help="Space-separated list of features to activate")
    build.add_argument("--example", help="Build only the specified example")
    build.add_argument("--lib", action="store_true", help="Build only this package's library")
    build.add_argument("--no-default-features", action="store_true", help="Do not activate the default feature")
    build.add_argument("--manifest-path", help="Path to Cargo.toml (or the directory containing it)")
    build.add_argument("--debug-info", action="store_true",
                       help="Generate debug information (always on; kept for compatibility)")

    output = parser.add_argument_group("output")
    output.add_argument("--rust", action="store_true", default=None, help="Print interleaved Rust code")
    output.add_argument("--comments", action="store_true", default=None, help="Print assembly comments")
    output.add_argument("--directives", action="store_true", default=None, help="Print assembly directives")
    output.add_argument("--json", action="store_true", help="Print the merged output as JSON")
    output.add_argument("--no-color", dest="color", action="store_false", default=None,
                        help="Disable colored output")
    output.add_argument("--debug-mode", action="store_true",
                        help="Print everything, with file:line annotations and debug logs")


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="cargobolt",
        description="cargobolt: show the assembly or LLVM IR generated for a Rust function",
    )
    sub = parser.add_subparsers(dest="command")

    asm = sub.add_parser(ASM_MODE, help="Show the assembly of a function")
    _add_common_arguments(asm)
    asm.add_argument("--asm-style", choices=["intel", "att"], default=None,
                     help="Assembly flavor on x86 (default from config: intel)")

    ir = sub.add_parser(LLVM_IR_MODE, help="Show the LLVM IR of a function")
    _add_common_arguments(ir)
    return parser


def _print_error(message: str) -> None:
    console = Console(stderr=True, highlight=False)
    console.print(Text("[ERROR]: ", style="bold red") + Text(message), soft_wrap=True)


def run(argv=None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    config = ConfigManager()
    options = Options.from_args(args, config.config)
    setup_logging(debug=options.debug_mode, log_file=options.log_file, color=options.color)

    try:
        code = AsmEngine(options).run()
    except KeyboardInterrupt:
        code = 130
    except CargoBoltError as e:
        _print_error(str(e))
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    run()
