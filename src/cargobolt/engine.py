import logging
from typing import Optional

from rich.console import Console
from rich.text import Text

from .compiler.cargo_driver import CargoDriver
from .parsing import (
    Found,
    IrFound,
    NotFound,
    RustDemangler,
    correlate,
    locate_function,
    locate_ir_function,
    not_found_message,
)
from .ui.display import print_function, print_lines, to_json
from .utils.options import LLVM_IR_MODE, Options
from .utils.target import TargetInfo

logger = logging.getLogger(__name__)


class AsmEngine:
    """
    One invocation of the pipeline: build, locate, correlate, display.

    The driver, demangler and consoles can be injected; by default they are
    created from the options.
    """

    def __init__(
        self,
        options: Options,
        driver: Optional[CargoDriver] = None,
        demangler=None,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
    ):
        self.options = options
        self.target = TargetInfo.from_triple(options.triple)
        self.driver = driver or CargoDriver(options, self.target)
        self.demangler = demangler or RustDemangler(self.target)
        self.console = console or Console(no_color=not options.color, highlight=False)
        self.err_console = err_console or Console(stderr=True, no_color=not options.color, highlight=False)

    def run(self) -> int:
        """Returns the process exit code."""
        self.driver.build()
        files = self.driver.output_files()
        logger.debug("output files: %s", [str(f) for f in files])

        if self.options.mode == LLVM_IR_MODE:
            result = locate_ir_function(files, self.options.path, self.demangler)
        else:
            result = locate_function(files, self.options.path, self.target, self.demangler)

        if isinstance(result, NotFound):
            return self._report_not_found(result)
        if isinstance(result, IrFound):
            print_lines(result.lines, self.console)
            return 0
        return self._show(result)

    def _report_not_found(self, result: NotFound) -> int:
        if not self.options.path:
            # No path given: list every function
            print_lines(result.names, self.console)
            return 0
        kind = "LLVM IR" if self.options.mode == LLVM_IR_MODE else "assembly"
        message = not_found_message(self.options.path, result.names, kind)
        self.err_console.print(Text("[ERROR]: ", style="bold red") + Text(message), soft_wrap=True)
        return 1

    def _show(self, found: Found) -> int:
        correlation = correlate(
            found.function,
            found.file_table,
            self.driver.sysroot,
            gap_threshold=self.options.source_gap,
            base_dir=self.driver.manifest_dir(),
        )
        if not correlation.complete and self.options.rust:
            logger.warning("some source files are missing, Rust lines are not shown")
            self.options.disable_rust()

        if self.options.json:
            self.console.print(
                to_json(found.function, correlation.sources),
                soft_wrap=True, markup=False, highlight=False, emoji=False,
            )
        else:
            print_function(found.function, correlation.sources, self.options, self.target, self.console)
        return 0