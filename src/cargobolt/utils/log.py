import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOG_FORMAT = "%(message)s"
FILE_LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"


def setup_logging(debug: bool = False, log_file: Optional[str] = None, color: bool = True) -> None:
    """
    Route the `cargobolt` loggers to stderr through rich, and optionally
    append everything to `log_file` as well.
    """
    root = logging.getLogger("cargobolt")
    root.handlers.clear()
    root.setLevel(logging.DEBUG)
    root.propagate = False

    handler = RichHandler(
        console=Console(stderr=True, no_color=not color),
        show_time=False,
        show_path=debug,
        markup=False,
    )
    handler.setLevel(logging.DEBUG if debug else logging.WARNING)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT))
        root.addHandler(file_handler)
