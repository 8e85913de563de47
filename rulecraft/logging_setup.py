import os
import logging
from typing import Optional

from rich.logging import RichHandler  # requires: pip install rich

from config import LoggingConfig


def setup_logging(config: Optional[LoggingConfig] = None) -> None:
    config = config or LoggingConfig(level=os.getenv("LOG_LEVEL", "INFO"))
    level = config.level.upper()

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)

    handler = RichHandler(
        rich_tracebacks=config.rich_tracebacks,
        show_time=True,
        show_level=True,
        show_path=config.show_path,
    )
    handler.setLevel(level)

    # Keep formatter minimal; RichHandler renders time/level nicely
    handler.setFormatter(logging.Formatter("%(message)s"))

    root.addHandler(handler)
