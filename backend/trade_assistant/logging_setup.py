import logging
import sys

_HANDLER_NAME = "trade-assistant-stdout"


def setup_logging(level: str = "INFO") -> None:
    """Configure logging to output to stdout with proper formatting."""
    root_logger = logging.getLogger()
    if not any(getattr(h, "name", None) == _HANDLER_NAME for h in root_logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.set_name(_HANDLER_NAME)
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)
    root_logger.setLevel(level.upper())

    # Set lower log levels for some noisy libraries
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
