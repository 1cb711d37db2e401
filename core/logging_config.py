import logging
import sys
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"


def setup_logging(log_level: str = "INFO", log_format: Optional[str] = None) -> logging.Logger:
    """Send engine and agent logs to stdout at ``log_level``.

    Safe to call repeatedly (Streamlit reruns the script on every interaction);
    existing handlers are replaced rather than stacked.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(log_format or DEFAULT_FORMAT))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    logger = logging.getLogger("insight_engine")
    logger.debug("Logging initialized. Level: %s", log_level)
    return logger
