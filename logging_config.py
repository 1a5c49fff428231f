# logging_config.py
import logging
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: Optional[Union[int, str]] = None) -> None:
     """Configure root logging once; later calls only adjust the level."""
     if level is None:
          from config import get_settings
          level = get_settings().LOG_LEVEL

     root = logging.getLogger()
     if not root.handlers:
          logging.basicConfig(level=level, format=LOG_FORMAT)
     root.setLevel(level)
     # Third-party client logs are noisy at INFO.
     logging.getLogger("azure").setLevel(logging.WARNING)
     logging.getLogger("urllib3").setLevel(logging.WARNING)
