"""
Logging configuration utility.
"""
import logging
import sys
from pathlib import Path
from typing import Optional

NOISY_LOGGERS = ("pymongo", "botocore", "boto3", "urllib3", "s3transfer", "PIL")


def setup_logging(log_level: str = "INFO", log_dir: Optional[str] = None) -> None:
    """
    Configure application logging.

    Args:
        log_level: Root level name
        log_dir: Also write ``app.log`` into this directory when given
    """
    # Configure logging format
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_dir:
        path = Path(log_dir)
        path.mkdir(exist_ok=True)
        handlers.append(logging.FileHandler(path / "app.log"))

    # Configure root logger
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format=log_format,
        datefmt=date_format,
        handlers=handlers
    )

    # Silence verbose libraries
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
