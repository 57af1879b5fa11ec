"""Logging configuration for the CLI"""

import logging
import os

DEBUG_LOG_FILE = "relay_debug.log"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(level: str = "info") -> None:
    """Console logging at the configured level"""
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
    )


def setup_debug_logging(log_file: str = DEBUG_LOG_FILE) -> str:
    """Setup debug logging to the console and an appending log file

    Returns:
        Absolute path of the debug log file
    """
    # Get root logger and configure it for debug
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Clear existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    log_path = os.path.abspath(log_file)
    file_handler = logging.FileHandler(log_path, mode='a', encoding='utf-8')  # 'a' to append
    file_handler.setLevel(logging.DEBUG)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG)

    formatter = logging.Formatter(LOG_FORMAT)
    file_handler.setFormatter(formatter)
    console_handler.setFormatter(formatter)

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    # Protocol libraries are too chatty at DEBUG
    for name in ("hpack", "h2", "httpcore"):
        logging.getLogger(name).setLevel(logging.INFO)

    logging.getLogger(__name__).info(f"Debug logging enabled - appending to {log_path}")
    return log_path
