# logger.py - Centralized logging configuration
import os
import logging
from logging.handlers import RotatingFileHandler

LOG_FORMAT = "%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]"
BASE_DIR = os.path.abspath(os.path.dirname(__file__))


def log_dir():
    return os.environ.get("LOG_DIR", os.path.join(BASE_DIR, "logs"))


def file_handler(log_file, level=logging.INFO):
    """Rotating file handler shared by the app logger and the named loggers"""
    os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
    handler = RotatingFileHandler(
        log_file,
        maxBytes=10240,
        backupCount=10
    )
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.setLevel(level)
    return handler


def setup_logger(name, log_file=None, level=logging.INFO):
    """Set up a logger with file rotation"""
    if not log_file:
        log_file = os.path.join(log_dir(), f"{name}.log")

    logger = logging.getLogger(name)

    # Avoid adding handlers multiple times
    if not logger.handlers:
        logger.setLevel(level)
        logger.addHandler(file_handler(log_file, level))

        # Console handler for development
        if os.environ.get("FLASK_ENV") != "production":
            console_handler = logging.StreamHandler()
            console_handler.setLevel(logging.DEBUG)
            console_handler.setFormatter(logging.Formatter(
                "%(name)s - %(levelname)s - %(message)s"
            ))
            logger.addHandler(console_handler)

    return logger

# Create global loggers
app_logger = setup_logger("app")
ledger_logger = setup_logger("ledger")
