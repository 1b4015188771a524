import logging
import os
import sys

# Constants
LOG_DIR = "logs"
LOG_FILE_NAME = "app.log"
LOG_FORMAT = "[%(asctime)s] | %(levelname)-8s | %(name)-15s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logger(name: str = "mood_diary", level: int = logging.INFO,
                 log_dir: str = LOG_DIR) -> logging.Logger:
    """
    Configures and returns the application logger.

    Features:
    - Console Output (StreamHandler)
    - File Output, overwritten on each run (logs/app.log)
    - Standardized Formatting

    Child loggers (mood_diary.core.insights, ...) propagate here.

    Args:
        name: Name of the logger module
        level: Minimum level for both handlers
        log_dir: Directory for the log file

    Returns:
        Configured Logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Avoid duplicate handlers if setup is called multiple times
    if logger.handlers:
        return logger

    os.makedirs(log_dir, exist_ok=True)
    log_path = os.path.join(log_dir, LOG_FILE_NAME)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(level)
    logger.addHandler(console_handler)

    # mode='w': one clean log per execution
    file_handler = logging.FileHandler(log_path, mode='w', encoding='utf-8')
    file_handler.setFormatter(formatter)
    file_handler.setLevel(level)
    logger.addHandler(file_handler)

    return logger
