import logging
import sys
from datetime import datetime
from pathlib import Path


class FlushingFileHandler(logging.FileHandler):
    """File handler that flushes after every record so a crash mid-run loses nothing."""

    def emit(self, record):
        super().emit(record)
        self.flush()


def setup_logger(
    name: str = "tradebook",
    log_file: str = None,
    level: str = "INFO",
    log_dir: str = "logs",
) -> logging.Logger:
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    formatter = logging.Formatter(
        "%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Console handler
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    logger.addHandler(console)

    # File handler - separate log file for each run
    if log_file is None:
        timestamp = datetime.now().strftime("%Y-%m-%d_%H%M%S")
        log_file = str(Path(log_dir) / f"run_{timestamp}.log")

    try:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = FlushingFileHandler(log_file, mode='a', encoding='utf-8')
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    except OSError as e:
        logger.warning(f"Could not create file handler for {log_file}: {e}")

    return logger
