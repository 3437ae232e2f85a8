import logging
from typing import Optional


class SessionNameFilter(logging.Filter):
    def __init__(self, session_name: str):
        super().__init__()
        self.session_name = session_name

    def filter(self, record: logging.LogRecord) -> bool:
        record.pointer = self.session_name
        return True


_FORMAT = "%(asctime)s %(levelname)s [%(pointer)s] %(message)s"


def setup_logger(session_name: str, level: int = logging.INFO) -> logging.Logger:
    logger = logging.getLogger(f"aruco_pointer.{session_name}")
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler.addFilter(SessionNameFilter(session_name))
        logger.addHandler(handler)

    return logger


def add_file_handler(logger: logging.Logger, session_name: str, log_path: str) -> logging.Handler:
    handler = logging.FileHandler(log_path)
    handler.setFormatter(logging.Formatter(_FORMAT))
    handler.addFilter(SessionNameFilter(session_name))
    logger.addHandler(handler)
    return handler


def parse_level(name: Optional[str]) -> int:
    if not name:
        return logging.INFO
    level = logging.getLevelName(str(name).upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {name}")
    return level
