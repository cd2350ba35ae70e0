import logging
from pathlib import Path
from typing import Optional


LOG_FORMAT = "%(asctime)s %(levelname)s: %(message)s"


class LazyFlushingFileHandler(logging.Handler):
    """
    File handler that:
    1. Creates the file only on the first real record (not at construction)
    2. Flushes after every record
    """
    def __init__(self, filename: str, mode: str = 'a', encoding: str = 'utf-8'):
        super().__init__()
        self.filename = filename
        self.mode = mode
        self.encoding = encoding
        self._handler: Optional[logging.FileHandler] = None
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    def _ensure_handler(self):
        """Create the underlying FileHandler on first use."""
        if not self._initialized:
            Path(self.filename).parent.mkdir(parents=True, exist_ok=True)

            self._handler = logging.FileHandler(
                self.filename,
                mode=self.mode,
                encoding=self.encoding
            )
            self._handler.setFormatter(self.formatter)
            self._handler.setLevel(self.level)
            self._initialized = True

    def emit(self, record):
        self._ensure_handler()
        if self._handler:
            self._handler.emit(record)
            self._handler.flush()

    def close(self):
        if self._handler:
            self._handler.close()
        super().close()


# Loggers already configured, keyed by file name
_LOGGER_CACHE: dict[str, logging.Logger] = {}


def get_logger(
    log_file_name: str,
    logs_dir: Optional[Path] = None,
    enable_console: bool = False
) -> logging.Logger:
    """
    Return a file logger, configured once and cached.

    Args:
        log_file_name: Log file name (e.g. "reconciliation_audit.log")
        logs_dir: Log directory (defaults to settings.logs_dir)
        enable_console: Also log to the console

    Returns:
        Configured logger

    Note:
        The log file is only created when the first record is emitted,
        not when the logger is built.
    """
    if logs_dir is None:
        from crossmarket.config.settings import get_settings
        logs_dir = get_settings().logs_dir

    cache_key = f"{logs_dir / log_file_name}:{enable_console}"

    if cache_key in _LOGGER_CACHE:
        return _LOGGER_CACHE[cache_key]

    logger = setup_logging(
        logs_dir,
        log_file_name,
        logger_name=f"crossmarket.{log_file_name.replace('.log', '')}",
        enable_console=enable_console,
    )
    _LOGGER_CACHE[cache_key] = logger
    return logger


def setup_logging(
    logs_dir: Path,
    log_file_name: str,
    logger_name: str = "crossmarket",
    enable_console: bool = True
) -> logging.Logger:
    """
    Configure a logger with a lazily created log file.

    The file is only created on the first emitted record.
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(logging.DEBUG)

    # Drop existing handlers (reconfiguration)
    if logger.hasHandlers():
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
            handler.close()

    logger.propagate = False

    if enable_console:
        ch = logging.StreamHandler()
        ch.setLevel(logging.DEBUG)
        ch.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(ch)

    log_file = logs_dir / log_file_name
    fh_lazy = LazyFlushingFileHandler(str(log_file), mode='a', encoding="utf-8")
    fh_lazy.setLevel(logging.DEBUG)
    fh_lazy.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(fh_lazy)

    # No record here, otherwise the file would be created immediately
    return logger
