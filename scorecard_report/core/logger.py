"""
Logging Utilities

Root logging setup for a report run (console plus an optional rotating log
file) and ``RunLogger``, which prefixes every line with the run id and the
current stage.
"""

import logging
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Any, Optional

from scorecard_report.core.context import StageContext


DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Libraries that log at DEBUG/INFO while rendering or fitting
NOISY_LOGGERS = ("matplotlib", "PIL", "statsmodels")

MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5


def setup_logging(
    config: Optional[Any] = None,
    log_file: Optional[str] = None,
    level: Optional[str] = None,
) -> None:
    """
    Configure the root logger for a run.

    Existing root handlers are replaced, so calling this twice does not
    duplicate output.

    Args:
        config: ``LoggingConfig`` (level, format, file); defaults when None
        log_file: Log file path; overrides ``config.file``
        level: Log level; overrides ``config.level``
    """
    level = (level or getattr(config, "level", None) or "INFO").upper()
    fmt = getattr(config, "format", None) or DEFAULT_FORMAT
    log_file = log_file or getattr(config, "file", None)

    formatter = logging.Formatter(fmt)
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level))
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class RunLogger:
    """
    Logger bound to the position of a report run.

    Lines are prefixed with ``[run_id stage]`` once ``bind`` has been called.
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)
        self._context: Optional[StageContext] = None

    def bind(self, context: Optional[StageContext]) -> None:
        self._context = context

    def _format(self, message: str) -> str:
        if self._context is None:
            return message
        return f"[{self._context.run_id} {self._context.label}] {message}"

    def info(self, message: str) -> None:
        self.logger.info(self._format(message))

    def debug(self, message: str) -> None:
        self.logger.debug(self._format(message))

    def warning(self, message: str) -> None:
        self.logger.warning(self._format(message))

    def error(self, message: str) -> None:
        self.logger.error(self._format(message))

    def stage_start(self, total: int) -> None:
        stage = self._context.stage if self._context else "?"
        index = self._context.index if self._context else 0
        self.info(f"{'=' * 20} Step {index}/{total}: {stage} {'=' * 20}")

    def stage_complete(self, duration: float) -> None:
        stage = self._context.stage if self._context else "?"
        self.info(f"{'=' * 20} Completed: {stage} ({duration:.2f}s) {'=' * 20}")

    def stage_failed(
        self, error: BaseException, stage: Optional[str] = None, dataset: Optional[str] = None
    ) -> None:
        """One line naming the failing stage, dataset and message."""
        stage = getattr(error, "stage", None) or stage
        dataset = getattr(error, "dataset", None) or dataset
        message = getattr(error, "message", None) or f"{type(error).__name__}: {error}"
        where = f" (dataset '{dataset}')" if dataset else ""
        self.error(f"FAILED at stage '{stage}'{where}: {message}")

    def metric(self, name: str, value: Any) -> None:
        self.info(f"METRIC | {name}: {value}")

    def dataset_stats(self, name: str, rows: int, features: int, bad_rate: float) -> None:
        self.info(f"DATA | {name}: {rows:,} rows, {features} features, bad rate {bad_rate:.2%}")
