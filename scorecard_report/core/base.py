"""
Base Class for Pipeline Components

Every stage of the report pipeline (preparation, binning, training, scaling,
evaluation, assembly) is a ``PipelineComponent``: it holds the run's frozen
``ReportConfig``, a named logger and execution timing.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional
from datetime import datetime
import logging


class PipelineComponent(ABC):
    """
    Abstract base class for all report components.

    Subclasses implement ``run`` as a thin alias of their main operation and
    bracket that operation with ``_start_execution`` / ``_end_execution``.
    """

    def __init__(self, config: Any, name: Optional[str] = None):
        """
        Args:
            config: Frozen ``ReportConfig`` for the run
            name: Logger name (defaults to class name)
        """
        self.config = config
        self.name = name or self.__class__.__name__
        self.logger = logging.getLogger(self.name)
        self._execution_start: Optional[datetime] = None
        self._execution_end: Optional[datetime] = None

    @abstractmethod
    def run(self, *args, **kwargs) -> Any:
        pass

    def _start_execution(self) -> None:
        self._execution_start = datetime.now()
        self._execution_end = None
        self.logger.debug(f"Starting {self.name}")

    def _end_execution(self) -> None:
        """Mark the end of execution and log duration."""
        self._execution_end = datetime.now()
        if self._execution_start:
            self.logger.debug(f"Completed {self.name} in {self.execution_duration:.2f} seconds")

    @property
    def execution_duration(self) -> Optional[float]:
        """Seconds between start and end of the last execution, if finished."""
        if self._execution_start and self._execution_end:
            return (self._execution_end - self._execution_start).total_seconds()
        return None
