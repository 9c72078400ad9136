"""
Custom Exceptions for the Report Pipeline

Provides a hierarchy of exceptions for the stages of a scorecard report run.
Every error is fatal: the pipeline stops, annotates the exception with the
failing stage and dataset, and re-raises it.
"""

from typing import Any, Dict, List, Optional


class PipelineException(Exception):
    """
    Base exception for all pipeline errors.

    All custom exceptions inherit from this class.
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        """
        Initialize the exception.

        Args:
            message: Error message
            details: Additional error details
            cause: Original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause
        self.stage: Optional[str] = None
        self.dataset: Optional[str] = None

    def __str__(self) -> str:
        result = self.message
        if self.details:
            result += f" | Details: {self.details}"
        if self.cause:
            result += f" | Caused by: {self.cause}"
        return result

    def annotate(self, stage: str, dataset: Optional[str] = None) -> "PipelineException":
        """Record where the error happened; the first annotation wins."""
        if self.stage is None:
            self.stage = stage
            self.details.setdefault("stage", stage)
        if self.dataset is None and dataset is not None:
            self.dataset = dataset
            self.details.setdefault("dataset", dataset)
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
            "stage": self.stage,
            "dataset": self.dataset,
            "cause": str(self.cause) if self.cause else None
        }


class ConfigurationError(PipelineException):
    """
    Raised when there's a configuration error.

    Examples:
    - Unknown option key
    - Invalid option values (pdo <= 0, unknown metric name)
    - Configuration file not found
    """
    pass


class InputShapeError(PipelineException):
    """
    Raised when the input is neither a table nor a mapping of tables.

    Also covers missing target or feature columns.
    """

    def __init__(
        self,
        message: str,
        missing_columns: Optional[List[str]] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.missing_columns = missing_columns or []

    def __str__(self) -> str:
        result = super().__str__()
        if self.missing_columns:
            result += f" | Missing columns: {self.missing_columns}"
        return result


class LabelValidationError(PipelineException):
    """
    Raised when the label column cannot be coerced to binary {0, 1}.

    Examples:
    - More than two distinct label values
    - No value matches the positive-class specification
    """

    def __init__(
        self,
        message: str,
        label_values: Optional[List[Any]] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.label_values = label_values or []


class BinningError(PipelineException):
    """
    Raised when binning fails.

    Examples:
    - Apply-time category never observed at fit time, without fallback bin
    - Attempt to refit an already fitted binning set
    - Malformed break specification
    """

    def __init__(
        self,
        message: str,
        feature_name: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.feature_name = feature_name

    def __str__(self) -> str:
        result = super().__str__()
        if self.feature_name:
            result += f" | Feature: {self.feature_name}"
        return result


class FitConvergenceError(PipelineException):
    """
    Raised when the binomial model cannot be fit.

    Examples:
    - Singular (rank-deficient) design matrix
    - Perfect separation
    - Solver did not converge
    """

    def __init__(
        self,
        message: str,
        model_name: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.model_name = model_name

    def __str__(self) -> str:
        result = super().__str__()
        if self.model_name:
            result += f" | Model: {self.model_name}"
        return result


class MetricUndefinedError(PipelineException):
    """
    Raised when a metric cannot be computed for a dataset.

    Examples:
    - Constant labels (KS, AUC and Gini are undefined)
    """

    def __init__(
        self,
        message: str,
        metric_name: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.metric_name = metric_name


class StabilityFloorError(PipelineException):
    """Raised when a score bucket is empty on one side and no epsilon floor is set."""
    pass


class ReportLayoutError(PipelineException):
    """Raised when two regions of a report sheet overlap."""
    pass


class ReportWriteError(PipelineException, OSError):
    """
    Raised when the report artifact cannot be persisted.

    Also an ``OSError`` so callers handling I/O failures catch it.
    """

    def __init__(
        self,
        message: str,
        artifact_path: Optional[str] = None,
        **kwargs
    ):
        PipelineException.__init__(self, message, **kwargs)
        self.artifact_path = artifact_path

    def __str__(self) -> str:
        result = PipelineException.__str__(self)
        if self.artifact_path:
            result += f" | Path: {self.artifact_path}"
        return result
