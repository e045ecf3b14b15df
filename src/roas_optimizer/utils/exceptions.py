"""
Custom exception classes for the ROAS optimizer.
"""


class ROASOptimizerException(Exception):
    """Base exception for the ROAS optimizer."""
    pass


class ValidationError(ROASOptimizerException):
    """Raised when an optimization request is invalid."""
    pass


class InsufficientDataError(ValidationError):
    """Raised when there are too few observations to fit a curve."""

    def __init__(self, message: str, observed: int = 0, required: int = 3):
        super().__init__(message)
        self.observed = observed
        self.required = required


class NonPositiveMarginError(ValidationError):
    """Raised when the contribution margin leaves nothing to optimize."""

    def __init__(self, message: str, contribution_margin_pct: float = 0.0):
        super().__init__(message)
        self.contribution_margin_pct = contribution_margin_pct


class DataValidationError(ValidationError):
    """Raised when uploaded data fails validation."""
    
    def __init__(self, message: str, errors: list = None):
        super().__init__(message)
        self.errors = errors or []


class OptimizationError(ROASOptimizerException):
    """Raised when the data cannot produce a usable response curve."""
    pass


class ConfigurationError(ROASOptimizerException):
    """Raised when configuration is invalid."""
    pass


class FileProcessingError(ROASOptimizerException):
    """Raised when file processing fails."""
    pass
