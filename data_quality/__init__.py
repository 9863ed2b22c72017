from data_quality.expectations import get_expectation_suite, list_suites
from data_quality.validator import DataValidationError, EventValidator, ValidationResult

__all__ = [
    "DataValidationError",
    "EventValidator",
    "ValidationResult",
    "get_expectation_suite",
    "list_suites",
]
