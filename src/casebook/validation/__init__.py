"""Dataset validation module."""

from casebook.validation.core import DATASETS, ValidationResult, ValidationRunner
from casebook.validation.reporter import ConsoleReporter

__all__ = ["DATASETS", "ConsoleReporter", "ValidationResult", "ValidationRunner"]
