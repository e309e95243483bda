"""
Exception types for fio-xsys.

None of these ever abort a whole run: each is caught at the file, system,
or configuration boundary and reported through the utils print helpers.
"""


class AnalysisError(Exception):
    """Base class for recoverable analysis failures."""


class ParseError(AnalysisError):
    """A workload file has a malformed name or unusable content."""

    def __init__(self, filename, reason):
        self.filename = filename
        self.reason = reason
        super().__init__(f"{filename}: {reason}")


class InsufficientDataError(AnalysisError):
    """Not enough data points to perform an analysis step."""


class ConfigurationError(AnalysisError):
    """A ranking-function document or entry is missing or invalid."""
