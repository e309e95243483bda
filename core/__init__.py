"""
fio-xsys core: per-system analysis, metrics, scoring, aggregation,
persistence and reporting.

Only the exception types are re-exported here; the workloads package
imports them, so this module must not import anything that depends on
workloads.
"""

from core.errors import (
    AnalysisError,
    ParseError,
    InsufficientDataError,
    ConfigurationError,
)

__all__ = ['AnalysisError', 'ParseError', 'InsufficientDataError', 'ConfigurationError']
