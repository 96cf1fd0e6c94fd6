"""
Single-page web analyzer: fetches a page and reports its HTML version, title,
heading counts, internal/external links, external link liveness and whether
it looks like a login page.
"""
from webanalyzer.config import AnalyzerConfig
from webanalyzer.core import AnalysisOptions, AnalysisRequest, AnalysisResult, analyze
from webanalyzer.errors import (
    AnalysisCancelled,
    AnalysisError,
    FetchError,
    InvalidInput,
    ParseError,
)

__version__ = "1.0.0"
__all__ = [
    "analyze",
    "AnalysisOptions",
    "AnalysisRequest",
    "AnalysisResult",
    "AnalyzerConfig",
    "AnalysisError",
    "AnalysisCancelled",
    "FetchError",
    "InvalidInput",
    "ParseError",
]
