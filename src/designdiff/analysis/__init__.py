from .client import (
    AnalysisClient,
    AnalysisError,
    AnalysisRequestFailed,
    InvalidAnalysisResponse,
    MissingCredentials,
    parse_analysis,
)
from .types import AnalysisResult, ChangeAnnotation, ComponentSpec, DeveloperSpec, LayoutSpec

__all__ = (
    "AnalysisClient",
    "AnalysisError",
    "AnalysisRequestFailed",
    "AnalysisResult",
    "ChangeAnnotation",
    "ComponentSpec",
    "DeveloperSpec",
    "InvalidAnalysisResponse",
    "LayoutSpec",
    "MissingCredentials",
    "parse_analysis",
)
