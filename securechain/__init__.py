"""
SecureChain - smart contract security analysis

Parses contract source into a structural model, runs per-platform heuristics,
external analyzers and optional AI analysis, and merges everything into one
scored AnalysisResult.
"""

from .core.orchestrator import AnalysisOrchestrator, OrchestratorOptions
from .errors import (
    AiBackendFailure,
    BackendExecutionFailed,
    BackendUnavailable,
    NoContractsFound,
    PathNotFound,
    PlatformNotSupported,
    SecureChainError,
)
from .factory import build_orchestrator
from .models import (
    AnalysisDepth,
    AnalysisResult,
    ContractModel,
    CreativeProbe,
    Finding,
    Severity,
    VulnerabilityCategory,
)
from .parser import ContractParser
from .plugins import PluginManager

__version__ = "0.1.0"

__all__ = [
    "AnalysisOrchestrator",
    "OrchestratorOptions",
    "AiBackendFailure",
    "BackendExecutionFailed",
    "BackendUnavailable",
    "NoContractsFound",
    "PathNotFound",
    "PlatformNotSupported",
    "SecureChainError",
    "build_orchestrator",
    "AnalysisDepth",
    "AnalysisResult",
    "ContractModel",
    "CreativeProbe",
    "Finding",
    "Severity",
    "VulnerabilityCategory",
    "ContractParser",
    "PluginManager",
]
