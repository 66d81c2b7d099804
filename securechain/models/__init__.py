"""
Data models shared by the parser, plugins, backends and orchestrator
"""

from .contract import (
    ContractModel,
    EventInfo,
    FunctionInfo,
    ModifierInfo,
    Parameter,
    SourceUnit,
    StateVariable,
)
from .finding import (
    SEVERITY_ORDER,
    Finding,
    RawFinding,
    Severity,
    VulnerabilityCategory,
)
from .analysis import (
    AnalysisDepth,
    AnalysisMetrics,
    AnalysisResult,
    AnalysisSummary,
    CreativeProbe,
    RawProbe,
)

__all__ = [
    "ContractModel",
    "EventInfo",
    "FunctionInfo",
    "ModifierInfo",
    "Parameter",
    "SourceUnit",
    "StateVariable",
    "SEVERITY_ORDER",
    "Finding",
    "RawFinding",
    "Severity",
    "VulnerabilityCategory",
    "AnalysisDepth",
    "AnalysisMetrics",
    "AnalysisResult",
    "AnalysisSummary",
    "CreativeProbe",
    "RawProbe",
]
