"""
Orchestration and scoring
"""

from .orchestrator import AnalysisOrchestrator, OrchestratorOptions, UnitOutcome, merge_outcomes
from .scoring import (
    complexity_score,
    compute_metrics,
    coverage_estimate,
    generate_recommendations,
    security_score,
    severity_counts,
    summarize,
)

__all__ = [
    "AnalysisOrchestrator",
    "OrchestratorOptions",
    "UnitOutcome",
    "merge_outcomes",
    "complexity_score",
    "compute_metrics",
    "coverage_estimate",
    "generate_recommendations",
    "security_score",
    "severity_counts",
    "summarize",
]
