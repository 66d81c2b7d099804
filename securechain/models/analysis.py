"""
Models for aggregated analysis results and AI creative probes
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .finding import Finding, Severity


class AnalysisDepth(str, Enum):
    """Caller-selected depth gating which phases and tools run"""
    BASIC = "basic"
    STANDARD = "standard"
    DEEP = "deep"

    @property
    def rank(self) -> int:
        return _DEPTH_RANK[self]

    def includes(self, other: "AnalysisDepth") -> bool:
        """True when this depth is at least as thorough as ``other``"""
        return self.rank >= other.rank


_DEPTH_RANK = {
    AnalysisDepth.BASIC: 0,
    AnalysisDepth.STANDARD: 1,
    AnalysisDepth.DEEP: 2,
}


class AnalysisSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_findings: int = 0
    critical_count: int = 0
    high_count: int = 0
    medium_count: int = 0
    low_count: int = 0
    info_count: int = 0
    analysis_duration: float = Field(0.0, description="Elapsed wall time in seconds")
    tools_used: Tuple[str, ...] = ()
    coverage_percentage: float = Field(0.0, ge=0.0, le=100.0)

    def count_for(self, severity: Severity) -> int:
        return {
            Severity.CRITICAL: self.critical_count,
            Severity.HIGH: self.high_count,
            Severity.MEDIUM: self.medium_count,
            Severity.LOW: self.low_count,
            Severity.INFO: self.info_count,
        }[severity]


class AnalysisMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    lines_of_code: int = 0
    functions_analyzed: int = 0
    complexity_score: float = 0.0
    security_score: float = Field(100.0, ge=0.0, le=100.0)


class AnalysisResult(BaseModel):
    """Immutable outcome of one orchestration run"""
    model_config = ConfigDict(frozen=True)

    contract_name: str
    contracts_analyzed: Tuple[str, ...] = ()
    target: str = ""
    depth: AnalysisDepth = AnalysisDepth.STANDARD
    findings: Tuple[Finding, ...] = ()
    summary: AnalysisSummary = Field(default_factory=AnalysisSummary)
    metrics: AnalysisMetrics = Field(default_factory=AnalysisMetrics)
    recommendations: Tuple[str, ...] = ()
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def findings_by_severity(self) -> Dict[Severity, List[Finding]]:
        grouped: Dict[Severity, List[Finding]] = {severity: [] for severity in Severity}
        for finding in self.findings:
            grouped[finding.severity].append(finding)
        return grouped

    def to_json(self, indent: Optional[int] = 2) -> str:
        return self.model_dump_json(indent=indent)

    @classmethod
    def from_json(cls, data: str) -> "AnalysisResult":
        return cls.model_validate_json(data)


class RawProbe(BaseModel):
    """AI-native attack hypothesis before severity normalization"""
    title: str
    description: str = ""
    severity: Optional[str] = None
    attack_vector: str = ""
    impact: str = ""
    proof_of_concept: Optional[str] = None
    recommended_fix: Optional[str] = None
    confidence: Optional[float] = None


class CreativeProbe(BaseModel):
    """An AI-generated attack hypothesis, distinct from a Finding"""
    model_config = ConfigDict(frozen=True)

    title: str
    description: str
    severity: Severity
    attack_vector: str = ""
    impact: str = ""
    proof_of_concept: Optional[str] = None
    recommended_fix: Optional[str] = None
    confidence: float = Field(0.5, ge=0.0, le=1.0)
    contract_name: str = ""
