"""
Canonical, tool-agnostic vulnerability records
"""

import uuid
from enum import Enum
from typing import List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


class Severity(str, Enum):
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    INFO = "Info"


# Highest first, used for sorting and report ordering
SEVERITY_ORDER: Tuple[Severity, ...] = (
    Severity.CRITICAL,
    Severity.HIGH,
    Severity.MEDIUM,
    Severity.LOW,
    Severity.INFO,
)


class VulnerabilityCategory(str, Enum):
    REENTRANCY = "Reentrancy"
    ACCESS_CONTROL = "AccessControl"
    INTEGER_OVERFLOW = "IntegerOverflow"
    UNHANDLED_EXCEPTIONS = "UnhandledExceptions"
    TIMESTAMP_DEPENDENCE = "TimestampDependence"
    LOW_LEVEL_CALLS = "LowLevelCalls"
    DENIAL_OF_SERVICE = "DenialOfService"
    FUZZING = "Fuzzing"
    SYMBOLIC_EXECUTION = "SymbolicExecution"
    INPUT_VALIDATION = "InputValidation"
    CODE_QUALITY = "CodeQuality"
    OTHER = "Other"


def new_finding_id() -> str:
    return uuid.uuid4().hex


class Finding(BaseModel):
    """A normalized vulnerability attributed to exactly one producing tool"""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_finding_id, description="Unique id assigned at normalization")
    title: str
    description: str
    severity: Severity
    category: VulnerabilityCategory
    file_path: str
    line_number: Optional[int] = Field(None, ge=1)
    code_snippet: Optional[str] = None
    recommendation: Optional[str] = None
    references: Tuple[str, ...] = ()
    cwe_id: Optional[str] = None
    tool: str
    confidence: float = Field(..., ge=0.0, le=1.0)


class RawFinding(BaseModel):
    """
    Backend-native finding before normalization.

    Severity, confidence and category are kept in the producer's own
    vocabulary; a NormalizationTable maps them into the canonical model.
    """
    title: str
    description: str = ""
    native_severity: Optional[str] = None
    native_confidence: Optional[Union[float, str]] = None
    native_category: Optional[str] = None
    line_number: Optional[int] = None
    code_snippet: Optional[str] = None
    recommendation: Optional[str] = None
    references: List[str] = Field(default_factory=list)
    cwe_id: Optional[str] = None
