"""
Per-backend normalization of raw findings into the canonical Finding model

Every backend has an explicit table. Severity is never passed through raw:
unknown native values become Medium. Confidence defaults to 0.6 when the
backend gives no signal.
"""

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple, Union

from ..models.analysis import CreativeProbe, RawProbe
from ..models.finding import Finding, RawFinding, Severity, VulnerabilityCategory, new_finding_id

DEFAULT_SEVERITY = Severity.MEDIUM
DEFAULT_CONFIDENCE = 0.6

# Shared spellings across tools; backend tables extend this
COMMON_SEVERITIES: Dict[str, Severity] = {
    "critical": Severity.CRITICAL,
    "high": Severity.HIGH,
    "medium": Severity.MEDIUM,
    "low": Severity.LOW,
    "info": Severity.INFO,
    "informational": Severity.INFO,
    "information": Severity.INFO,
    "optimization": Severity.INFO,
}


def normalize_severity(native: Optional[str], table: Mapping[str, Severity] = COMMON_SEVERITIES) -> Severity:
    if native is None:
        return DEFAULT_SEVERITY
    return table.get(native.strip().lower(), DEFAULT_SEVERITY)


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


@dataclass(frozen=True)
class NormalizationTable:
    """Mapping of one backend's native vocabulary into the Finding model"""
    tool: str
    severity_map: Mapping[str, Severity] = field(default_factory=lambda: dict(COMMON_SEVERITIES))
    confidence_map: Mapping[str, float] = field(default_factory=dict)
    category_map: Mapping[str, VulnerabilityCategory] = field(default_factory=dict)
    default_category: VulnerabilityCategory = VulnerabilityCategory.OTHER
    default_confidence: float = DEFAULT_CONFIDENCE
    # Matched as prefixes when no exact category key exists
    category_prefixes: Tuple[Tuple[str, VulnerabilityCategory], ...] = ()

    def severity(self, native: Optional[str]) -> Severity:
        return normalize_severity(native, self.severity_map)

    def confidence(self, native: Union[float, str, None]) -> float:
        if native is None:
            return self.default_confidence
        if isinstance(native, str):
            key = native.strip().lower()
            if key in self.confidence_map:
                return _clamp(self.confidence_map[key])
            try:
                native = float(key)
            except ValueError:
                return self.default_confidence
        value = float(native)
        # Percent scales
        if value > 1.0:
            value = value / 100.0
        return _clamp(value)

    def category(self, native: Optional[str]) -> VulnerabilityCategory:
        if not native:
            return self.default_category
        key = native.strip().lower()
        if key in self.category_map:
            return self.category_map[key]
        for prefix, category in self.category_prefixes:
            if key.startswith(prefix):
                return category
        return self.default_category

    def normalize(self, raw: RawFinding, file_path: str) -> Finding:
        """
        Build a canonical Finding from a backend-native record

        Args:
            raw: Backend-native finding
            file_path: Contract path or name the finding applies to

        Returns:
            Finding with a fresh id and ``tool`` set to this table's tool
        """
        line_number = raw.line_number if raw.line_number and raw.line_number > 0 else None
        return Finding(
            id=new_finding_id(),
            title=raw.title,
            description=raw.description or raw.title,
            severity=self.severity(raw.native_severity),
            category=self.category(raw.native_category),
            file_path=file_path,
            line_number=line_number,
            code_snippet=raw.code_snippet or None,
            recommendation=raw.recommendation or None,
            references=tuple(raw.references),
            cwe_id=raw.cwe_id or None,
            tool=self.tool,
            confidence=self.confidence(raw.native_confidence),
        )


def normalize_probe(raw: RawProbe, contract_name: str, want_poc: bool) -> CreativeProbe:
    return CreativeProbe(
        title=raw.title,
        description=raw.description,
        severity=normalize_severity(raw.severity),
        attack_vector=raw.attack_vector,
        impact=raw.impact,
        proof_of_concept=raw.proof_of_concept if want_poc else None,
        recommended_fix=raw.recommended_fix,
        confidence=_clamp(raw.confidence) if raw.confidence is not None else 0.5,
        contract_name=contract_name,
    )


SLITHER_TABLE = NormalizationTable(
    tool="Slither",
    confidence_map={"high": 0.9, "medium": 0.7, "low": 0.5},
    category_map={
        "reentrancy-eth": VulnerabilityCategory.REENTRANCY,
        "reentrancy-no-eth": VulnerabilityCategory.REENTRANCY,
        "reentrancy-events": VulnerabilityCategory.REENTRANCY,
        "reentrancy-benign": VulnerabilityCategory.REENTRANCY,
        "unchecked-transfer": VulnerabilityCategory.UNHANDLED_EXCEPTIONS,
        "unchecked-send": VulnerabilityCategory.UNHANDLED_EXCEPTIONS,
        "unchecked-lowlevel": VulnerabilityCategory.UNHANDLED_EXCEPTIONS,
        "tx-origin": VulnerabilityCategory.ACCESS_CONTROL,
        "suicidal": VulnerabilityCategory.ACCESS_CONTROL,
        "arbitrary-send": VulnerabilityCategory.ACCESS_CONTROL,
        "arbitrary-send-eth": VulnerabilityCategory.ACCESS_CONTROL,
        "timestamp": VulnerabilityCategory.TIMESTAMP_DEPENDENCE,
        "weak-prng": VulnerabilityCategory.TIMESTAMP_DEPENDENCE,
        "low-level-calls": VulnerabilityCategory.LOW_LEVEL_CALLS,
        "assembly": VulnerabilityCategory.LOW_LEVEL_CALLS,
        "controlled-delegatecall": VulnerabilityCategory.LOW_LEVEL_CALLS,
        "integer-overflow": VulnerabilityCategory.INTEGER_OVERFLOW,
        "divide-before-multiply": VulnerabilityCategory.INTEGER_OVERFLOW,
        "divide-by-zero": VulnerabilityCategory.INTEGER_OVERFLOW,
        "locked-ether": VulnerabilityCategory.CODE_QUALITY,
        "missing-zero-check": VulnerabilityCategory.CODE_QUALITY,
    },
    category_prefixes=(
        ("reentrancy", VulnerabilityCategory.REENTRANCY),
        ("dos-", VulnerabilityCategory.DENIAL_OF_SERVICE),
        ("calls-loop", VulnerabilityCategory.DENIAL_OF_SERVICE),
    ),
)

MYTHRIL_TABLE = NormalizationTable(
    tool="Mythril",
    default_category=VulnerabilityCategory.SYMBOLIC_EXECUTION,
    default_confidence=0.8,
)

ECHIDNA_TABLE = NormalizationTable(
    tool="Echidna",
    severity_map={
        **COMMON_SEVERITIES,
        "property violation": Severity.HIGH,
        "assertion failure": Severity.MEDIUM,
        "revert": Severity.LOW,
    },
    default_category=VulnerabilityCategory.FUZZING,
    default_confidence=0.8,
)

AI_TABLE = NormalizationTable(
    tool="AI Assistant",
    category_map={
        "reentrancy": VulnerabilityCategory.REENTRANCY,
        "access control": VulnerabilityCategory.ACCESS_CONTROL,
        "access-control": VulnerabilityCategory.ACCESS_CONTROL,
        "accesscontrol": VulnerabilityCategory.ACCESS_CONTROL,
        "integer overflow": VulnerabilityCategory.INTEGER_OVERFLOW,
        "integer-overflow": VulnerabilityCategory.INTEGER_OVERFLOW,
        "integeroverflow": VulnerabilityCategory.INTEGER_OVERFLOW,
        "unchecked calls": VulnerabilityCategory.UNHANDLED_EXCEPTIONS,
        "unchecked-calls": VulnerabilityCategory.UNHANDLED_EXCEPTIONS,
        "unhandled exceptions": VulnerabilityCategory.UNHANDLED_EXCEPTIONS,
        "timestamp dependence": VulnerabilityCategory.TIMESTAMP_DEPENDENCE,
        "timestamp": VulnerabilityCategory.TIMESTAMP_DEPENDENCE,
        "front-running": VulnerabilityCategory.OTHER,
        "dos": VulnerabilityCategory.DENIAL_OF_SERVICE,
        "denial of service": VulnerabilityCategory.DENIAL_OF_SERVICE,
        "input validation": VulnerabilityCategory.INPUT_VALIDATION,
        "low-level calls": VulnerabilityCategory.LOW_LEVEL_CALLS,
    },
    category_prefixes=(
        ("reentran", VulnerabilityCategory.REENTRANCY),
        ("access", VulnerabilityCategory.ACCESS_CONTROL),
        ("integer", VulnerabilityCategory.INTEGER_OVERFLOW),
        ("unchecked", VulnerabilityCategory.UNHANDLED_EXCEPTIONS),
        ("timestamp", VulnerabilityCategory.TIMESTAMP_DEPENDENCE),
    ),
)
