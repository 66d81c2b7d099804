"""
Pure scoring and summary functions over merged findings
"""

from typing import Dict, Iterable, List, Sequence

from ..models.analysis import AnalysisMetrics, AnalysisSummary
from ..models.finding import Finding, Severity, VulnerabilityCategory

SEVERITY_WEIGHTS: Dict[Severity, float] = {
    Severity.CRITICAL: 25.0,
    Severity.HIGH: 15.0,
    Severity.MEDIUM: 8.0,
    Severity.LOW: 3.0,
}
OTHER_WEIGHT = 1.0

CATEGORY_ADVICE: Dict[VulnerabilityCategory, str] = {
    VulnerabilityCategory.REENTRANCY:
        "Apply the checks-effects-interactions pattern and use reentrancy guards on functions making external calls.",
    VulnerabilityCategory.ACCESS_CONTROL:
        "Review access control on privileged functions and prefer msg.sender based role checks.",
    VulnerabilityCategory.INTEGER_OVERFLOW:
        "Use checked arithmetic (Solidity 0.8+, SafeMath or checked_* helpers) for all value computations.",
    VulnerabilityCategory.UNHANDLED_EXCEPTIONS:
        "Check the result of every external and low-level call.",
    VulnerabilityCategory.TIMESTAMP_DEPENDENCE:
        "Avoid using block timestamps for randomness or precise timing.",
    VulnerabilityCategory.LOW_LEVEL_CALLS:
        "Minimize low-level calls and delegatecall, and restrict their targets.",
    VulnerabilityCategory.DENIAL_OF_SERVICE:
        "Bound loops and avoid patterns where one failing call blocks everyone.",
    VulnerabilityCategory.FUZZING:
        "Turn failing fuzzing sequences into regression tests before fixing the invariant.",
    VulnerabilityCategory.SYMBOLIC_EXECUTION:
        "Review the execution paths reported by symbolic analysis and add guards for them.",
    VulnerabilityCategory.INPUT_VALIDATION:
        "Validate all external inputs, including zero addresses and value ranges.",
}


def security_score(findings: Iterable[Finding]) -> float:
    """100 minus a fixed penalty per finding, clamped at 0"""
    penalty = sum(SEVERITY_WEIGHTS.get(finding.severity, OTHER_WEIGHT) for finding in findings)
    return max(0.0, 100.0 - penalty)


def complexity_score(total_functions: int, total_lines: int) -> float:
    return min(100.0, 0.1 * total_functions + 0.01 * total_lines)


def severity_counts(findings: Iterable[Finding]) -> Dict[Severity, int]:
    counts = {severity: 0 for severity in Severity}
    for finding in findings:
        counts[finding.severity] += 1
    return counts


def coverage_estimate(attempted: int, succeeded: int) -> float:
    """Share of attempted analysis passes that completed, as a percentage"""
    if attempted <= 0:
        return 100.0
    return round(100.0 * min(succeeded, attempted) / attempted, 2)


def summarize(
    findings: Sequence[Finding],
    duration: float,
    tools_used: Sequence[str],
    coverage: float,
) -> AnalysisSummary:
    counts = severity_counts(findings)
    return AnalysisSummary(
        total_findings=len(findings),
        critical_count=counts[Severity.CRITICAL],
        high_count=counts[Severity.HIGH],
        medium_count=counts[Severity.MEDIUM],
        low_count=counts[Severity.LOW],
        info_count=counts[Severity.INFO],
        analysis_duration=duration,
        tools_used=tuple(tools_used),
        coverage_percentage=coverage,
    )


def compute_metrics(findings: Sequence[Finding], total_lines: int, total_functions: int) -> AnalysisMetrics:
    return AnalysisMetrics(
        lines_of_code=total_lines,
        functions_analyzed=total_functions,
        complexity_score=complexity_score(total_functions, total_lines),
        security_score=security_score(findings),
    )


def generate_recommendations(findings: Sequence[Finding]) -> List[str]:
    """General guidance plus one line per vulnerability category present"""
    if not findings:
        recommendations = [
            "Great job! No vulnerabilities were found in the initial analysis.",
            "Consider running a deeper analysis with fuzzing and formal verification.",
        ]
    else:
        recommendations = []
        counts = severity_counts(findings)
        if counts[Severity.CRITICAL] or counts[Severity.HIGH]:
            recommendations.append("Address high and critical severity vulnerabilities immediately.")
        seen = []
        for finding in findings:
            if finding.category in CATEGORY_ADVICE and finding.category not in seen:
                seen.append(finding.category)
                recommendations.append(CATEGORY_ADVICE[finding.category])
        recommendations.extend([
            "Implement comprehensive unit tests for all smart contract functions.",
            "Consider getting a professional security audit before deployment.",
            "Set up continuous security monitoring for your smart contracts.",
        ])

    recommendations.extend([
        "Follow secure coding practices and use established security patterns.",
        "Keep your dependencies up to date and monitor for new vulnerabilities.",
    ])
    return recommendations
