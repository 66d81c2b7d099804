"""
Platform plugin abstraction

A plugin is a plain record: the platform it serves, the languages and external
tools it knows about, a validator, and an ordered table of heuristic checks.
Every check is an independent predicate over the ContractModel that yields at
most one Finding.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Tuple

from ..models.contract import ContractModel
from ..models.finding import Finding, Severity, VulnerabilityCategory


class Platform(str, Enum):
    """Built-in target platforms"""
    EVM = "evm"
    MOVE = "move"
    CAIRO = "cairo"
    INK = "ink"


@dataclass(frozen=True)
class CheckMatch:
    """Where a heuristic matched; ``detail`` replaces the check's description"""
    line_number: Optional[int] = None
    code_snippet: Optional[str] = None
    detail: Optional[str] = None


Predicate = Callable[[ContractModel], Optional[CheckMatch]]


@dataclass(frozen=True)
class HeuristicCheck:
    """A named heuristic with a fixed severity, category and confidence"""
    name: str
    title: str
    description: str
    severity: Severity
    category: VulnerabilityCategory
    confidence: float
    predicate: Predicate
    recommendation: Optional[str] = None
    cwe_id: Optional[str] = None
    references: Tuple[str, ...] = ()

    def evaluate(self, contract: ContractModel, tool: str) -> Optional[Finding]:
        """
        Run the predicate against a contract

        Args:
            contract: Parsed contract
            tool: Provenance recorded on the Finding

        Returns:
            One Finding when the predicate matches, otherwise None
        """
        match = self.predicate(contract)
        if match is None:
            return None

        snippet = match.code_snippet
        if snippet is None and match.line_number is not None:
            line = contract.line_at(match.line_number)
            snippet = line.strip() if line else None

        return Finding(
            title=self.title,
            description=match.detail or self.description,
            severity=self.severity,
            category=self.category,
            file_path=contract.file_path or contract.name,
            line_number=match.line_number,
            code_snippet=snippet,
            recommendation=self.recommendation,
            references=self.references,
            cwe_id=self.cwe_id,
            tool=tool,
            confidence=self.confidence,
        )


@dataclass(frozen=True)
class PluginInfo:
    name: str
    version: str
    description: str
    supported_languages: Tuple[str, ...]
    analysis_tools: Tuple[str, ...]
    enabled: bool = True


@dataclass(frozen=True)
class PlatformPlugin:
    """
    Heuristic analyzer for one target platform

    ``validator`` is only consulted for non-empty source; empty or
    whitespace-only source never validates.
    """
    platform_id: str
    display_name: str
    languages: Tuple[str, ...]
    tools: Tuple[str, ...]
    validator: Callable[[ContractModel], bool]
    checks: Tuple[HeuristicCheck, ...] = ()
    version: str = "0.1.0"
    description: str = ""
    enabled: bool = True
    check_names: Tuple[str, ...] = field(init=False, default=())

    def __post_init__(self):
        names = tuple(check.name for check in self.checks)
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate check names in plugin {self.platform_id}")
        object.__setattr__(self, "check_names", names)

    @property
    def tool_name(self) -> str:
        return f"{self.display_name} Plugin"

    def name(self) -> str:
        return self.display_name

    def supported_languages(self) -> List[str]:
        return list(self.languages)

    def analysis_tools(self) -> List[str]:
        return list(self.tools)

    def validate(self, contract: ContractModel) -> bool:
        if not contract.source_code.strip():
            return False
        return bool(self.validator(contract))

    def analyze(self, contract: ContractModel) -> List[Finding]:
        """
        Run every check in table order

        All checks are evaluated before anything is returned, so an error in
        one check propagates without a partial result.
        """
        results = [check.evaluate(contract, self.tool_name) for check in self.checks]
        return [finding for finding in results if finding is not None]

    def info(self) -> PluginInfo:
        return PluginInfo(
            name=self.display_name,
            version=self.version,
            description=self.description or f"Plugin for {self.display_name} blockchain platform",
            supported_languages=self.languages,
            analysis_tools=self.tools,
            enabled=self.enabled,
        )
