"""
Collaborator contracts for analysis backends
"""

from typing import List, Protocol, Tuple, runtime_checkable

from ..models.analysis import AnalysisDepth, RawProbe
from ..models.contract import ContractModel
from ..models.finding import RawFinding
from .normalize import NormalizationTable


@runtime_checkable
class ToolBackend(Protocol):
    """
    An external static or dynamic analyzer

    ``run`` raises BackendUnavailable when the tool is missing and
    BackendExecutionFailed on a bad exit, a timeout or unusable output.
    """
    name: str
    table: NormalizationTable
    min_depth: AnalysisDepth
    platforms: Tuple[str, ...]

    async def run(self, contract: ContractModel) -> List[RawFinding]:
        ...


@runtime_checkable
class AIBackend(Protocol):
    """
    A remote or local language model

    Both methods raise AiBackendFailure subclasses on any failure.
    """
    name: str
    table: NormalizationTable

    async def analyze(self, contract: ContractModel) -> List[RawFinding]:
        ...

    async def probe(self, contract: ContractModel, creativity: str, want_poc: bool) -> List[RawProbe]:
        ...
