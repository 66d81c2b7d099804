"""
Mythril symbolic execution backend
"""

import json
from typing import Any, Dict, List, Optional

from loguru import logger
from pydantic import ValidationError

from ..errors import BackendExecutionFailed
from ..models.analysis import AnalysisDepth
from ..models.contract import ContractModel
from ..models.finding import RawFinding, VulnerabilityCategory
from .config import ToolConfig
from .normalize import MYTHRIL_TABLE
from .process import contract_workspace, run_tool

SWC_REGISTRY = "https://swcregistry.io/docs/SWC-"


class MythrilBackend:
    """Runs ``myth analyze <file> --output json``; only used for deep analysis"""

    name = "Mythril"
    table = MYTHRIL_TABLE
    min_depth = AnalysisDepth.DEEP
    platforms = ("evm",)

    def __init__(self, config: Optional[ToolConfig] = None):
        self.config = config or ToolConfig(executable="myth", timeout=600.0)

    async def run(self, contract: ContractModel) -> List[RawFinding]:
        async with contract_workspace(contract) as source_file:
            cmd = [self.config.executable, "analyze", str(source_file), "--output", "json", *self.config.extra_args]
            result = await run_tool(self.name, cmd, self.config.timeout, cwd=str(source_file.parent))
        return self.parse_output(result.stdout, contract)

    def parse_output(self, output: str, contract: ContractModel) -> List[RawFinding]:
        try:
            data = json.loads(output)
        except json.JSONDecodeError as e:
            raise BackendExecutionFailed(self.name, f"malformed JSON output: {e}") from e
        if not isinstance(data, dict):
            raise BackendExecutionFailed(self.name, "unexpected JSON document")
        if data.get("success") is False and data.get("error"):
            raise BackendExecutionFailed(self.name, str(data["error"]))

        try:
            findings = [self._to_raw(issue, contract) for issue in data.get("issues") or []]
        except (AttributeError, TypeError, ValueError, ValidationError) as e:
            raise BackendExecutionFailed(self.name, f"malformed output: {e}") from e

        logger.debug(f"Mythril reported {len(findings)} issues for {contract.name}")
        return findings

    @staticmethod
    def _to_raw(issue: Dict[str, Any], contract: ContractModel) -> RawFinding:
        swc_id = issue.get("swc-id") or None
        line_number = issue.get("lineno")
        if line_number is None:
            line_number = (issue.get("source_map") or {}).get("line")
        line_number = int(line_number) if line_number else None

        snippet = issue.get("code") or None
        if snippet is None and line_number:
            line = contract.line_at(line_number)
            snippet = line.strip() if line else None

        return RawFinding(
            title=f"Mythril: {issue.get('title', 'Unknown issue')}",
            description=(issue.get("description") or "").strip(),
            native_severity=issue.get("severity"),
            native_category=VulnerabilityCategory.SYMBOLIC_EXECUTION.value,
            line_number=line_number,
            code_snippet=snippet,
            references=[f"{SWC_REGISTRY}{swc_id}"] if swc_id else [],
            cwe_id=f"SWC-{swc_id}" if swc_id else None,
        )
