"""
Slither static analysis backend
"""

import json
from typing import Any, Dict, List, Optional

from loguru import logger
from pydantic import ValidationError

from ..errors import BackendExecutionFailed
from ..models.analysis import AnalysisDepth
from ..models.contract import ContractModel
from ..models.finding import RawFinding
from .config import ToolConfig
from .normalize import SLITHER_TABLE
from .process import contract_workspace, run_tool

SLITHER_REPO = "https://github.com/crytic/slither"
SLITHER_WIKI = "https://github.com/crytic/slither/wiki/Detector-Documentation"

CWE_BY_CHECK = {
    "reentrancy-eth": "CWE-362",
    "reentrancy-no-eth": "CWE-362",
    "reentrancy-events": "CWE-362",
    "reentrancy-benign": "CWE-362",
    "tx-origin": "CWE-477",
    "timestamp": "CWE-330",
    "weak-prng": "CWE-330",
    "unchecked-transfer": "CWE-252",
    "unchecked-send": "CWE-252",
    "unchecked-lowlevel": "CWE-252",
    "integer-overflow": "CWE-190",
    "divide-by-zero": "CWE-369",
}

RECOMMENDATIONS = {
    "reentrancy-eth": "Use the checks-effects-interactions pattern or a reentrancy guard.",
    "reentrancy-no-eth": "Use the checks-effects-interactions pattern or a reentrancy guard.",
    "reentrancy-events": "Emit events before making external calls.",
    "tx-origin": "Use msg.sender instead of tx.origin for authorization.",
    "unchecked-transfer": "Check the return value of token transfers or use SafeERC20.",
    "unchecked-send": "Check the return value of send() or use call with a success check.",
    "unchecked-lowlevel": "Check the success flag returned by low-level calls.",
    "suicidal": "Restrict selfdestruct to authorized accounts.",
    "arbitrary-send": "Restrict who can trigger Ether transfers and to which addresses.",
    "arbitrary-send-eth": "Restrict who can trigger Ether transfers and to which addresses.",
    "timestamp": "Avoid relying on block.timestamp for critical logic.",
    "weak-prng": "Use a verifiable randomness source such as Chainlink VRF.",
    "locked-ether": "Add a withdrawal function or remove payable from functions.",
    "missing-zero-check": "Validate that address parameters are not the zero address.",
    "low-level-calls": "Prefer high-level calls and check return values of low-level calls.",
    "assembly": "Review inline assembly carefully and document its invariants.",
}


def format_check(check: str) -> str:
    return " ".join(part.capitalize() for part in check.replace("_", "-").split("-") if part)


class SlitherBackend:
    """Runs ``slither <file> --json -`` and maps detector results to RawFinding"""

    name = "Slither"
    table = SLITHER_TABLE
    min_depth = AnalysisDepth.STANDARD
    platforms = ("evm",)

    def __init__(self, config: Optional[ToolConfig] = None):
        self.config = config or ToolConfig(executable="slither", timeout=300.0)

    async def run(self, contract: ContractModel) -> List[RawFinding]:
        async with contract_workspace(contract) as source_file:
            cmd = [self.config.executable, str(source_file), "--json", "-", *self.config.extra_args]
            result = await run_tool(self.name, cmd, self.config.timeout, cwd=str(source_file.parent))
        return self.parse_output(result.stdout, contract)

    def parse_output(self, output: str, contract: ContractModel) -> List[RawFinding]:
        """
        Convert Slither JSON output into RawFinding records

        Raises:
            BackendExecutionFailed: When the output is not Slither JSON
        """
        try:
            data = json.loads(output)
        except json.JSONDecodeError as e:
            raise BackendExecutionFailed(self.name, f"malformed JSON output: {e}") from e
        if not isinstance(data, dict):
            raise BackendExecutionFailed(self.name, "unexpected JSON document")

        if data.get("success") is False and data.get("error"):
            raise BackendExecutionFailed(self.name, str(data["error"]))

        try:
            detectors = (data.get("results") or {}).get("detectors") or []
            findings = [self._to_raw(detector, contract) for detector in detectors]
        except (AttributeError, TypeError, ValueError, ValidationError) as e:
            raise BackendExecutionFailed(self.name, f"malformed output: {e}") from e
        logger.debug(f"Slither reported {len(findings)} detector results for {contract.name}")
        return findings

    def _to_raw(self, detector: Dict[str, Any], contract: ContractModel) -> RawFinding:
        check = detector.get("check", "unknown")
        line_number, snippet = self._location(detector, contract)
        return RawFinding(
            title=f"Slither: {format_check(check)}",
            description=(detector.get("description") or "").strip(),
            native_severity=detector.get("impact"),
            native_confidence=detector.get("confidence"),
            native_category=check,
            line_number=line_number,
            code_snippet=snippet,
            recommendation=RECOMMENDATIONS.get(check),
            references=[SLITHER_REPO, f"{SLITHER_WIKI}#{check}"],
            cwe_id=CWE_BY_CHECK.get(check),
        )

    @staticmethod
    def _location(detector: Dict[str, Any], contract: ContractModel):
        elements = detector.get("elements") or []
        if not elements:
            return None, None
        mapping = elements[0].get("source_mapping") or {}
        lines = mapping.get("lines") or []
        if not lines:
            return None, None

        line_number = int(lines[0])
        text = contract.line_at(line_number)
        if text is None:
            return line_number, None

        start = mapping.get("starting_column")
        end = mapping.get("ending_column")
        if len(lines) == 1 and isinstance(start, int) and isinstance(end, int) and end > start:
            snippet = text[start - 1:end - 1].strip()
        else:
            snippet = text.strip()
        return line_number, snippet or None
