"""
Echidna property-based fuzzing backend
"""

import json
from typing import Any, Dict, Iterable, List, Optional

import aiofiles
from loguru import logger
from pydantic import ValidationError

from ..errors import BackendExecutionFailed
from ..models.analysis import AnalysisDepth
from ..models.contract import ContractModel
from ..models.finding import RawFinding, VulnerabilityCategory
from ..utils.json_repair import iter_json_lines
from .config import FuzzConfig, ToolConfig
from .normalize import ECHIDNA_TABLE
from .process import contract_workspace, run_tool

PROPERTY_PREFIX = "echidna_"
DEFAULT_SENDER = "0x00a329c0648769A73afAc7F9381E08FB43dBEA72"
ECHIDNA_DOCS = "https://github.com/crytic/echidna"


def build_config(contract: ContractModel, fuzz: FuzzConfig) -> str:
    """Render echidna.yaml for a contract"""
    properties = [func.name for func in contract.functions if func.name.startswith(PROPERTY_PREFIX)]
    lines = [
        f"testLimit: {fuzz.test_limit}",
        f"shrinkLimit: {fuzz.shrink_limit}",
        f"seqLen: {fuzz.seq_len}",
        f'contractAddr: "{DEFAULT_SENDER}"',
        f'deployer: "{DEFAULT_SENDER}"',
        f'sender: ["{DEFAULT_SENDER}"]',
        f'psender: "{DEFAULT_SENDER}"',
        f'prefix: "{PROPERTY_PREFIX}"',
        "codeSize: 0x6000",
        'corpusDir: "corpus"',
        "coverage: true",
        "checkAsserts: true",
    ]
    if properties:
        names = ", ".join(f'"{contract.name}.{name}"' for name in properties)
        lines.append("filterBlacklist: false")
        lines.append(f"filterFunctions: [{names}]")
    return "\n".join(lines) + "\n"


def failure_kind(test: Dict[str, Any]) -> str:
    test_type = str(test.get("test_type") or test.get("type") or "").lower()
    error = str(test.get("error") or "").lower()
    if "revert" in error:
        return "Revert"
    if test_type == "property":
        return "Property violation"
    if test_type in ("assertion", "assert") or "assert" in error:
        return "Assertion failure"
    return "Info"


class EchidnaBackend:
    """Runs Echidna against the contract's echidna_* properties"""

    name = "Echidna"
    table = ECHIDNA_TABLE
    min_depth = AnalysisDepth.DEEP
    platforms = ("evm",)

    def __init__(self, config: Optional[ToolConfig] = None, fuzz: Optional[FuzzConfig] = None):
        self.config = config or ToolConfig(executable="echidna-test", timeout=600.0)
        self.fuzz = fuzz or FuzzConfig()

    async def run(self, contract: ContractModel) -> List[RawFinding]:
        async with contract_workspace(contract) as source_file:
            config_file = source_file.parent / "echidna.yaml"
            async with aiofiles.open(config_file, "w") as f:
                await f.write(build_config(contract, self.fuzz))

            cmd = [
                self.config.executable, str(source_file),
                "--config", str(config_file),
                "--format", "json",
                *self.config.extra_args,
            ]
            result = await run_tool(self.name, cmd, self.config.timeout, cwd=str(source_file.parent))
        return self.parse_output(result.stdout)

    def parse_output(self, output: str) -> List[RawFinding]:
        """
        Collect failed tests from Echidna output

        Both the single-document format (``{"tests": [...]}``) and one JSON
        object per line are accepted. Plain text output falls back to a
        single finding when it reports a failure.
        """
        records = list(self._records(output))
        if not records:
            return self._text_fallback(output)

        try:
            findings = [
                self._to_raw(test)
                for test in records
                if str(test.get("status", "")).lower() in ("failed", "solved", "falsified")
            ]
        except (TypeError, ValueError, ValidationError) as e:
            raise BackendExecutionFailed(self.name, f"malformed output: {e}") from e
        logger.debug(f"Echidna reported {len(findings)} failed properties")
        return findings

    @staticmethod
    def _records(output: str) -> Iterable[Dict[str, Any]]:
        try:
            document = json.loads(output)
        except json.JSONDecodeError:
            document = None
        if isinstance(document, dict) and isinstance(document.get("tests"), list):
            return [test for test in document["tests"] if isinstance(test, dict)]
        return [line for line in iter_json_lines(output) if "status" in line]

    def _to_raw(self, test: Dict[str, Any]) -> RawFinding:
        prop = test.get("property") or test.get("name") or "unknown property"
        kind = failure_kind(test)
        sequence = test.get("call_sequence") or test.get("transactions") or []

        details = [f"Echidna falsified '{prop}'."]
        if test.get("error"):
            details.append(f"Error: {test['error']}")
        if sequence:
            details.append(f"Call sequence: {json.dumps(sequence)}")
        if test.get("gas_used") is not None:
            details.append(f"Gas used: {test['gas_used']}")
        if test.get("stack_trace"):
            details.append(f"Stack trace: {test['stack_trace']}")

        return RawFinding(
            title=f"Echidna: {kind} in {prop}",
            description="\n".join(details),
            native_severity=kind,
            native_category=VulnerabilityCategory.FUZZING.value,
            recommendation="Reproduce the call sequence in a unit test and fix the violated invariant.",
            references=[ECHIDNA_DOCS],
        )

    @staticmethod
    def _text_fallback(output: str) -> List[RawFinding]:
        if "FAILED" not in output and "AssertionFailed" not in output:
            return []
        return [RawFinding(
            title="Echidna: Property violation",
            description="Echidna reported a failing property or assertion:\n" + output.strip()[-2000:],
            native_severity="high",
            native_confidence=0.9,
            native_category=VulnerabilityCategory.FUZZING.value,
            references=[ECHIDNA_DOCS],
        )]
