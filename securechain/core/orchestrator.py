"""
Analysis orchestration

For each contract unit the orchestrator runs, strictly in order:

1. Ingest   - source provider + structural parser
2. Static   - platform plugin and static tool backends
3. Dynamic  - fuzzing backends, deep analysis only
4. AI       - AI backend, only when requested
5. Merge    - per-unit outcomes folded into one AnalysisResult

Units are independent and run concurrently. Tool backend failures are
logged and contribute nothing; AI failures abort the run.
"""

import asyncio
import time
from dataclasses import dataclass
from functools import reduce
from typing import List, Optional, Sequence, Tuple, Union

from loguru import logger

from ..backends.base import AIBackend, ToolBackend
from ..backends.normalize import normalize_probe
from ..errors import AiBackendFailure, BackendError, NetworkError, NoContractsFound
from ..models.analysis import AnalysisDepth, AnalysisResult, CreativeProbe
from ..models.contract import ContractModel, SourceUnit
from ..models.finding import Finding
from ..parser.contract_parser import ContractParser
from ..plugins.base import PlatformPlugin
from ..plugins.manager import PluginManager
from .scoring import compute_metrics, coverage_estimate, generate_recommendations, summarize


@dataclass(frozen=True)
class OrchestratorOptions:
    max_concurrent_tasks: int = 4
    # Seconds per backend invocation; None disables the deadline
    backend_timeout: Optional[float] = 300.0
    min_confidence: float = 0.0
    # Used when analyze() is called without an explicit depth
    default_depth: AnalysisDepth = AnalysisDepth.STANDARD


@dataclass(frozen=True)
class UnitOutcome:
    """Everything one contract unit contributes to the merged result"""
    findings: Tuple[Finding, ...] = ()
    tools_used: Tuple[str, ...] = ()
    attempted: int = 0
    succeeded: int = 0
    lines_of_code: int = 0
    functions: int = 0
    contracts: Tuple[str, ...] = ()

    def combine(self, other: "UnitOutcome") -> "UnitOutcome":
        tools = self.tools_used + tuple(t for t in other.tools_used if t not in self.tools_used)
        return UnitOutcome(
            findings=self.findings + other.findings,
            tools_used=tools,
            attempted=self.attempted + other.attempted,
            succeeded=self.succeeded + other.succeeded,
            lines_of_code=self.lines_of_code + other.lines_of_code,
            functions=self.functions + other.functions,
            contracts=self.contracts + other.contracts,
        )


def merge_outcomes(outcomes: Sequence[UnitOutcome]) -> UnitOutcome:
    return reduce(UnitOutcome.combine, outcomes, UnitOutcome())


class _UnitRun:
    """Mutable accumulator for a single unit's phases"""

    def __init__(self, contract: ContractModel):
        self.contract = contract
        self.findings: List[Finding] = []
        self.tools: List[str] = []
        self.attempted = 0
        self.succeeded = 0

    def record(self, tool: str, findings: Optional[List[Finding]]):
        self.attempted += 1
        if findings is None:
            return
        self.succeeded += 1
        self.findings.extend(findings)
        if tool not in self.tools:
            self.tools.append(tool)

    def outcome(self, min_confidence: float) -> UnitOutcome:
        return UnitOutcome(
            findings=tuple(f for f in self.findings if f.confidence >= min_confidence),
            tools_used=tuple(self.tools),
            attempted=self.attempted,
            succeeded=self.succeeded,
            lines_of_code=self.contract.lines_of_code,
            functions=len(self.contract.functions),
            contracts=(self.contract.name,),
        )


class AnalysisOrchestrator:
    """
    Sequences parsing, plugin heuristics, external tools and AI analysis
    """

    def __init__(
        self,
        plugin_manager: PluginManager,
        source_provider,
        parser: Optional[ContractParser] = None,
        static_backends: Sequence[ToolBackend] = (),
        dynamic_backends: Sequence[ToolBackend] = (),
        ai_backend: Optional[AIBackend] = None,
        options: Optional[OrchestratorOptions] = None,
    ):
        """
        Args:
            plugin_manager: Registry of platform plugins
            source_provider: Object with ``async list_units(path) -> List[SourceUnit]``
            parser: Structural parser, a default ContractParser when omitted
            static_backends: Static tool backends, filtered by platform and depth
            dynamic_backends: Fuzzing backends, used for deep analysis only
            ai_backend: Default AI backend for ``use_ai`` and probe generation
            options: Concurrency, deadline and filtering options
        """
        self.plugin_manager = plugin_manager
        self.source_provider = source_provider
        self.parser = parser or ContractParser()
        self.static_backends = tuple(static_backends)
        self.dynamic_backends = tuple(dynamic_backends)
        self.ai_backend = ai_backend
        self.options = options or OrchestratorOptions()

    # Ingest

    async def ingest(self, input_path: str) -> List[ContractModel]:
        """
        Parse every contract unit under ``input_path``

        Raises:
            PathNotFound: From the source provider when the path is missing
            NoContractsFound: When no non-empty unit was found
        """
        units = await self.source_provider.list_units(input_path)
        contracts = self.parse_units(units)
        if not contracts:
            raise NoContractsFound(input_path)
        return contracts

    def parse_units(self, units: Sequence[SourceUnit]) -> List[ContractModel]:
        contracts = []
        for unit in units:
            if not unit.source_code.strip():
                logger.warning(f"Skipping empty contract unit {unit.name}")
                continue
            contracts.append(self.parser.parse_unit(unit))
        return contracts

    # Analysis

    async def analyze(
        self,
        input_path: str,
        target: str,
        depth: Optional[Union[AnalysisDepth, str]] = None,
        use_ai: bool = False,
        backend_timeout: Optional[float] = None,
    ) -> AnalysisResult:
        """
        Analyze every contract under ``input_path`` for ``target``

        Args:
            input_path: File or directory of contracts
            target: Platform identifier, e.g. "evm"
            depth: basic, standard or deep; the configured default when omitted
            use_ai: Run the AI phase; its failures abort the run
            backend_timeout: Per-backend deadline overriding the configured one

        Returns:
            Immutable AnalysisResult

        Raises:
            PlatformNotSupported: Unknown target, raised before any I/O
            PathNotFound: Missing input path
            NoContractsFound: Nothing to analyze
            AiBackendFailure: AI requested and the AI backend failed
        """
        started = time.perf_counter()
        depth = AnalysisDepth(depth if depth is not None else self.options.default_depth)
        plugin = self.plugin_manager.get(target)
        if use_ai and self.ai_backend is None:
            raise AiBackendFailure("none", "AI analysis requested but no AI backend is configured")

        contracts = await self.ingest(input_path)
        timeout = backend_timeout if backend_timeout is not None else self.options.backend_timeout
        logger.info(
            f"Analyzing {len(contracts)} contract(s) for {plugin.platform_id} at depth {depth.value}"
            + (" with AI" if use_ai else "")
        )

        semaphore = asyncio.Semaphore(max(1, self.options.max_concurrent_tasks))

        async def run(contract: ContractModel) -> UnitOutcome:
            async with semaphore:
                return await self._analyze_unit(contract, plugin, depth, use_ai, timeout)

        outcomes = await self._gather([run(contract) for contract in contracts])
        merged = merge_outcomes(outcomes)
        duration = time.perf_counter() - started

        result = AnalysisResult(
            contract_name=contracts[0].name,
            contracts_analyzed=merged.contracts,
            target=plugin.platform_id,
            depth=depth,
            findings=merged.findings,
            summary=summarize(
                merged.findings,
                duration,
                merged.tools_used,
                coverage_estimate(merged.attempted, merged.succeeded),
            ),
            metrics=compute_metrics(merged.findings, merged.lines_of_code, merged.functions),
            recommendations=tuple(generate_recommendations(merged.findings)),
        )
        logger.info(
            f"Analysis complete: {result.summary.total_findings} findings, "
            f"security score {result.metrics.security_score:.1f}, {duration:.2f}s"
        )
        return result

    async def _analyze_unit(
        self,
        contract: ContractModel,
        plugin: PlatformPlugin,
        depth: AnalysisDepth,
        use_ai: bool,
        timeout: Optional[float],
    ) -> UnitOutcome:
        unit = _UnitRun(contract)
        file_path = contract.file_path or contract.name

        logger.debug(f"[{contract.name}] static phase")
        if plugin.validate(contract):
            unit.record(plugin.tool_name, plugin.analyze(contract))
        else:
            logger.warning(f"[{contract.name}] does not look like {plugin.display_name} code, skipping plugin heuristics")
            unit.record(plugin.tool_name, None)

        for backend in self._applicable(self.static_backends, plugin, depth):
            unit.record(backend.table.tool, await self._run_tool(backend, contract, file_path, timeout))

        if depth is AnalysisDepth.DEEP:
            logger.debug(f"[{contract.name}] dynamic phase")
            for backend in self._applicable(self.dynamic_backends, plugin, depth):
                unit.record(backend.table.tool, await self._run_tool(backend, contract, file_path, timeout))

        if use_ai:
            logger.debug(f"[{contract.name}] AI phase")
            raw = await self._call_ai(self.ai_backend, self.ai_backend.analyze(contract), timeout)
            table = self.ai_backend.table
            unit.record(table.tool, [table.normalize(item, file_path) for item in raw])

        return unit.outcome(self.options.min_confidence)

    @staticmethod
    def _applicable(backends: Sequence[ToolBackend], plugin: PlatformPlugin, depth: AnalysisDepth):
        return [
            backend for backend in backends
            if plugin.platform_id in backend.platforms and depth.includes(backend.min_depth)
        ]

    async def _run_tool(
        self,
        backend: ToolBackend,
        contract: ContractModel,
        file_path: str,
        timeout: Optional[float],
    ) -> Optional[List[Finding]]:
        """Run one tool backend; None means it did not complete"""
        tool = backend.table.tool
        try:
            raw = await asyncio.wait_for(backend.run(contract), timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[{contract.name}] {tool} exceeded the {timeout}s deadline, continuing without it")
            return None
        except BackendError as e:
            logger.warning(f"[{contract.name}] {tool} unavailable: {e}")
            return None

        findings = [backend.table.normalize(item, file_path) for item in raw]
        logger.info(f"[{contract.name}] {tool} produced {len(findings)} findings")
        return findings

    @staticmethod
    async def _call_ai(backend: AIBackend, call, timeout: Optional[float]):
        try:
            return await asyncio.wait_for(call, timeout)
        except asyncio.TimeoutError as e:
            raise NetworkError(getattr(backend, "name", "ai"), f"no response within {timeout}s") from e
        except AiBackendFailure as e:
            logger.error(f"AI backend failed: {e}")
            raise

    @staticmethod
    async def _gather(coroutines):
        """Gather in order; on the first error cancel the rest and re-raise"""
        tasks = [asyncio.ensure_future(coroutine) for coroutine in coroutines]
        try:
            return await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    # Creative probes

    async def generate_probes(
        self,
        input_path: str,
        creativity_level: str = "medium",
        ai_backend: Optional[AIBackend] = None,
        want_poc: bool = False,
        backend_timeout: Optional[float] = None,
    ) -> List[CreativeProbe]:
        """
        Ask the AI backend for attack hypotheses on every contract unit

        ``creativity_level`` is handed to the backend untouched. Proof-of-concept
        code is dropped unless ``want_poc`` is set.

        Raises:
            AiBackendFailure: No backend configured, or the backend failed
        """
        backend = ai_backend or self.ai_backend
        if backend is None:
            raise AiBackendFailure("none", "probe generation requires an AI backend")

        contracts = await self.ingest(input_path)
        timeout = backend_timeout if backend_timeout is not None else self.options.backend_timeout
        semaphore = asyncio.Semaphore(max(1, self.options.max_concurrent_tasks))

        async def run(contract: ContractModel) -> List[CreativeProbe]:
            async with semaphore:
                raw = await self._call_ai(backend, backend.probe(contract, creativity_level, want_poc), timeout)
            return [normalize_probe(item, contract.name, want_poc) for item in raw]

        per_unit = await self._gather([run(contract) for contract in contracts])
        probes = [probe for unit_probes in per_unit for probe in unit_probes]
        logger.info(f"Generated {len(probes)} creative probes across {len(contracts)} contract(s)")
        return probes
