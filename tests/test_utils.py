"""
Tests for result persistence, JSON repair, logging and wiring
"""

import json

import httpx
import pytest
from loguru import logger

from securechain.backends import AIAssistant, EchidnaBackend, MythrilBackend, SlitherBackend
from securechain.backends.base import AIBackend, ToolBackend
from securechain.core.scoring import summarize
from securechain.factory import build_orchestrator
from securechain.models import AnalysisDepth, AnalysisResult, CreativeProbe, Finding, Severity, VulnerabilityCategory
from securechain.nodes_config import Settings, nodes_config
from securechain.utils import (
    extract_json_object,
    load_probes,
    load_result,
    repair_json,
    safe_parse_json,
    save_result,
    setup_logger,
)


def make_result():
    finding = Finding(
        title="Potential Reentrancy",
        description="External call before state update",
        severity=Severity.HIGH,
        category=VulnerabilityCategory.REENTRANCY,
        file_path="contracts/Bank.sol",
        line_number=12,
        tool="EVM Plugin",
        confidence=0.8,
        references=("https://swcregistry.io/docs/SWC-107",),
    )
    return AnalysisResult(
        contract_name="Bank",
        contracts_analyzed=("Bank",),
        target="evm",
        depth=AnalysisDepth.DEEP,
        findings=(finding,),
        summary=summarize([finding], 0.25, ["EVM Plugin"], 100.0),
        recommendations=("Fix it",),
    )


@pytest.mark.asyncio
async def test_result_round_trip(tmp_path):
    result = make_result()
    probe = CreativeProbe(title="Drain", description="Flash loan", severity=Severity.CRITICAL, contract_name="Bank")
    path = await save_result(result, str(tmp_path / "out" / "result.json"), probes=[probe])

    document = json.loads(path.read_text(encoding="utf-8"))
    assert document["result"]["findings"][0]["severity"] == "High"
    assert document["result"]["depth"] == "deep"

    assert await load_result(str(path)) == result
    assert await load_probes(str(path)) == [probe]


def test_result_json_helpers():
    result = make_result()
    restored = AnalysisResult.from_json(result.to_json())
    assert restored == result
    assert restored.findings_by_severity()[Severity.HIGH] == [result.findings[0]]


def test_extract_json_object():
    assert extract_json_object('Sure!\n```json\n{"a": 1}\n```') == {"a": 1}
    assert extract_json_object('prefix {"a": {"b": 2}} suffix') == {"a": {"b": 2}}
    assert extract_json_object("{'a': True,}") == {"a": True}
    assert extract_json_object("no json here") is None


def test_repair_json():
    assert json.loads(repair_json('{title: "x", items: [1, 2,],}')) == {"title": "x", "items": [1, 2]}
    assert safe_parse_json("{broken", default={}) == {}


def test_logger_writes_json_file(tmp_path):
    log_file = tmp_path / "logs" / "securechain.log"
    setup_logger("DEBUG", log_file=str(log_file), log_format="json")
    try:
        logger.info("analysis started")
    finally:
        setup_logger("INFO")

    lines = log_file.read_text(encoding="utf-8").splitlines()
    records = [json.loads(line) for line in lines]
    assert any(record["record"]["message"] == "analysis started" for record in records)


def test_settings_defaults():
    settings = nodes_config(AI_BACKEND="anthropic", MAX_CONCURRENT_TASKS=2)
    assert settings.AI_BACKEND == "anthropic"
    assert settings.MAX_CONCURRENT_TASKS == 2
    assert settings["MIN_CONFIDENCE"] == 0.0
    assert ".sol" in settings.ALLOWED_EXTENSIONS


def test_build_orchestrator():
    settings = Settings(
        AI_BACKEND="openai", OPENAI_API_KEY="sk-test", MAX_CONCURRENT_TASKS=8, MIN_CONFIDENCE=0.3, DEFAULT_DEPTH="Deep",
    )
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200, json={})))

    orchestrator = build_orchestrator(settings, http_client=client)

    assert [type(b) for b in orchestrator.static_backends] == [SlitherBackend, MythrilBackend]
    assert [type(b) for b in orchestrator.dynamic_backends] == [EchidnaBackend]
    assert all(isinstance(b, ToolBackend) for b in orchestrator.static_backends)
    assert isinstance(orchestrator.ai_backend, AIAssistant)
    assert isinstance(orchestrator.ai_backend, AIBackend)
    assert orchestrator.ai_backend.config.provider == "openai"
    assert orchestrator.options.max_concurrent_tasks == 8
    assert orchestrator.options.min_confidence == 0.3
    assert orchestrator.options.default_depth == AnalysisDepth.DEEP
    assert "evm" in orchestrator.plugin_manager

    local = build_orchestrator(settings, ai_provider="local", http_client=client)
    assert local.ai_backend.config.provider == "local"
