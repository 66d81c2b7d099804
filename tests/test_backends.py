"""
Tests for the external tool backends and their output parsers
"""

import asyncio
import json
import sys

import pytest

from securechain.backends.config import AIConfig, FuzzConfig, ToolConfig
from securechain.backends.echidna import EchidnaBackend, build_config
from securechain.backends.mythril import MythrilBackend
from securechain.backends.process import contract_workspace, run_tool, source_filename
from securechain.backends.slither import SlitherBackend, format_check
from securechain.errors import BackendExecutionFailed, BackendUnavailable
from securechain.nodes_config import Settings, nodes_config

SLITHER_OUTPUT = {
    "success": True,
    "error": None,
    "results": {
        "detectors": [
            {
                "check": "reentrancy-eth",
                "impact": "High",
                "confidence": "Medium",
                "description": "Reentrancy in Bank.withdraw(uint256)\n",
                "elements": [
                    {
                        "type": "function",
                        "source_mapping": {"lines": [12], "starting_column": 23, "ending_column": 53},
                    }
                ],
            },
            {
                "check": "naming-convention",
                "impact": "Informational",
                "confidence": "High",
                "description": "Parameter is not in mixedCase",
                "elements": [],
            },
        ]
    },
}

MYTHRIL_OUTPUT = {
    "success": True,
    "error": None,
    "issues": [
        {
            "title": "External Call To User-Supplied Address",
            "description": "A call to a user-supplied address is executed.",
            "severity": "Low",
            "swc-id": "107",
            "lineno": 12,
        },
        {
            "title": "Integer Arithmetic Bugs",
            "description": "Overflow",
            "severity": "High",
            "swc-id": "101",
            "source_map": {"line": 14},
        },
    ],
}


def test_slither_parse_output(bank):
    findings = SlitherBackend().parse_output(json.dumps(SLITHER_OUTPUT), bank)

    assert len(findings) == 2
    reentrancy, naming = findings
    assert reentrancy.title == "Slither: Reentrancy Eth"
    assert reentrancy.native_severity == "High"
    assert reentrancy.native_confidence == "Medium"
    assert reentrancy.native_category == "reentrancy-eth"
    assert reentrancy.line_number == 12
    assert reentrancy.code_snippet == "msg.sender.call{value: amount}"
    assert reentrancy.cwe_id == "CWE-362"
    assert reentrancy.references[-1].endswith("#reentrancy-eth")
    assert naming.line_number is None
    assert naming.recommendation is None


def test_slither_malformed_output(bank):
    with pytest.raises(BackendExecutionFailed):
        SlitherBackend().parse_output("Compilation failed", bank)
    with pytest.raises(BackendExecutionFailed):
        SlitherBackend().parse_output(json.dumps({"success": False, "error": "solc missing"}), bank)


@pytest.mark.parametrize("document", [
    {"results": {"detectors": ["oops"]}},
    {"results": {"detectors": [{"check": "timestamp", "elements": [{"source_mapping": {"lines": ["n/a"]}}]}]}},
    {"results": {"detectors": [{"check": "timestamp", "impact": ["High"]}]}},
    {"results": ["not", "a", "mapping"]},
])
def test_slither_wrongly_shaped_output(bank, document):
    with pytest.raises(BackendExecutionFailed) as excinfo:
        SlitherBackend().parse_output(json.dumps(document), bank)
    assert "malformed output" in str(excinfo.value)


def test_format_check():
    assert format_check("unchecked-lowlevel") == "Unchecked Lowlevel"
    assert format_check("arbitrary_send_eth") == "Arbitrary Send Eth"


def test_mythril_parse_output(bank):
    findings = MythrilBackend().parse_output(json.dumps(MYTHRIL_OUTPUT), bank)

    assert [f.title for f in findings] == [
        "Mythril: External Call To User-Supplied Address",
        "Mythril: Integer Arithmetic Bugs",
    ]
    assert findings[0].cwe_id == "SWC-107"
    assert findings[0].references == ["https://swcregistry.io/docs/SWC-107"]
    assert findings[0].code_snippet.startswith("(bool ok, )")
    assert findings[1].line_number == 14
    assert findings[1].native_category == "SymbolicExecution"


@pytest.mark.parametrize("issues", [
    [{"title": "x", "lineno": "n/a"}],
    ["just a string"],
    [{"title": "x", "severity": 3}],
])
def test_mythril_wrongly_shaped_output(bank, issues):
    with pytest.raises(BackendExecutionFailed) as excinfo:
        MythrilBackend().parse_output(json.dumps({"success": True, "issues": issues}), bank)
    assert excinfo.value.tool == "Mythril"


def test_echidna_tests_document():
    output = json.dumps({
        "success": True,
        "tests": [
            {"name": "echidna_balance_under_limit", "status": "solved", "type": "property",
             "transactions": [{"function": "deposit", "arguments": ["1"]}]},
            {"name": "echidna_owner_fixed", "status": "passed", "type": "property"},
            {"name": "assert_invariant", "status": "solved", "type": "assertion"},
        ],
    })
    findings = EchidnaBackend().parse_output(output)

    assert [f.title for f in findings] == [
        "Echidna: Property violation in echidna_balance_under_limit",
        "Echidna: Assertion failure in assert_invariant",
    ]
    assert findings[0].native_severity == "Property violation"
    assert "deposit" in findings[0].description


def test_echidna_json_lines():
    output = "\n".join([
        "Analyzing contract: Bank",
        json.dumps({"property": "echidna_solvent", "status": "failed", "error": "execution reverted"}),
        json.dumps({"property": "echidna_ok", "status": "passed"}),
    ])
    findings = EchidnaBackend().parse_output(output)
    assert len(findings) == 1
    assert findings[0].native_severity == "Revert"


def test_echidna_text_fallback():
    assert EchidnaBackend().parse_output("echidna_ok: passing") == []

    findings = EchidnaBackend().parse_output("echidna_solvent: FAILED!")
    assert len(findings) == 1
    assert findings[0].native_severity == "high"
    assert findings[0].native_confidence == 0.9


def test_echidna_config(parser):
    contract = parser.parse(
        """pragma solidity 0.8.19;
contract Fuzzed {
    uint256 public x;
    function echidna_x_small() public view returns (bool ok) {
        return x < 10;
    }
    function set(uint256 v) public {
        x = v;
    }
}
""",
        "Fuzzed",
    )
    config = build_config(contract, FuzzConfig(test_limit=50, shrink_limit=10, seq_len=5))

    assert "testLimit: 50\n" in config
    assert "seqLen: 5\n" in config
    assert 'filterFunctions: ["Fuzzed.echidna_x_small"]' in config


def test_source_filename(bank, parser):
    assert source_filename(bank) == "Bank.sol"
    unnamed = parser.parse("contract X {}", "My Contract")
    assert source_filename(unnamed) == "My_Contract.sol"


@pytest.mark.asyncio
async def test_contract_workspace_cleans_up(bank):
    async with contract_workspace(bank) as source_file:
        assert source_file.read_text(encoding="utf-8") == bank.source_code
        workspace = source_file.parent
    assert not workspace.exists()


@pytest.mark.asyncio
async def test_run_tool_missing_executable():
    with pytest.raises(BackendUnavailable) as excinfo:
        await run_tool("Ghost", ["securechain-no-such-tool"], timeout=5)
    assert excinfo.value.tool == "Ghost"


@pytest.mark.asyncio
async def test_run_tool_exit_code():
    with pytest.raises(BackendExecutionFailed) as excinfo:
        await run_tool("Python", [sys.executable, "-c", "import sys; sys.exit(3)"], timeout=30)
    assert excinfo.value.exit_code == 3


@pytest.mark.asyncio
async def test_run_tool_nonzero_exit_with_output():
    result = await run_tool("Python", [sys.executable, "-c", "print('{}'); raise SystemExit(1)"], timeout=30)
    assert result.returncode == 1
    assert result.stdout.strip() == "{}"


@pytest.mark.asyncio
async def test_run_tool_timeout():
    with pytest.raises(BackendExecutionFailed) as excinfo:
        await run_tool("Python", [sys.executable, "-c", "import time; time.sleep(10)"], timeout=0.2)
    assert "timed out" in str(excinfo.value)


@pytest.mark.asyncio
async def test_run_tool_cancel_reaps_child(monkeypatch):
    spawned = []
    create = asyncio.create_subprocess_exec

    async def recording_create(*args, **kwargs):
        process = await create(*args, **kwargs)
        spawned.append(process)
        return process

    monkeypatch.setattr(asyncio, "create_subprocess_exec", recording_create)
    task = asyncio.ensure_future(
        run_tool("Python", [sys.executable, "-c", "import time; time.sleep(30)"], timeout=60)
    )
    while not spawned:
        await asyncio.sleep(0.01)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert spawned[0].returncode is not None


@pytest.mark.asyncio
async def test_slither_backend_unavailable(bank):
    backend = SlitherBackend(ToolConfig(executable="securechain-no-such-slither"))
    with pytest.raises(BackendUnavailable):
        await backend.run(bank)


def test_tool_config_from_settings():
    settings = nodes_config(MYTHRIL_MAX_DEPTH=12, SLITHER_ARGS=["--exclude-informational"])

    slither = ToolConfig.slither_from_settings(settings)
    assert slither.executable == "slither"
    assert slither.extra_args == ["--exclude-informational"]

    mythril = ToolConfig.mythril_from_settings(settings)
    assert mythril.extra_args[:2] == ["--max-depth", "12"]


def test_ai_config_from_settings():
    settings = Settings(AI_BACKEND="openai", OPENAI_API_KEY="sk-test", OPENAI_MODEL="gpt-4")
    config = AIConfig.from_settings(settings)
    assert config.provider == "openai"
    assert config.api_key == "sk-test"
    assert config.model == "gpt-4"

    local = AIConfig.from_settings(settings, provider="local")
    assert local.api_key is None
    assert local.api_url.endswith("/api/generate")
