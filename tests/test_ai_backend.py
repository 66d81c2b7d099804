"""
Tests for the HTTP AI backend
"""

import json

import httpx
import pytest

from securechain.backends.ai import AIAssistant, build_analysis_prompt, build_probe_prompt
from securechain.backends.config import AIConfig
from securechain.errors import MalformedResponse, MissingCredential, NetworkError

ANALYSIS_REPLY = """Here is my analysis:
```json
{
  "vulnerabilities": [
    {
      "title": "Reentrancy in withdraw",
      "description": "State is updated after the external call",
      "severity": "High",
      "category": "Reentrancy",
      "line_number": 12,
      "code_snippet": "msg.sender.call{value: amount}(\\"\\")",
      "exploit_scenario": "Attacker re-enters withdraw",
      "fix_suggestion": "Update balances first",
      "confidence": 0.9
    },
    {"description": "entry without a title is skipped"}
  ],
  "creative_insights": [],
  "recommendations": []
}
```
"""

PROBE_REPLY = {
    "probes": [
        {
            "title": "Flash loan drain",
            "description": "Borrow, re-enter, repay",
            "severity": "Critical",
            "attack_vector": "reentrancy",
            "impact": "All funds",
            "proof_of_concept": "contract Attack {}",
            "recommended_fix": "Guard withdraw",
            "confidence": 0.7,
        }
    ]
}


def make_assistant(handler, provider="openai", api_key="test-key"):
    urls = {
        "openai": "https://api.openai.com/v1/chat/completions",
        "anthropic": "https://api.anthropic.com/v1/messages",
        "local": "http://localhost:11434/api/generate",
    }
    config = AIConfig(provider=provider, api_key=api_key, model="test-model", api_url=urls[provider])
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AIAssistant(config, client=client)


@pytest.mark.asyncio
async def test_openai_analysis(bank):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": ANALYSIS_REPLY}}]})

    assistant = make_assistant(handler)
    findings = await assistant.analyze(bank)

    assert seen["auth"] == "Bearer test-key"
    assert seen["body"]["model"] == "test-model"
    assert "Contract Name: Bank" in seen["body"]["messages"][1]["content"]

    assert len(findings) == 1
    finding = findings[0]
    assert finding.title == "AI: Reentrancy in withdraw"
    assert finding.native_severity == "High"
    assert finding.native_confidence == 0.9
    assert finding.line_number == 12
    assert "Exploit scenario: Attacker re-enters withdraw" in finding.description
    assert finding.recommendation == "Update balances first"
    assert finding.references == ["AI Analysis"]


@pytest.mark.asyncio
async def test_anthropic_headers(bank):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["key"] = request.headers["x-api-key"]
        seen["version"] = request.headers["anthropic-version"]
        return httpx.Response(200, json={"content": [{"type": "text", "text": ANALYSIS_REPLY}]})

    assistant = make_assistant(handler, provider="anthropic")
    findings = await assistant.analyze(bank)

    assert seen == {"key": "test-key", "version": "2023-06-01"}
    assert [f.title for f in findings] == ["AI: Reentrancy in withdraw"]


@pytest.mark.asyncio
async def test_local_probes(bank):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"response": json.dumps(PROBE_REPLY)})

    assistant = make_assistant(handler, provider="local", api_key=None)
    probes = await assistant.probe(bank, "high", want_poc=True)

    assert seen["body"]["stream"] is False
    assert "proof-of-concept" in seen["body"]["prompt"]
    assert len(probes) == 1
    assert probes[0].title == "Flash loan drain"
    assert probes[0].severity == "Critical"
    assert probes[0].proof_of_concept == "contract Attack {}"


@pytest.mark.asyncio
async def test_missing_credential_makes_no_request(bank):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={})

    assistant = make_assistant(handler, api_key=None)
    with pytest.raises(MissingCredential) as excinfo:
        await assistant.analyze(bank)
    assert excinfo.value.variable == "OPENAI_API_KEY"
    assert calls == []


@pytest.mark.asyncio
async def test_http_error_status(bank):
    assistant = make_assistant(lambda request: httpx.Response(500, text="upstream exploded"))
    with pytest.raises(NetworkError) as excinfo:
        await assistant.analyze(bank)
    assert excinfo.value.status_code == 500


@pytest.mark.asyncio
async def test_transport_error(bank):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    assistant = make_assistant(handler)
    with pytest.raises(NetworkError):
        await assistant.analyze(bank)


@pytest.mark.asyncio
async def test_reply_without_json(bank):
    reply = {"choices": [{"message": {"content": "I could not analyze this contract."}}]}
    assistant = make_assistant(lambda request: httpx.Response(200, json=reply))
    with pytest.raises(MalformedResponse):
        await assistant.analyze(bank)


@pytest.mark.asyncio
async def test_reply_missing_fields(bank):
    assistant = make_assistant(lambda request: httpx.Response(200, json={"unexpected": True}))
    with pytest.raises(MalformedResponse):
        await assistant.analyze(bank)


@pytest.mark.asyncio
async def test_loosely_typed_fields_are_coerced(bank):
    reply = {"vulnerabilities": [{"title": "x", "severity": 3, "code_snippet": 12, "fix_suggestion": ["a", "b"]}]}
    assistant = make_assistant(
        lambda request: httpx.Response(200, json={"response": json.dumps(reply)}),
        provider="local",
        api_key=None,
    )

    findings = await assistant.analyze(bank)

    assert findings[0].code_snippet == "12"
    assert findings[0].recommendation == "a\nb"
    assert findings[0].native_severity == "3"


@pytest.mark.asyncio
async def test_attack_hypothesis_fields_are_coerced(bank):
    reply = {"probes": [{"title": "x", "description": "y", "proof_of_concept": ["step 1", "step 2"]}]}
    assistant = make_assistant(
        lambda request: httpx.Response(200, json={"response": json.dumps(reply)}),
        provider="local",
        api_key=None,
    )

    probes = await assistant.probe(bank, "medium", want_poc=True)
    assert probes[0].proof_of_concept == "step 1\nstep 2"


@pytest.mark.asyncio
async def test_anthropic_content_block_not_an_object(bank):
    assistant = make_assistant(
        lambda request: httpx.Response(200, json={"content": ["plain string block"]}),
        provider="anthropic",
    )
    with pytest.raises(MalformedResponse) as excinfo:
        await assistant.analyze(bank)
    assert excinfo.value.provider == "anthropic"


@pytest.mark.asyncio
async def test_invalid_entry_is_malformed_response(bank, monkeypatch):
    reply = {"vulnerabilities": [{"title": "x"}]}
    assistant = make_assistant(
        lambda request: httpx.Response(200, json={"response": json.dumps(reply)}),
        provider="local",
        api_key=None,
    )
    monkeypatch.setattr("securechain.backends.ai._as_int", lambda value: "not a line")

    with pytest.raises(MalformedResponse) as excinfo:
        await assistant.analyze(bank)
    assert excinfo.value.provider == "local"


def test_prompts(bank):
    analysis = build_analysis_prompt(bank)
    assert "```solidity" in analysis
    assert "Compiler Version: 0.8.19" in analysis

    without_poc = build_probe_prompt(bank, "low", want_poc=False)
    assert "well-known vulnerability patterns" in without_poc
    assert "proof_of_concept" not in without_poc

    with_poc = build_probe_prompt(bank, "high", want_poc=True)
    assert '"proof_of_concept"' in with_poc


def test_unknown_provider_rejected():
    with pytest.raises(ValueError):
        AIConfig(provider="mystery")
