"""
AI-assisted vulnerability detection over OpenAI, Anthropic or a local Ollama server
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger
from pydantic import ValidationError

from ..errors import MalformedResponse, MissingCredential, NetworkError
from ..models.analysis import RawProbe
from ..models.contract import ContractModel
from ..models.finding import RawFinding
from ..utils.json_repair import extract_json_object
from .config import AIConfig
from .normalize import AI_TABLE

ANTHROPIC_VERSION = "2023-06-01"
SYSTEM_PROMPT = "You are a senior blockchain security auditor."

ANALYSIS_FOCUS = (
    "Reentrancy vulnerabilities",
    "Access control issues",
    "Integer overflow/underflow",
    "Unchecked external calls",
    "Gas optimization issues",
    "Logic errors and edge cases",
    "Front-running opportunities",
    "Timestamp dependence",
    "Denial of service vulnerabilities",
    "Upgrade mechanism flaws",
)

ATTACK_SCENARIOS = (
    "Economic attacks (flash loans, arbitrage, market manipulation)",
    "Governance attacks (vote manipulation, proposal griefing)",
    "Cross-protocol interactions and composability risks",
    "MEV (Maximal Extractable Value) opportunities",
    "Social engineering combined with technical exploits",
    "Time-based attacks and deadline manipulation",
    "Gas griefing and DoS through resource exhaustion",
    "Oracle manipulation and price feed attacks",
    "Multi-block attacks and state manipulation",
    "Upgrade mechanism exploitation",
)

CREATIVITY_GUIDANCE = {
    "low": "Focus on well-known vulnerability patterns and common mistakes.",
    "medium": "Explore creative combinations of known vulnerabilities and unusual edge cases.",
    "high": (
        "Think creatively about novel attack vectors, complex multi-step exploits, "
        "and unconventional ways to break the contract's assumptions."
    ),
}

FENCE_LANGUAGE = {".sol": "solidity", ".move": "move", ".cairo": "cairo", ".rs": "rust", ".vy": "vyper"}

ANALYSIS_SCHEMA = """{
  "vulnerabilities": [
    {
      "title": "Vulnerability Title",
      "description": "Detailed description",
      "severity": "Critical|High|Medium|Low|Info",
      "category": "Category",
      "line_number": number,
      "code_snippet": "relevant code",
      "exploit_scenario": "how to exploit",
      "fix_suggestion": "how to fix",
      "confidence": 0.0-1.0
    }
  ],
  "creative_insights": ["insight1", "insight2"],
  "recommendations": ["rec1", "rec2"]
}"""


def _fenced_source(contract: ContractModel) -> str:
    language = FENCE_LANGUAGE.get(Path(contract.file_path).suffix.lower(), "solidity")
    return f"```{language}\n{contract.source_code}\n```"


def build_analysis_prompt(contract: ContractModel) -> str:
    lines = [
        "You are a senior blockchain security auditor specializing in smart contract vulnerabilities. "
        "Analyze the following smart contract for security issues, focusing on:",
        "",
    ]
    lines.extend(f"{i}. {focus}" for i, focus in enumerate(ANALYSIS_FOCUS, start=1))
    lines.extend([
        "",
        f"Contract Name: {contract.name}",
        f"Compiler Version: {contract.compiler_version}",
        f"Functions: {len(contract.functions)}",
        f"State Variables: {len(contract.state_variables)}",
    ])
    if contract.inheritance:
        lines.append(f"Inherits from: {', '.join(contract.inheritance)}")
    lines.extend([
        "",
        "Contract Source Code:",
        _fenced_source(contract),
        "",
        "Please provide a detailed analysis in JSON format with the following structure:",
        ANALYSIS_SCHEMA,
    ])
    return "\n".join(lines) + "\n"


def build_probe_prompt(contract: ContractModel, creativity: str, want_poc: bool) -> str:
    lines = [
        "You are a creative blockchain security researcher and white-hat hacker. "
        "Your task is to think outside the box and discover novel attack vectors "
        "and edge cases that traditional static analysis tools might miss.",
        "",
        CREATIVITY_GUIDANCE.get(creativity.lower(), "Explore creative vulnerability scenarios."),
        "",
        "Consider these creative attack scenarios:",
    ]
    lines.extend(f"{i}. {scenario}" for i, scenario in enumerate(ATTACK_SCENARIOS, start=1))
    lines.extend(["", f"Contract to analyze: {contract.name}", _fenced_source(contract), ""])
    if want_poc:
        lines.append("For each vulnerability, provide a proof-of-concept exploit code.")

    fields = [
        '      "title": "Creative Attack Title",',
        '      "description": "Detailed attack description",',
        '      "severity": "Critical|High|Medium|Low",',
        '      "attack_vector": "How the attack works",',
        '      "impact": "What damage it can cause",',
    ]
    if want_poc:
        fields.append('      "proof_of_concept": "Exploit code",')
    fields.extend([
        '      "recommended_fix": "How to prevent it",',
        '      "confidence": 0.0-1.0',
    ])
    lines.append("Provide your analysis in JSON format with creative probes:")
    lines.extend(['{', '  "probes": [', '    {', *fields, '    }', '  ]', '}'])
    return "\n".join(lines) + "\n"


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(value) if isinstance(value, str) else None
    except ValueError:
        return None


def _as_text(value: Any) -> Optional[str]:
    if value is None or value == "" or value == []:
        return None
    if isinstance(value, list):
        return "\n".join(str(part) for part in value)
    return str(value)


class AIAssistant:
    """
    AI backend speaking the OpenAI, Anthropic or Ollama HTTP APIs

    Every failure raises an AiBackendFailure subclass; nothing is swallowed.
    """

    table = AI_TABLE

    def __init__(self, config: AIConfig, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self.name = f"AI Assistant ({config.provider})"
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=httpx.Timeout(config.timeout))
        logger.debug(f"Initialized AIAssistant with provider {config.provider}, model {config.model}")

    async def aclose(self):
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "AIAssistant":
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def analyze(self, contract: ContractModel) -> List[RawFinding]:
        """
        Ask the model for vulnerabilities in a contract

        Args:
            contract: Parsed contract

        Returns:
            Raw findings in the model's own severity and category vocabulary
        """
        content = await self.complete(build_analysis_prompt(contract))
        data = self._json_object(content)
        items = data.get("vulnerabilities", [])
        if not isinstance(items, list):
            raise MalformedResponse(self.config.provider, "'vulnerabilities' is not a list")

        findings = []
        for item in items:
            if not isinstance(item, dict) or not item.get("title"):
                logger.debug(f"Skipping malformed AI vulnerability entry: {item!r}")
                continue
            description = str(item.get("description") or "")
            if item.get("exploit_scenario"):
                description = f"{description}\n\nExploit scenario: {item['exploit_scenario']}".strip()
            try:
                findings.append(RawFinding(
                    title=f"AI: {item['title']}",
                    description=description,
                    native_severity=_as_text(item.get("severity")),
                    native_confidence=_as_float(item.get("confidence")),
                    native_category=_as_text(item.get("category")),
                    line_number=_as_int(item.get("line_number")),
                    code_snippet=_as_text(item.get("code_snippet")),
                    recommendation=_as_text(item.get("fix_suggestion")),
                    references=["AI Analysis"],
                ))
            except ValidationError as e:
                raise MalformedResponse(self.config.provider, f"invalid vulnerability entry: {e}") from e

        logger.info(f"AI analysis of {contract.name} returned {len(findings)} vulnerabilities")
        return findings

    async def probe(self, contract: ContractModel, creativity: str, want_poc: bool) -> List[RawProbe]:
        """Ask the model for creative attack hypotheses"""
        content = await self.complete(build_probe_prompt(contract, creativity, want_poc))
        data = self._json_object(content)
        items = data.get("probes", [])
        if not isinstance(items, list):
            raise MalformedResponse(self.config.provider, "'probes' is not a list")

        probes = []
        for item in items:
            if not isinstance(item, dict) or not item.get("title") or not item.get("description"):
                logger.debug(f"Skipping malformed probe entry: {item!r}")
                continue
            try:
                probes.append(RawProbe(
                    title=str(item["title"]),
                    description=str(item["description"]),
                    severity=_as_text(item.get("severity")),
                    attack_vector=str(item.get("attack_vector") or ""),
                    impact=str(item.get("impact") or ""),
                    proof_of_concept=_as_text(item.get("proof_of_concept")),
                    recommended_fix=_as_text(item.get("recommended_fix")),
                    confidence=_as_float(item.get("confidence")),
                ))
            except ValidationError as e:
                raise MalformedResponse(self.config.provider, f"invalid probe entry: {e}") from e
        return probes

    async def complete(self, prompt: str) -> str:
        """Send a prompt to the configured provider and return the reply text"""
        provider = self.config.provider
        if provider == "openai":
            return await self._complete_openai(prompt)
        if provider == "anthropic":
            return await self._complete_anthropic(prompt)
        return await self._complete_local(prompt)

    async def _complete_openai(self, prompt: str) -> str:
        if not self.config.api_key:
            raise MissingCredential("openai", "OPENAI_API_KEY")
        body = {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }
        headers = {"Authorization": f"Bearer {self.config.api_key}"}
        data = await self._post(body, headers)
        try:
            return data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise MalformedResponse("openai", f"missing choices[0].message.content ({e})") from e

    async def _complete_anthropic(self, prompt: str) -> str:
        if not self.config.api_key:
            raise MissingCredential("anthropic", "ANTHROPIC_API_KEY")
        body = {
            "model": self.config.model,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "system": SYSTEM_PROMPT,
            "messages": [{"role": "user", "content": prompt}],
        }
        headers = {
            "x-api-key": self.config.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }
        data = await self._post(body, headers)
        try:
            return "".join(block["text"] for block in data["content"] if block.get("type", "text") == "text")
        except (AttributeError, KeyError, TypeError) as e:
            raise MalformedResponse("anthropic", f"missing content text ({e})") from e

    async def _complete_local(self, prompt: str) -> str:
        body = {
            "model": self.config.model,
            "prompt": f"{SYSTEM_PROMPT}\n\n{prompt}",
            "stream": False,
            "options": {
                "temperature": self.config.temperature,
                "num_predict": self.config.max_tokens,
            },
        }
        data = await self._post(body, {})
        text = data.get("response") if isinstance(data, dict) else None
        if not isinstance(text, str):
            raise MalformedResponse("local", "missing 'response' field")
        return text

    async def _post(self, body: Dict[str, Any], headers: Dict[str, str]) -> Any:
        provider = self.config.provider
        try:
            response = await self.client.post(self.config.api_url, json=body, headers=headers)
        except httpx.TimeoutException as e:
            raise NetworkError(provider, f"request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise NetworkError(provider, str(e) or e.__class__.__name__) from e

        if response.status_code != 200:
            logger.error(f"{provider} API error: {response.status_code} - {response.text[:500]}")
            raise NetworkError(provider, response.text[:200] or response.reason_phrase, response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponse(provider, f"response body is not JSON ({e})") from e

    def _json_object(self, content: str) -> Dict[str, Any]:
        data = extract_json_object(content)
        if data is None:
            raise MalformedResponse(self.config.provider, "no JSON object in model reply")
        return data
