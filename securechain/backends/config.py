"""
Explicit configuration handed to backend constructors

Backends never read the environment themselves; everything they need
arrives through these objects.
"""

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

PROVIDERS = ("openai", "anthropic", "local")


def _get(settings: Any, key: str) -> Any:
    if isinstance(settings, Mapping):
        return settings[key]
    return getattr(settings, key)


@dataclass(frozen=True)
class ToolConfig:
    """How to invoke one external analysis tool"""
    executable: str
    timeout: float = 300.0
    extra_args: List[str] = field(default_factory=list)

    @classmethod
    def slither_from_settings(cls, settings: Any) -> "ToolConfig":
        return cls(
            executable=_get(settings, "SLITHER_EXECUTABLE"),
            timeout=float(_get(settings, "SLITHER_TIMEOUT")),
            extra_args=list(_get(settings, "SLITHER_ARGS")),
        )

    @classmethod
    def mythril_from_settings(cls, settings: Any) -> "ToolConfig":
        return cls(
            executable=_get(settings, "MYTHRIL_EXECUTABLE"),
            timeout=float(_get(settings, "MYTHRIL_TIMEOUT")),
            extra_args=["--max-depth", str(_get(settings, "MYTHRIL_MAX_DEPTH"))]
            + list(_get(settings, "MYTHRIL_ARGS")),
        )

    @classmethod
    def echidna_from_settings(cls, settings: Any) -> "ToolConfig":
        return cls(
            executable=_get(settings, "ECHIDNA_EXECUTABLE"),
            timeout=float(_get(settings, "ECHIDNA_TIMEOUT")),
            extra_args=list(_get(settings, "ECHIDNA_ARGS")),
        )


@dataclass(frozen=True)
class FuzzConfig:
    test_limit: int = 10000
    shrink_limit: int = 5000
    seq_len: int = 100

    @classmethod
    def from_settings(cls, settings: Any) -> "FuzzConfig":
        return cls(
            test_limit=int(_get(settings, "ECHIDNA_TEST_LIMIT")),
            shrink_limit=int(_get(settings, "ECHIDNA_SHRINK_LIMIT")),
            seq_len=int(_get(settings, "ECHIDNA_SEQ_LEN")),
        )


@dataclass(frozen=True)
class AIConfig:
    """Provider selection, credentials and generation parameters"""
    provider: str = "local"
    api_key: Optional[str] = None
    model: str = "codellama:7b"
    api_url: str = "http://localhost:11434/api/generate"
    max_tokens: int = 4000
    temperature: float = 0.1
    timeout: float = 120.0

    def __post_init__(self):
        if self.provider not in PROVIDERS:
            raise ValueError(f"Unknown AI provider '{self.provider}', expected one of {', '.join(PROVIDERS)}")

    @classmethod
    def from_settings(cls, settings: Any, provider: Optional[str] = None) -> "AIConfig":
        provider = (provider or _get(settings, "AI_BACKEND")).lower()
        common = dict(
            provider=provider,
            max_tokens=int(_get(settings, "AI_MAX_TOKENS")),
            temperature=float(_get(settings, "AI_TEMPERATURE")),
            timeout=float(_get(settings, "AI_REQUEST_TIMEOUT")),
        )
        if provider == "openai":
            return cls(
                api_key=_get(settings, "OPENAI_API_KEY") or None,
                model=_get(settings, "OPENAI_MODEL"),
                api_url=_get(settings, "OPENAI_API_URL"),
                **common,
            )
        if provider == "anthropic":
            return cls(
                api_key=_get(settings, "ANTHROPIC_API_KEY") or None,
                model=_get(settings, "ANTHROPIC_MODEL"),
                api_url=_get(settings, "ANTHROPIC_API_URL"),
                **common,
            )
        base_url = _get(settings, "OLLAMA_URL").rstrip("/")
        return cls(
            model=_get(settings, "OLLAMA_MODEL"),
            api_url=f"{base_url}/api/generate",
            **common,
        )
