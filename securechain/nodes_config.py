from typing import Tuple, Type, List
from box import Box
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, PyprojectTomlConfigSettingsSource, SettingsConfigDict


class Settings(BaseSettings):
    model_config: SettingsConfigDict = SettingsConfigDict(
        pyproject_toml_depth=1,
        pyproject_toml_table_header=('tool', 'securechain'),
        toml_file='pyproject.toml',
        extra='ignore',
        env_file='.env',
        env_file_encoding='utf-8',
        env_ignore_empty=True,
        use_enum_values=True,
        strict=False
    )

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""
    LOG_FORMAT: str = "text"  # Options: text, json
    MAX_LOG_SIZE_MB: int = 100
    LOG_RETENTION: int = 5

    # Orchestration
    MAX_CONCURRENT_TASKS: int = 4
    DEFAULT_TIMEOUT: float = 300.0
    DEFAULT_DEPTH: str = "standard"  # Options: basic, standard, deep
    MIN_CONFIDENCE: float = 0.0

    # Source discovery
    ALLOWED_EXTENSIONS: List[str] = [".sol", ".move", ".cairo", ".rs"]
    MAX_FILE_SIZE_MB: int = 10

    # AI backend
    AI_BACKEND: str = "local"  # Options: openai, anthropic, local
    AI_MAX_TOKENS: int = 4000
    AI_TEMPERATURE: float = 0.1
    AI_REQUEST_TIMEOUT: float = 120.0

    OPENAI_API_KEY: str = ""
    OPENAI_API_URL: str = "https://api.openai.com/v1/chat/completions"
    OPENAI_MODEL: str = "gpt-4"

    ANTHROPIC_API_KEY: str = ""
    ANTHROPIC_API_URL: str = "https://api.anthropic.com/v1/messages"
    ANTHROPIC_MODEL: str = "claude-3-sonnet-20240229"

    OLLAMA_URL: str = "http://localhost:11434"
    OLLAMA_MODEL: str = "codellama:7b"

    # External tools
    SLITHER_EXECUTABLE: str = "slither"
    SLITHER_TIMEOUT: float = 300.0
    SLITHER_ARGS: List[str] = []

    MYTHRIL_EXECUTABLE: str = "myth"
    MYTHRIL_TIMEOUT: float = 600.0
    MYTHRIL_MAX_DEPTH: int = 12
    MYTHRIL_ARGS: List[str] = []

    ECHIDNA_EXECUTABLE: str = "echidna-test"
    ECHIDNA_TIMEOUT: float = 600.0
    ECHIDNA_TEST_LIMIT: int = 10000
    ECHIDNA_SHRINK_LIMIT: int = 5000
    ECHIDNA_SEQ_LEN: int = 100
    ECHIDNA_ARGS: List[str] = []

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            PyprojectTomlConfigSettingsSource(settings_cls),
        )


def nodes_config(**overrides) -> Box:
    """Settings wrapped in a Box for attribute and key access"""
    return Box(Settings(**overrides).model_dump(), frozen_box=False)
