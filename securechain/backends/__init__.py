"""
External analysis backends and finding normalization
"""

from .base import AIBackend, ToolBackend
from .config import AIConfig, FuzzConfig, ToolConfig
from .normalize import (
    AI_TABLE,
    ECHIDNA_TABLE,
    MYTHRIL_TABLE,
    SLITHER_TABLE,
    NormalizationTable,
    normalize_probe,
    normalize_severity,
)
from .slither import SlitherBackend
from .mythril import MythrilBackend
from .echidna import EchidnaBackend
from .ai import AIAssistant

__all__ = [
    "AIBackend",
    "ToolBackend",
    "AIConfig",
    "FuzzConfig",
    "ToolConfig",
    "AI_TABLE",
    "ECHIDNA_TABLE",
    "MYTHRIL_TABLE",
    "SLITHER_TABLE",
    "NormalizationTable",
    "normalize_probe",
    "normalize_severity",
    "SlitherBackend",
    "MythrilBackend",
    "EchidnaBackend",
    "AIAssistant",
]
