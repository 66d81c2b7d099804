"""
Utility functions for SecureChain
"""

from .logger import setup_logger, setup_logger_from_settings
from .json_repair import extract_json_object, iter_json_lines, repair_json, safe_parse_json
from .result_store import load_probes, load_result, save_result

__all__ = [
    "setup_logger",
    "setup_logger_from_settings",
    "extract_json_object",
    "iter_json_lines",
    "repair_json",
    "safe_parse_json",
    "load_probes",
    "load_result",
    "save_result",
]
