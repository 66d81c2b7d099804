"""
Per-platform heuristic analyzers and their registry
"""

from .base import CheckMatch, HeuristicCheck, Platform, PlatformPlugin, PluginInfo
from .evm import EVM_PLUGIN
from .move_lang import MOVE_PLUGIN
from .cairo import CAIRO_PLUGIN
from .ink import INK_PLUGIN
from .manager import BUILTIN_PLUGINS, PluginManager, PluginManagerBuilder

__all__ = [
    "CheckMatch",
    "HeuristicCheck",
    "Platform",
    "PlatformPlugin",
    "PluginInfo",
    "EVM_PLUGIN",
    "MOVE_PLUGIN",
    "CAIRO_PLUGIN",
    "INK_PLUGIN",
    "BUILTIN_PLUGINS",
    "PluginManager",
    "PluginManagerBuilder",
]
