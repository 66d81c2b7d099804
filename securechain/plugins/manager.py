"""
Registry resolving platform identifiers to plugins
"""

from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional

from loguru import logger

from ..errors import PlatformNotSupported
from ..models.contract import ContractModel
from ..models.finding import Finding
from .base import PlatformPlugin, PluginInfo
from .cairo import CAIRO_PLUGIN
from .evm import EVM_PLUGIN
from .ink import INK_PLUGIN
from .move_lang import MOVE_PLUGIN

BUILTIN_PLUGINS = (EVM_PLUGIN, MOVE_PLUGIN, CAIRO_PLUGIN, INK_PLUGIN)


class PluginManagerBuilder:
    """Collects plugins before freezing them into a PluginManager"""

    def __init__(self):
        self._plugins: Dict[str, PlatformPlugin] = {}

    def register(self, plugin: PlatformPlugin, replace: bool = False) -> "PluginManagerBuilder":
        key = plugin.platform_id.lower()
        if key in self._plugins and not replace:
            raise ValueError(f"Plugin already registered for platform '{plugin.platform_id}'")
        self._plugins[key] = plugin
        return self

    def register_all(self, plugins: Iterable[PlatformPlugin]) -> "PluginManagerBuilder":
        for plugin in plugins:
            self.register(plugin)
        return self

    def with_builtins(self) -> "PluginManagerBuilder":
        return self.register_all(BUILTIN_PLUGINS)

    def build(self) -> "PluginManager":
        return PluginManager(self._plugins)


class PluginManager:
    """
    Read-only registry of platform plugins

    Lookups are case-insensitive. The registry cannot change after
    construction, so concurrent analyses can share one instance.
    """

    def __init__(self, plugins: Optional[Mapping[str, PlatformPlugin]] = None):
        if plugins is None:
            plugins = {plugin.platform_id: plugin for plugin in BUILTIN_PLUGINS}
        self._plugins: Mapping[str, PlatformPlugin] = MappingProxyType(
            {key.lower(): plugin for key, plugin in plugins.items()}
        )
        logger.debug(f"Plugin manager initialized with platforms: {', '.join(self._plugins)}")

    @staticmethod
    def builder() -> PluginManagerBuilder:
        return PluginManagerBuilder()

    @property
    def platforms(self) -> List[str]:
        return list(self._plugins)

    def __contains__(self, platform: str) -> bool:
        return platform.lower() in self._plugins

    def get(self, platform: str) -> PlatformPlugin:
        """
        Resolve a platform identifier

        Raises:
            PlatformNotSupported: When nothing is registered for the identifier
        """
        plugin = self._plugins.get(platform.lower())
        if plugin is None:
            raise PlatformNotSupported(platform)
        return plugin

    def available_plugins(self) -> List[PluginInfo]:
        return [plugin.info() for plugin in self._plugins.values()]

    def analyze(self, contract: ContractModel, platform: str) -> List[Finding]:
        return self.get(platform).analyze(contract)

    def validate(self, contract: ContractModel, platform: str) -> bool:
        return self.get(platform).validate(contract)

    def is_tool_available(self, platform: str, tool: str) -> bool:
        """Whether the platform's plugin lists ``tool`` among its analysis tools"""
        plugin = self._plugins.get(platform.lower())
        return plugin is not None and tool in plugin.tools
