"""
Wiring of settings into a ready-to-use AnalysisOrchestrator
"""

from typing import Optional

import httpx
from loguru import logger

from .backends.ai import AIAssistant
from .backends.config import AIConfig, FuzzConfig, ToolConfig
from .backends.echidna import EchidnaBackend
from .backends.mythril import MythrilBackend
from .backends.slither import SlitherBackend
from .core.orchestrator import AnalysisOrchestrator, OrchestratorOptions
from .models.analysis import AnalysisDepth
from .nodes_config import nodes_config
from .plugins.manager import PluginManager
from .sources.local import LocalSourceProvider


def build_orchestrator(
    settings=None,
    ai_provider: Optional[str] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    plugin_manager: Optional[PluginManager] = None,
) -> AnalysisOrchestrator:
    """
    Build an orchestrator from settings

    Args:
        settings: Settings object or Box view, loaded from the environment when omitted
        ai_provider: Override of the configured AI provider
        http_client: Client shared with the AI backend, mainly for tests
        plugin_manager: Custom plugin registry, the built-in plugins when omitted

    Returns:
        AnalysisOrchestrator with the local source provider and all backends
    """
    if settings is None:
        settings = nodes_config()

    static_backends = [
        SlitherBackend(ToolConfig.slither_from_settings(settings)),
        MythrilBackend(ToolConfig.mythril_from_settings(settings)),
    ]
    dynamic_backends = [
        EchidnaBackend(ToolConfig.echidna_from_settings(settings), FuzzConfig.from_settings(settings)),
    ]
    ai_backend = AIAssistant(AIConfig.from_settings(settings, ai_provider), client=http_client)

    options = OrchestratorOptions(
        max_concurrent_tasks=int(settings.MAX_CONCURRENT_TASKS),
        backend_timeout=float(settings.DEFAULT_TIMEOUT),
        min_confidence=float(settings.MIN_CONFIDENCE),
        default_depth=AnalysisDepth(str(settings.DEFAULT_DEPTH).lower()),
    )
    source_provider = LocalSourceProvider(
        allowed_extensions=settings.ALLOWED_EXTENSIONS,
        max_file_size_mb=settings.MAX_FILE_SIZE_MB,
    )

    logger.debug(f"Building orchestrator with AI provider {ai_backend.config.provider}")
    return AnalysisOrchestrator(
        plugin_manager=plugin_manager or PluginManager.builder().with_builtins().build(),
        source_provider=source_provider,
        static_backends=static_backends,
        dynamic_backends=dynamic_backends,
        ai_backend=ai_backend,
        options=options,
    )
