"""
Error types raised by SecureChain

Errors fall into three groups:

* caller misconfiguration (missing path, unknown platform, no contracts) which
  aborts the whole run,
* backend errors from external tools which the orchestrator absorbs and logs,
* AI backend failures which abort the run because AI was explicitly requested.
"""

from typing import Optional


class SecureChainError(Exception):
    """Base class for every error raised by the package"""


class NoContractsFound(SecureChainError):
    """The input path produced zero parseable contract units"""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"No contracts found in {path}")


class PathNotFound(SecureChainError):
    """The input path does not exist"""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Path not found: {path}")


class PlatformNotSupported(SecureChainError):
    """No plugin is registered for the requested platform identifier"""

    def __init__(self, platform: str):
        self.platform = platform
        super().__init__(f"Platform not supported: {platform}")


class ContractReadError(SecureChainError):
    """Reading contract source from disk failed"""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to read {path}: {reason}")


class BackendError(SecureChainError):
    """Base class for recoverable external tool failures"""

    def __init__(self, tool: str, message: str):
        self.tool = tool
        super().__init__(f"{tool}: {message}")


class BackendUnavailable(BackendError):
    """The tool executable is not installed or not on PATH"""

    def __init__(self, tool: str, executable: Optional[str] = None):
        self.executable = executable or tool
        super().__init__(tool, f"executable '{self.executable}' not found")


class BackendExecutionFailed(BackendError):
    """The tool ran but exited badly, timed out or produced unusable output"""

    def __init__(self, tool: str, reason: str, exit_code: Optional[int] = None):
        self.reason = reason
        self.exit_code = exit_code
        detail = reason if exit_code is None else f"{reason} (exit code {exit_code})"
        super().__init__(tool, detail)


class AiBackendFailure(SecureChainError):
    """Base class for AI backend failures; always surfaced to the caller"""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(f"AI backend '{provider}' failed: {message}")


class MissingCredential(AiBackendFailure):
    def __init__(self, provider: str, variable: str):
        self.variable = variable
        super().__init__(provider, f"missing credential {variable}")


class NetworkError(AiBackendFailure):
    def __init__(self, provider: str, reason: str, status_code: Optional[int] = None):
        self.reason = reason
        self.status_code = status_code
        detail = reason if status_code is None else f"HTTP {status_code}: {reason}"
        super().__init__(provider, detail)


class MalformedResponse(AiBackendFailure):
    def __init__(self, provider: str, reason: str):
        self.reason = reason
        super().__init__(provider, f"malformed response: {reason}")


class ParseDegraded(UserWarning):
    """
    Marker for partial structural extraction.

    The parser never raises this; it is used as the category when degraded
    extraction is reported through ``warnings`` or logged.
    """
