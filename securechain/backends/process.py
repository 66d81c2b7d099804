"""
Async subprocess helpers shared by external tool backends
"""

import asyncio
import re
import shutil
import tempfile
from contextlib import asynccontextmanager, suppress
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, List, Optional

import aiofiles
from loguru import logger

from ..errors import BackendExecutionFailed, BackendUnavailable
from ..models.contract import ContractModel

_UNSAFE_FILENAME = re.compile(r'[^\w.-]')


@dataclass(frozen=True)
class CommandResult:
    stdout: str
    stderr: str
    returncode: int


def _kill(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        with suppress(ProcessLookupError):
            process.kill()


async def run_tool(
    tool: str,
    cmd: List[str],
    timeout: float,
    cwd: Optional[str] = None,
) -> CommandResult:
    """
    Run an external analysis tool

    Tools such as Slither exit non-zero when they report findings, so a
    non-zero exit is only an error when stdout is empty.

    Args:
        tool: Backend name used in errors and logs
        cmd: Command line, executable first
        timeout: Seconds before the process is killed
        cwd: Working directory

    Returns:
        CommandResult with decoded output

    Raises:
        BackendUnavailable: The executable is not on PATH
        BackendExecutionFailed: Timeout, or non-zero exit without output
    """
    if shutil.which(cmd[0]) is None:
        raise BackendUnavailable(tool, cmd[0])

    logger.debug(f"Running {tool}: {' '.join(cmd)}")
    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            cwd=cwd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise BackendUnavailable(tool, cmd[0]) from e

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        _kill(process)
        await process.wait()
        raise BackendExecutionFailed(tool, f"timed out after {timeout:g}s")
    except asyncio.CancelledError:
        _kill(process)
        with suppress(asyncio.CancelledError, ProcessLookupError):
            await asyncio.shield(process.wait())
        raise

    result = CommandResult(
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
        returncode=process.returncode,
    )
    if result.returncode != 0 and not result.stdout.strip():
        reason = result.stderr.strip().splitlines()[-1] if result.stderr.strip() else "no output"
        raise BackendExecutionFailed(tool, reason, exit_code=result.returncode)
    return result


def source_filename(contract: ContractModel, suffix: str = ".sol") -> str:
    if contract.file_path:
        name = Path(contract.file_path).name
        if name.endswith(suffix):
            return _UNSAFE_FILENAME.sub("_", name)
    return _UNSAFE_FILENAME.sub("_", contract.name or "Contract") + suffix


@asynccontextmanager
async def contract_workspace(contract: ContractModel, suffix: str = ".sol") -> AsyncIterator[Path]:
    """
    Write the contract source into a fresh temporary directory

    Yields the path of the written file; the directory is removed on exit.
    """
    workspace = Path(await asyncio.to_thread(tempfile.mkdtemp, prefix="securechain-"))
    target = workspace / source_filename(contract, suffix)
    try:
        async with aiofiles.open(target, "w", encoding="utf-8") as f:
            await f.write(contract.source_code)
        yield target
    finally:
        await asyncio.to_thread(shutil.rmtree, workspace, True)
