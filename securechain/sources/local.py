"""
Local filesystem source provider
"""

import asyncio
from pathlib import Path
from typing import Iterable, List, Optional

import aiofiles
from loguru import logger

from ..errors import ContractReadError, PathNotFound
from ..models.contract import SourceUnit

DEFAULT_EXTENSIONS = (".sol", ".move", ".cairo", ".rs")
SKIPPED_DIRECTORIES = frozenset({"node_modules", ".git", "target", "build", "out", "cache", "lib"})


class LocalSourceProvider:
    """
    Lists contract units from a file or a directory tree

    Each file is one unit named after its stem. Directory walks are sorted so
    the unit order is stable across runs.
    """

    def __init__(
        self,
        allowed_extensions: Iterable[str] = DEFAULT_EXTENSIONS,
        max_file_size_mb: Optional[float] = 10,
        skip_directories: Iterable[str] = SKIPPED_DIRECTORIES,
    ):
        self.allowed_extensions = tuple(ext.lower() if ext.startswith(".") else f".{ext.lower()}"
                                        for ext in allowed_extensions)
        self.max_file_size = int(max_file_size_mb * 1024 * 1024) if max_file_size_mb else None
        self.skip_directories = frozenset(skip_directories)

    async def list_units(self, path: str) -> List[SourceUnit]:
        """
        Read every contract file under ``path``

        Args:
            path: A contract file or a directory to walk

        Returns:
            SourceUnits in path order

        Raises:
            PathNotFound: When ``path`` does not exist
            ContractReadError: When a file cannot be read
        """
        root = Path(path)
        if not await asyncio.to_thread(root.exists):
            raise PathNotFound(str(root))

        if root.is_file():
            files = [root]
        else:
            files = await asyncio.to_thread(self._walk, root)

        units = []
        for file in files:
            unit = await self._read(file)
            if unit is not None:
                units.append(unit)

        logger.info(f"Found {len(units)} contract units under {root}")
        return units

    def _walk(self, root: Path) -> List[Path]:
        files = []
        for candidate in sorted(root.rglob("*")):
            if not candidate.is_file():
                continue
            if candidate.suffix.lower() not in self.allowed_extensions:
                continue
            if any(part in self.skip_directories for part in candidate.relative_to(root).parts[:-1]):
                continue
            files.append(candidate)
        return files

    async def _read(self, file: Path) -> Optional[SourceUnit]:
        if self.max_file_size is not None:
            size = (await asyncio.to_thread(file.stat)).st_size
            if size > self.max_file_size:
                logger.warning(f"Skipping {file}: {size} bytes exceeds the size limit")
                return None
        try:
            async with aiofiles.open(file, "r", encoding="utf-8", errors="replace") as f:
                source = await f.read()
        except OSError as e:
            raise ContractReadError(str(file), str(e)) from e

        return SourceUnit(
            name=file.stem,
            source_code=source,
            file_path=str(file),
            metadata={"source": "local", "extension": file.suffix.lower()},
        )
