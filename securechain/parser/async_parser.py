"""
Async file front end for the contract parser
"""

from pathlib import Path
from typing import Dict, Optional

import aiofiles

from ..errors import ContractReadError
from ..models.contract import ContractModel
from .contract_parser import ContractParser


class AsyncContractParser:
    """Reads contract files asynchronously and parses them synchronously"""

    def __init__(self, parser: Optional[ContractParser] = None):
        self.parser = parser or ContractParser()

    async def parse_file(
        self,
        file_path: str,
        name: Optional[str] = None,
        compiler_version: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> ContractModel:
        """
        Parse a contract file

        Args:
            file_path: Path to the contract file
            name: Contract unit name, defaults to the file stem
            compiler_version: Version reported by the caller, if known
            metadata: Opaque key/value data carried through unchanged

        Returns:
            Parsed ContractModel

        Raises:
            ContractReadError: When the file cannot be read
        """
        path = Path(file_path)
        try:
            async with aiofiles.open(path, "r", encoding="utf-8", errors="replace") as f:
                source = await f.read()
        except OSError as e:
            raise ContractReadError(str(path), str(e)) from e

        return self.parser.parse(
            source,
            name or path.stem,
            file_path=str(path),
            compiler_version=compiler_version,
            metadata=metadata,
        )
