"""
Persistence of analysis results for hand-off to report renderers
"""

import json
from pathlib import Path
from typing import List, Optional, Sequence

import aiofiles
from loguru import logger

from ..models.analysis import AnalysisResult, CreativeProbe


async def save_result(
    result: AnalysisResult,
    output_path: str,
    probes: Optional[Sequence[CreativeProbe]] = None,
) -> Path:
    """
    Write an analysis result (and optional probes) as JSON

    Args:
        result: Result to persist
        output_path: Destination file
        probes: Creative probes stored next to the result

    Returns:
        Path of the written file
    """
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    document = {
        "result": json.loads(result.model_dump_json()),
        "probes": [json.loads(probe.model_dump_json()) for probe in probes or []],
    }
    async with aiofiles.open(path, "w", encoding="utf-8") as f:
        await f.write(json.dumps(document, indent=2))

    logger.info(f"Saved analysis result for {result.contract_name} to {path}")
    return path


async def load_result(input_path: str) -> AnalysisResult:
    """Load a result previously written by save_result"""
    async with aiofiles.open(input_path, "r", encoding="utf-8") as f:
        document = json.loads(await f.read())
    return AnalysisResult.model_validate(document["result"])


async def load_probes(input_path: str) -> List[CreativeProbe]:
    async with aiofiles.open(input_path, "r", encoding="utf-8") as f:
        document = json.loads(await f.read())
    return [CreativeProbe.model_validate(item) for item in document.get("probes", [])]
