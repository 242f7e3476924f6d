import logging
import time
from contextlib import aclosing
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import aiohttp

from api_client import ApiClient
from errors import ApiToCsvError, TransportError
from sink import CsvFileSink
from transform import JsonToCsvTransform


@dataclass
class PipelineResult:
    output_path: Path
    rows: int
    columns: int
    bytes_in: int
    bytes_out: int
    elapsed_ms: int


async def run_pipeline(
    client: ApiClient,
    output_path: Union[str, Path],
    params: Optional[Dict[str, Any]] = None,
    quoting: str = "none",
    atomic: bool = True,
) -> PipelineResult:
    """
    Stream the API response through the CSV transform into ``output_path``.

    The sink pulls text chunks from the transform, which pulls byte chunks
    from the response, so at most one chunk is in flight between stages.
    The first error raised by any stage is re-raised once every stage has
    been released.
    """
    start = time.monotonic()
    stage = JsonToCsvTransform(quoting=quoting)
    sink = CsvFileSink(output_path, atomic=atomic)

    try:
        with sink:
            async with client.stream(params) as body:
                async with aclosing(stage.transform(body)) as chunks:
                    async for text in chunks:
                        sink.write(text)
    except ApiToCsvError:
        raise
    except aiohttp.ClientError as e:
        raise TransportError("Upstream request failed", e) from e

    elapsed_ms = int((time.monotonic() - start) * 1000)
    logging.info(
        "Wrote %s rows x %s columns to %s (%s bytes in, %s bytes out)",
        stage.stats.records,
        stage.stats.columns,
        sink.path,
        stage.stats.bytes_in,
        sink.bytes_written,
    )
    return PipelineResult(
        output_path=sink.path,
        rows=stage.stats.records,
        columns=stage.stats.columns,
        bytes_in=stage.stats.bytes_in,
        bytes_out=sink.bytes_written,
        elapsed_ms=elapsed_ms,
    )
