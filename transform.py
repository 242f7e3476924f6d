import json
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterable, AsyncIterator, Dict, List, Union

from errors import MalformedDocument
from utils import QUOTING_MODES, collect_headers, csv_line, flatten, project_row

Chunk = Union[bytes, bytearray, str]

ACCUMULATING = "accumulating"
FLUSHING = "flushing"


def _reject_constant(name: str) -> Any:
    # NaN, Infinity and -Infinity are not JSON
    raise ValueError(f"Invalid JSON constant {name!r}")


@dataclass
class TransformStats:
    bytes_in: int = 0
    chunks_in: int = 0
    records: int = 0
    columns: int = 0


class JsonToCsvTransform:
    """
    Buffers one JSON document and turns its ``results`` list into CSV text.

    Nothing is parsed until ``flush``: the header needs every record's keys,
    so the whole document is held in memory. Each pipeline run owns its own
    instance.
    """

    def __init__(self, quoting: str = "none") -> None:
        if quoting not in QUOTING_MODES:
            raise ValueError(f"Unknown quoting mode {quoting!r}, expected one of {QUOTING_MODES}")
        self.quoting = quoting
        self.state = ACCUMULATING
        self.stats = TransformStats()
        self._buffer = bytearray()

    def feed(self, chunk: Chunk) -> None:
        if self.state != ACCUMULATING:
            raise RuntimeError("Transform already flushed; no more input accepted")
        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")
        self._buffer += chunk
        self.stats.bytes_in += len(chunk)
        self.stats.chunks_in += 1

    def flush(self) -> List[str]:
        if self.state != ACCUMULATING:
            raise RuntimeError("Transform already flushed")
        self.state = FLUSHING
        buffer, self._buffer = self._buffer, bytearray()

        document = self._parse(buffer)
        results = document.get("results")
        if not isinstance(results, list):
            logging.warning(
                "Document has no 'results' list (got %s); no rows written",
                type(results).__name__,
            )
            return []
        if not results:
            return []

        rows: List[Dict[str, Any]] = []
        for index, record in enumerate(results):
            if not isinstance(record, dict):
                raise MalformedDocument(
                    f"Record {index} is a {type(record).__name__}, expected an object"
                )
            rows.append(flatten(record))
        header = collect_headers(rows)
        self.stats.records = len(rows)
        self.stats.columns = len(header)
        logging.info("Flushing %s records across %s columns", len(rows), len(header))

        chunks = [csv_line(header, self.quoting)]
        chunks.extend(csv_line(project_row(row, header), self.quoting) for row in rows)
        return chunks

    def _parse(self, buffer: bytearray) -> Dict[str, Any]:
        try:
            document = json.loads(buffer.decode("utf-8"), parse_constant=_reject_constant)
        except UnicodeDecodeError as e:
            raise MalformedDocument("Response body is not valid UTF-8", e) from e
        except ValueError as e:
            raise MalformedDocument("Response body is not valid JSON", e) from e
        except RecursionError as e:
            raise MalformedDocument("Response body is nested too deeply", e) from e
        if not isinstance(document, dict):
            raise MalformedDocument(
                f"Expected a JSON object at the top level, got {type(document).__name__}"
            )
        return document

    async def transform(self, chunks: AsyncIterable[Chunk]) -> AsyncIterator[str]:
        async for chunk in chunks:
            self.feed(chunk)
        for text in self.flush():
            yield text
