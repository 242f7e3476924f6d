import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, TextIO, Union

from errors import SinkError


class CsvFileSink:
    """
    Text sink for CSV chunks.

    With ``atomic`` the chunks go to a temp file beside the target, which is
    moved into place by ``commit``; ``abort`` deletes it, so a failed run
    leaves no truncated output behind.
    """

    def __init__(self, path: Union[str, Path], atomic: bool = True) -> None:
        self.path = Path(path)
        self.atomic = atomic
        self.bytes_written = 0
        self._f: Optional[TextIO] = None
        self._tmp_path: Optional[Path] = None

    def open(self) -> "CsvFileSink":
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            if self.atomic:
                fd, tmp = tempfile.mkstemp(
                    prefix=f"{self.path.name}.", suffix=".tmp", dir=self.path.parent
                )
                self._tmp_path = Path(tmp)
                self._f = os.fdopen(fd, "w", encoding="utf-8", newline="")
            else:
                self._f = self.path.open("w", encoding="utf-8", newline="")
        except OSError as e:
            raise SinkError(f"Cannot open {self.path} for writing", e) from e
        return self

    def write(self, text: str) -> None:
        if self._f is None:
            raise RuntimeError("Sink is not open")
        try:
            self._f.write(text)
        except OSError as e:
            raise SinkError(f"Cannot write to {self.path}", e) from e
        self.bytes_written += len(text.encode("utf-8"))

    def commit(self) -> None:
        if self._f is None:
            raise RuntimeError("Sink is not open")
        try:
            self._f.close()
            self._f = None
            if self._tmp_path is not None:
                os.replace(self._tmp_path, self.path)
                self._tmp_path = None
        except OSError as e:
            self.abort()
            raise SinkError(f"Cannot finalize {self.path}", e) from e

    def abort(self) -> None:
        if self._f is not None:
            try:
                self._f.close()
            except OSError as e:
                logging.warning("Could not close %s: %s", self.path, e)
            self._f = None
        if self._tmp_path is not None:
            try:
                self._tmp_path.unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                logging.warning("Could not remove temp file %s: %s", self._tmp_path, e)
            self._tmp_path = None

    def __enter__(self) -> "CsvFileSink":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.commit()
        else:
            self.abort()
