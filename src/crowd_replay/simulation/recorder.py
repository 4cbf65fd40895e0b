"""TrajectoryRecorder — stream per-tick agent state to CSV.

Each sampled ``(tick, agent)`` pair becomes one :class:`TickRecord`.  The
recorder writes them as CSV rows in generation order, under the header::

    step,agent_id,x,y,vx,vy,speed

Rows must arrive sorted by ``(step, agent_id)``; the recorder rejects
anything that would duplicate or reorder the stream.  I/O failures surface
as :class:`OutputWriteError`.
"""
from __future__ import annotations

import csv
import logging
import math
from collections.abc import Iterable
from pathlib import Path
from typing import Any, TextIO

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

CSV_HEADER: tuple[str, ...] = ("step", "agent_id", "x", "y", "vx", "vy", "speed")


class OutputWriteError(RuntimeError):
    """Raised when the record stream cannot be opened, written, or flushed."""


class TickRecord(BaseModel):
    """State of one agent at one sampled tick.

    Attributes
    ----------
    step:
        Zero-based tick index.
    agent_id:
        Oracle-assigned agent handle.
    x, y:
        Position components.
    vx, vy:
        Velocity components.
    speed:
        Euclidean norm of ``(vx, vy)``.
    """

    model_config = {"frozen": True}

    step: int = Field(ge=0)
    agent_id: int = Field(ge=0)
    x: float
    y: float
    vx: float
    vy: float
    speed: float = Field(ge=0.0)

    @classmethod
    def from_state(
        cls,
        step: int,
        agent_id: int,
        position: NDArray[np.float64],
        velocity: NDArray[np.float64],
    ) -> "TickRecord":
        """Build a record from oracle state, deriving ``speed``."""
        vx, vy = float(velocity[0]), float(velocity[1])
        return cls(
            step=step,
            agent_id=agent_id,
            x=float(position[0]),
            y=float(position[1]),
            vx=vx,
            vy=vy,
            speed=math.hypot(vx, vy),
        )

    @property
    def key(self) -> tuple[int, int]:
        """Sort key ``(step, agent_id)``."""
        return (self.step, self.agent_id)

    def to_row(self) -> list[object]:
        return [self.step, self.agent_id, self.x, self.y, self.vx, self.vy, self.speed]

    @classmethod
    def from_row(cls, row: dict[str, str]) -> "TickRecord":
        return cls(
            step=int(row["step"]),
            agent_id=int(row["agent_id"]),
            x=float(row["x"]),
            y=float(row["y"]),
            vx=float(row["vx"]),
            vy=float(row["vy"]),
            speed=float(row["speed"]),
        )


class TrajectoryRecorder:
    """Append-only CSV writer for :class:`TickRecord` streams.

    Parameters
    ----------
    path:
        Destination CSV file.  Parent directories are created on open.
    stream:
        Already-open text stream to write to instead of *path*.  The
        recorder flushes but never closes a stream it did not open.

    Usage
    -----
    ::

        with TrajectoryRecorder("simulation_output.csv") as recorder:
            driver.run(recorder=recorder)
    """

    def __init__(
        self,
        path: str | Path | None = None,
        *,
        stream: TextIO | None = None,
    ) -> None:
        if (path is None) == (stream is None):
            raise ValueError("Provide exactly one of 'path' or 'stream'.")
        self._path = Path(path) if path is not None else None
        self._stream = stream
        self._owns_stream = stream is None
        self._writer: Any = None
        self._last_key: tuple[int, int] | None = None
        self._rows_written = 0
        self._closed = False

    @property
    def path(self) -> Path | None:
        return self._path

    @property
    def rows_written(self) -> int:
        return self._rows_written

    @property
    def is_open(self) -> bool:
        return self._writer is not None and not self._closed

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> "TrajectoryRecorder":
        """Open the destination and write the header row."""
        if self._closed:
            raise OutputWriteError("recorder has already been closed")
        if self._writer is not None:
            return self
        try:
            if self._path is not None:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                self._stream = self._path.open("w", encoding="utf-8", newline="")
            self._writer = csv.writer(self._stream)
            self._writer.writerow(CSV_HEADER)
        except OSError as exc:
            raise OutputWriteError(f"cannot open record stream {self._describe()}: {exc}") from exc
        logger.debug("Opened record stream %s", self._describe())
        return self

    def close(self) -> None:
        """Flush and release the stream.  Idempotent.

        A stream opened by the recorder is closed even when the final flush
        fails; the failure is then raised as :class:`OutputWriteError`.
        """
        if self._closed:
            return
        self._closed = True
        if self._stream is None:
            return
        error: OSError | None = None
        try:
            self._stream.flush()
        except OSError as exc:
            error = exc
        if self._owns_stream:
            try:
                self._stream.close()
            except OSError as exc:
                error = error or exc
        if error is not None:
            raise OutputWriteError(
                f"cannot close record stream {self._describe()}: {error}"
            ) from error
        logger.info("Wrote %d rows to %s", self._rows_written, self._describe())

    def __enter__(self) -> "TrajectoryRecorder":
        return self.open()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        if exc_type is None:
            self.close()
            return
        # The in-flight exception takes precedence over a failing close.
        try:
            self.close()
        except OutputWriteError as close_error:
            logger.warning("Ignoring %s while handling %s", close_error, exc_type.__name__)

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def write(self, record: TickRecord) -> None:
        """Append one record.

        Raises
        ------
        ValueError
            If *record* does not sort strictly after the previous one.
        OutputWriteError
            If the recorder is not open or the write fails.
        """
        if not self.is_open:
            raise OutputWriteError("record stream is not open")
        if self._last_key is not None and record.key <= self._last_key:
            raise ValueError(
                f"record {record.key} does not follow {self._last_key}; "
                "records must be strictly ordered by (step, agent_id)"
            )
        try:
            self._writer.writerow(record.to_row())
        except OSError as exc:
            raise OutputWriteError(f"cannot write to {self._describe()}: {exc}") from exc
        self._last_key = record.key
        self._rows_written += 1

    def write_many(self, records: Iterable[TickRecord]) -> None:
        """Append *records* in order, then flush."""
        for record in records:
            self.write(record)
        self.flush()

    def flush(self) -> None:
        if not self.is_open:
            raise OutputWriteError("record stream is not open")
        try:
            self._stream.flush()  # type: ignore[union-attr]
        except OSError as exc:
            raise OutputWriteError(f"cannot flush {self._describe()}: {exc}") from exc

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    @staticmethod
    def load(path: str | Path) -> list[TickRecord]:
        """Read back a CSV stream written by a recorder."""
        source = Path(path)
        with source.open("r", encoding="utf-8", newline="") as f:
            reader = csv.DictReader(f)
            if tuple(reader.fieldnames or ()) != CSV_HEADER:
                raise ValueError(
                    f"{source} has header {reader.fieldnames}, expected {list(CSV_HEADER)}"
                )
            records = [TickRecord.from_row(row) for row in reader]
        logger.debug("Loaded %d records from %s", len(records), source)
        return records

    def _describe(self) -> str:
        return str(self._path) if self._path is not None else "<stream>"

    def __repr__(self) -> str:
        return (
            f"TrajectoryRecorder(destination={self._describe()!r}, "
            f"rows_written={self._rows_written})"
        )
