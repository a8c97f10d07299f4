"""Storage utility functions."""
from pathlib import Path
from typing import AsyncIterator, Optional, Union

import anyio

from .models import ProgressCallback


async def unique_destination(destination: Union[str, Path]) -> Path:
    """First free sibling of ``destination``: ``name (1).ext``, ``name (2).ext``, ...

    Returns ``destination`` unchanged when nothing exists there yet.
    """
    path = Path(destination)
    if not await anyio.Path(path).exists():
        return path

    stem, suffix = path.stem, path.suffix
    counter = 1
    while True:
        candidate = path.with_name(f"{stem} ({counter}){suffix}")
        if not await anyio.Path(candidate).exists():
            return candidate
        counter += 1


class ProgressReporter:
    """Monotonic progress signal ending in exactly one terminal ``1.0``.

    Intermediate updates that would reach 1.0 or move backwards are dropped;
    only :meth:`finish` emits the terminal value.
    """

    def __init__(self, callback: Optional[ProgressCallback]):
        self._callback = callback
        self._last = 0.0
        self._finished = False

    def update(self, done: int, total: int) -> None:
        if self._callback is None or self._finished or total <= 0:
            return
        fraction = done / total
        if fraction <= self._last or fraction >= 1.0:
            return
        self._last = fraction
        self._callback(fraction)

    def finish(self) -> None:
        if self._finished:
            return
        self._finished = True
        self._last = 1.0
        if self._callback is not None:
            self._callback(1.0)


async def iter_chunks(
    data: bytes,
    chunk_size: int,
    reporter: ProgressReporter,
) -> AsyncIterator[bytes]:
    """Yield ``data`` in ``chunk_size`` pieces, reporting bytes handed to the transport."""
    total = len(data)
    view = memoryview(data)
    sent = 0
    for start in range(0, total, chunk_size):
        chunk = bytes(view[start:start + chunk_size])
        yield chunk
        sent += len(chunk)
        reporter.update(sent, total)
