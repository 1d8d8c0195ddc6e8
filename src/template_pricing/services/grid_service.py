"""
Grid Upload Service - parses merchant-uploaded pricing grid CSVs off the caller's thread.

Uploads can be arbitrarily large, so parsing runs in a worker pool. A
cancelled job discards everything it parsed; a grid is accepted whole or
not at all.
"""
import asyncio
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, Optional, Union

from ..config.settings import Settings, get_settings
from ..engine.grid import ParseCancelled, parse_grid_csv
from ..engine.models import PricingGrid

logger = logging.getLogger(__name__)


class GridParseJob:
    """Handle on one background parse."""

    def __init__(self, name: str, future: Future, cancel_event: threading.Event):
        self.name = name
        self._future = future
        self._cancel_event = cancel_event

    def cancel(self) -> None:
        """Stop the parse. Safe to call at any point; the result is discarded."""
        self._cancel_event.set()
        self._future.cancel()
        logger.info("Grid parse %s cancelled", self.name)

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def done(self) -> bool:
        return self._future.done()

    def result(self, timeout: Optional[float] = None) -> PricingGrid:
        """
        Wait for the parsed grid.

        Raises ParseError for a malformed file and ParseCancelled once the
        job has been cancelled.
        """
        if self._cancel_event.is_set():
            raise ParseCancelled(f"Grid parse {self.name} was cancelled")
        return self._future.result(timeout=timeout)

    async def wait(self) -> PricingGrid:
        """Await the parsed grid from an event loop without blocking it."""
        if self._cancel_event.is_set():
            raise ParseCancelled(f"Grid parse {self.name} was cancelled")
        return await asyncio.wrap_future(self._future)


class GridUploadService:
    """Runs grid parses in a small thread pool."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._executor = ThreadPoolExecutor(
            max_workers=self.settings.grid_parse_workers,
            thread_name_prefix='grid-parse',
        )

    def submit(self, source: Union[str, Iterable[str]], name: str = 'upload') -> GridParseJob:
        """Queue CSV text (or an iterable of lines) for parsing."""
        cancel_event = threading.Event()
        future = self._executor.submit(parse_grid_csv, source, cancel_event)
        logger.info("Queued grid parse %s", name)
        return GridParseJob(name, future, cancel_event)

    def submit_file(self, path: Path) -> GridParseJob:
        """Queue a CSV file; the worker opens and streams it."""
        cancel_event = threading.Event()
        future = self._executor.submit(self._parse_file, Path(path), cancel_event)
        return GridParseJob(Path(path).name, future, cancel_event)

    @staticmethod
    def _parse_file(path: Path, cancel_event: threading.Event) -> PricingGrid:
        with open(path, 'r', encoding='utf-8-sig', newline='') as f:
            return parse_grid_csv(f, cancel_event)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait, cancel_futures=True)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.shutdown()
