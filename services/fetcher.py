"""Bounded-concurrency remote version fetcher."""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

from models.package import FetchError, RemoteRecord
from services.aur import RemoteLookup

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[FetchError], None]

# Marks the end of the error stream
_CLOSED = object()


@dataclass
class FetchResult:
    """Outcome of fetching remote metadata for a set of names."""

    records: Dict[str, RemoteRecord] = field(default_factory=dict)
    errors: List[FetchError] = field(default_factory=list)

    @property
    def not_found(self) -> List[str]:
        return [name for name, record in self.records.items() if not record.found]


class RemoteFetcher:
    """
    Resolves remote versions for many names over a fixed-size worker pool.

    A failing, slow or unknown name never blocks or aborts the others.
    Errors are pushed into a reporting queue drained by a single consumer
    task; ``fetch`` returns only once every name has a terminal outcome and
    the consumer has drained the queue.
    """

    def __init__(
        self,
        lookup: RemoteLookup,
        parallelism: int = 16,
        timeout: Optional[float] = 30.0
    ):
        """
        Initialize fetcher.

        Args:
            lookup: Coroutine function resolving one name
            parallelism: Maximum number of outstanding lookups
            timeout: Per-request timeout in seconds, None to disable
        """
        if parallelism < 1:
            raise ValueError("parallelism must be at least 1")
        self.lookup = lookup
        self.parallelism = parallelism
        self.timeout = timeout

    async def _lookup_one(self, name: str) -> RemoteRecord:
        try:
            version = await asyncio.wait_for(self.lookup(name), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            # Keep timeouts raised by the lookup itself, they carry a message
            if isinstance(e, TimeoutError) and str(e):
                raise
            raise TimeoutError(f"lookup timed out after {self.timeout}s") from e
        return RemoteRecord(name=name, version=version)

    async def _worker(
        self,
        names: "asyncio.Queue[str]",
        result: FetchResult,
        sink: asyncio.Queue
    ) -> None:
        while True:
            try:
                name = names.get_nowait()
            except asyncio.QueueEmpty:
                return

            try:
                record = await self._lookup_one(name)
            except Exception as e:
                await sink.put(FetchError(name=name, cause=e))
            else:
                result.records[name] = record

    async def _drain(
        self,
        sink: asyncio.Queue,
        result: FetchResult,
        on_error: Optional[ErrorCallback]
    ) -> None:
        while True:
            item = await sink.get()
            if item is _CLOSED:
                return
            result.errors.append(item)
            if on_error is not None:
                try:
                    on_error(item)
                except Exception as e:
                    logger.debug(f"Error callback failed for {item.name}: {e}", exc_info=True)

    async def fetch(
        self,
        names: Iterable[str],
        on_error: Optional[ErrorCallback] = None
    ) -> FetchResult:
        """
        Fetch remote records for names.

        Args:
            names: Package names to look up; duplicates are ignored
            on_error: Called once per failed lookup, from the consumer task

        Returns:
            FetchResult whose records and errors together cover every name
        """
        unique = list(dict.fromkeys(names))
        result = FetchResult()
        if not unique:
            return result

        queue: "asyncio.Queue[str]" = asyncio.Queue()
        for name in unique:
            queue.put_nowait(name)

        sink: asyncio.Queue = asyncio.Queue()
        consumer = asyncio.create_task(self._drain(sink, result, on_error))

        workers = [
            asyncio.create_task(self._worker(queue, result, sink))
            for _ in range(min(self.parallelism, len(unique)))
        ]
        try:
            await asyncio.gather(*workers)
        finally:
            # Close the sink only once every producer has terminated
            await sink.put(_CLOSED)
            await consumer

        logger.debug(
            f"Fetched {len(unique)} names: {len(result.records)} records, "
            f"{len(result.errors)} errors"
        )
        return result
