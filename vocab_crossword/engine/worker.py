"""Asyncio shell that runs puzzle generation off the event loop.

Requests and responses are plain dicts::

    {"id": ..., "type": "generate", "payload": {"words": [...], "config": {...}}}
    {"id": ..., "type": "cancel"}

Responses go to :attr:`PuzzleWorker.outbox` with ``type`` one of ``ready``,
``progress``, ``complete``, ``error`` or ``cancelled``. A generation job ends
with exactly one ``complete``, ``error`` or ``cancelled`` message.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set

from ..core.exceptions import GenerationCancelled
from ..core.models import ProgressUpdate, Word
from ..utils.logger import get_logger
from .clustering import ClusterConfig
from .generator import CrosswordGenerator, GeneratorConfig, PuzzleBatch


LOGGER = get_logger(__name__)

Message = Dict[str, Any]


def _offer(queue: "asyncio.Queue[ProgressUpdate]", update: ProgressUpdate) -> None:
    """Put without blocking; the oldest pending update gives way when full."""
    if queue.full():
        queue.get_nowait()
    queue.put_nowait(update)


@dataclass
class GenerationJob:
    job_id: str
    cancel_event: threading.Event
    progress: "asyncio.Queue[ProgressUpdate]"
    task: "asyncio.Task[PuzzleBatch]"

    def cancel(self) -> None:
        self.cancel_event.set()

    @property
    def done(self) -> bool:
        return self.task.done()

    async def result(self) -> PuzzleBatch:
        return await self.task


class PuzzleWorker:
    """Runs :class:`CrosswordGenerator` jobs in threads and reports over a queue."""

    def __init__(
        self,
        outbox_size: int = 256,
        progress_buffer: int = 32,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.outbox: "asyncio.Queue[Message]" = asyncio.Queue(maxsize=outbox_size)
        self.progress_buffer = progress_buffer
        self.logger = logger or LOGGER
        self.jobs: Dict[str, GenerationJob] = {}
        # Jobs whose final message has not been emitted yet.
        self._pending: Set[str] = set()
        self._relays: List["asyncio.Task[None]"] = []

    # ------------------------------------------------------------------
    # Direct API
    # ------------------------------------------------------------------
    async def start(self) -> None:
        await self.outbox.put({"type": "ready"})

    def submit(
        self,
        job_id: str,
        words: Sequence[Word],
        config: Optional[GeneratorConfig] = None,
        cluster_config: Optional[ClusterConfig] = None,
    ) -> GenerationJob:
        """Start generating in a worker thread; must be called on the running loop."""

        existing = self.jobs.get(job_id)
        if existing is not None and not existing.done:
            raise ValueError(f"Job {job_id!r} is already running")

        loop = asyncio.get_running_loop()
        cancel_event = threading.Event()
        progress: "asyncio.Queue[ProgressUpdate]" = asyncio.Queue(maxsize=self.progress_buffer)

        def on_progress(update: ProgressUpdate) -> None:
            loop.call_soon_threadsafe(_offer, progress, update)

        generator = CrosswordGenerator(config, logger=self.logger)
        task = asyncio.create_task(
            asyncio.to_thread(
                generator.generate_puzzles, list(words), cluster_config, cancel_event, on_progress
            )
        )
        job = GenerationJob(job_id=job_id, cancel_event=cancel_event, progress=progress, task=task)
        self.jobs[job_id] = job

        def forget(_: "asyncio.Task[PuzzleBatch]") -> None:
            if self.jobs.get(job_id) is job:
                del self.jobs[job_id]

        task.add_done_callback(forget)
        self.logger.debug("Submitted job %s with %d word(s)", job_id, len(words))
        return job

    def cancel(self, job_id: str) -> bool:
        """Request cancellation; takes effect at the next placement boundary."""

        job = self.jobs.get(job_id)
        if job is None or job.done:
            return False
        job.cancel()
        self.logger.info("Cancellation requested for job %s", job_id)
        return True

    # ------------------------------------------------------------------
    # Message protocol
    # ------------------------------------------------------------------
    async def handle(self, message: Mapping[str, Any]) -> None:
        job_id = message.get("id")
        kind = message.get("type")
        if kind == "generate":
            await self._handle_generate(job_id, message.get("payload") or {})
        elif kind == "cancel":
            key = str(job_id)
            if self.cancel(key):
                return
            if key in self._pending:
                # Finished but not yet reported; its own final message follows.
                self.logger.debug("Ignoring late cancel for job %s", key)
                return
            # Nothing left to stop; acknowledge right away.
            await self._emit(job_id, "cancelled", {})
        else:
            await self._emit(job_id, "error", {"message": f"Unknown message type: {kind!r}"})

    async def serve(self, inbox: "asyncio.Queue[Optional[Mapping[str, Any]]]") -> None:
        """Handle messages from ``inbox`` until a ``None`` sentinel arrives."""

        await self.start()
        while True:
            message = await inbox.get()
            if message is None:
                break
            await self.handle(message)
        await self.join()

    async def join(self) -> None:
        """Wait until every job has reported its final message."""
        while self._relays:
            relays, self._relays = self._relays, []
            await asyncio.gather(*relays)

    async def _handle_generate(self, job_id: Any, payload: Mapping[str, Any]) -> None:
        key = str(job_id)
        try:
            if key in self._pending:
                raise ValueError(f"Job {key!r} is already running")
            words = [Word.from_mapping(item) for item in payload.get("words") or []]
            config = GeneratorConfig.from_mapping(payload.get("config"))
            cluster_config = ClusterConfig.from_mapping(payload.get("clusterConfig"))
            await self._emit(job_id, "progress", {"stage": "initializing", "percent": 0})
            job = self.submit(key, words, config, cluster_config)
        except (KeyError, TypeError, ValueError) as exc:
            self.logger.warning("Rejected generate request %s: %s", job_id, exc)
            await self._emit(job_id, "error", {"message": str(exc)})
            return
        self._pending.add(key)
        self._relays.append(asyncio.create_task(self._relay(job_id, job)))

    async def _relay(self, job_id: Any, job: GenerationJob) -> None:
        try:
            await self._report(job_id, job)
        finally:
            self._pending.discard(job.job_id)

    async def _report(self, job_id: Any, job: GenerationJob) -> None:
        while True:
            getter = asyncio.ensure_future(job.progress.get())
            done, _ = await asyncio.wait({getter, job.task}, return_when=asyncio.FIRST_COMPLETED)
            if getter in done:
                await self._emit(job_id, "progress", getter.result().to_jsonable())
                continue
            getter.cancel()
            break
        while not job.progress.empty():
            await self._emit(job_id, "progress", job.progress.get_nowait().to_jsonable())

        try:
            batch = job.task.result()
        except GenerationCancelled:
            await self._emit(job_id, "cancelled", {})
        except Exception as exc:  # reported to the caller as an error message
            self.logger.exception("Job %s failed", job_id)
            await self._emit(job_id, "error", {"message": str(exc) or type(exc).__name__})
        else:
            await self._emit(job_id, "complete", batch.to_jsonable())

    async def _emit(self, job_id: Any, kind: str, payload: Mapping[str, Any]) -> None:
        await self.outbox.put({"id": job_id, "type": kind, "payload": dict(payload)})
