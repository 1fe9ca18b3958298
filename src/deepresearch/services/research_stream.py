"""Research progress stream — canned progress events for the SSE endpoint.

Learn: No research happens here. stream_progress walks a fixed list of
steps and yields one event per step, awaiting asyncio.sleep between
them. Because it's an async generator on the event loop (not a sleep
loop on a worker thread), a client disconnect cancels it at the next
await and nothing stays blocked.
"""

import asyncio
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

import structlog

from deepresearch.config import settings

logger = structlog.get_logger()


@dataclass(frozen=True)
class ProgressStep:
    step: str
    progress: int
    sources: int = 0
    status: str = "processing"  # processing, completed, error


RESEARCH_STEPS: tuple[ProgressStep, ...] = (
    ProgressStep("Starting research...", 0),
    ProgressStep("Finding relevant sources...", 20),
    ProgressStep("Found 3 academic papers", 40, sources=3),
    ProgressStep("Found 5 news articles", 60, sources=8),
    ProgressStep("Processing documents...", 80, sources=8),
    ProgressStep("Generating summary...", 90, sources=8),
    ProgressStep("Research complete!", 100, sources=8, status="completed"),
)


def _timestamp() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


async def stream_progress(
    query: str,
    interval: Optional[float] = None,
    steps: tuple[ProgressStep, ...] = RESEARCH_STEPS,
) -> AsyncIterator[dict]:
    """Yield one progress event per step, `interval` seconds apart."""
    delay = settings.research_stream_interval_seconds if interval is None else interval
    log = logger.bind(query=query[:100])
    log.info("research.stream_started", steps=len(steps))

    try:
        for i, step in enumerate(steps):
            if i:
                await asyncio.sleep(delay)
            yield {**asdict(step), "timestamp": _timestamp()}
    except asyncio.CancelledError:
        log.info("research.stream_cancelled")
        raise

    log.info("research.stream_completed")
