"""
Scheduler - drives cycles on a timer and reacts to control events.

State machine:

    IDLE -> RUNNING_CYCLE -> WAITING -> RUNNING_CYCLE -> ... -> DRAINING -> STOPPED

Control events (reload, stop) are delivered through a single asyncio
queue. The scheduler loop is its only consumer and the only writer of
the source list, so a cycle always sees one complete, immutable list:
the one current when it started. Reloads apply to the next cycle.

On stop, no new cycle starts. A cycle already in flight runs to
completion, but its fetch deadline is shortened to the shutdown grace
period so that shutdown is not held up by slow sources.

Features:
- Fixed-rate timer (missed ticks are dropped, not queued)
- Live reload of the source list
- Graceful shutdown from SIGINT/SIGTERM, reload from SIGHUP
- Cycle failures are logged and never stop the scheduler
"""

import asyncio
import enum
import signal
from collections.abc import Callable

import structlog

from newsfab.errors import ConfigError, CycleError
from newsfab.feeds.deadline import Deadline
from newsfab.feeds.schemas import SourceList
from newsfab.observability.logging import bind_context
from newsfab.observability.metrics import get_metrics
from newsfab.services.cycle import CycleRunner

logger = structlog.get_logger(__name__)


class SchedulerState(str, enum.Enum):
    IDLE = "idle"
    RUNNING_CYCLE = "running_cycle"
    WAITING = "waiting"
    DRAINING = "draining"
    STOPPED = "stopped"


class ControlEvent(str, enum.Enum):
    RELOAD = "reload"
    STOP = "stop"


class FeedScheduler:
    """
    Runs cycles every `interval` seconds until stopped.

    Usage:
        scheduler = FeedScheduler(runner, sources, reload_sources=lambda: load_sources(path))
        scheduler.install_signal_handlers()
        await scheduler.run()  # Returns once stopped
    """

    def __init__(
        self,
        runner: CycleRunner,
        sources: SourceList,
        reload_sources: Callable[[], SourceList] | None = None,
        interval: float = 300.0,
        fetch_timeout: float = 10.0,
        shutdown_grace: float = 1.0,
    ):
        """
        Initialize the scheduler.

        Args:
            runner: Cycle runner
            sources: Initial source list
            reload_sources: Called on reload to obtain the new list; may raise
                ConfigError, in which case the current list is kept
            interval: Seconds between cycle starts
            fetch_timeout: Fetch deadline per cycle in seconds
            shutdown_grace: Deadline left to an in-flight cycle on stop
        """
        self._runner = runner
        self._sources: SourceList = tuple(sources)
        self._reload_sources = reload_sources
        self._interval = interval
        self._fetch_timeout = fetch_timeout
        self._shutdown_grace = shutdown_grace

        self._events: asyncio.Queue[ControlEvent] = asyncio.Queue()
        self._state = SchedulerState.IDLE
        self._stopping = False
        self._deadline: Deadline | None = None
        self._cycles_run = 0
        self._cycles_failed = 0
        self._metrics = get_metrics()

        logger.info(
            "Scheduler initialized",
            sources=len(self._sources),
            interval=interval,
            fetch_timeout=fetch_timeout,
        )

    # ── Public API ──────────────────────────────────────────────

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def sources(self) -> SourceList:
        """Source list the next cycle will use."""
        return self._sources

    @property
    def cycles_run(self) -> int:
        return self._cycles_run

    @property
    def cycles_failed(self) -> int:
        return self._cycles_failed

    def request_reload(self) -> None:
        """Ask for the source list to be reloaded before the next cycle."""
        self._events.put_nowait(ControlEvent.RELOAD)

    def request_stop(self) -> None:
        """Ask for a graceful stop."""
        self._events.put_nowait(ControlEvent.STOP)

    def install_signal_handlers(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Route SIGHUP to reload and SIGINT/SIGTERM to stop."""
        loop = loop or asyncio.get_running_loop()
        handlers = {
            "SIGHUP": self.request_reload,
            "SIGINT": self.request_stop,
            "SIGTERM": self.request_stop,
        }
        for name, handler in handlers.items():
            sig = getattr(signal, name, None)
            if sig is None:
                continue
            try:
                loop.add_signal_handler(sig, handler)
            except (NotImplementedError, RuntimeError):
                logger.warning("Signal handler not supported", signal=name)

    async def run(self, max_cycles: int | None = None) -> None:
        """
        Run until a stop is requested or max_cycles cycles have run.

        Cancelling this coroutine cancels any in-flight cycle.
        """
        loop = asyncio.get_running_loop()
        next_run = loop.time()

        logger.info("Starting scheduler")

        try:
            while not self._stopping:
                await self._run_cycle()

                if self._stopping:
                    break
                if max_cycles is not None and self._cycles_run >= max_cycles:
                    break

                next_run += self._interval
                now = loop.time()
                if next_run <= now:
                    skipped = int((now - next_run) // self._interval) + 1
                    next_run += skipped * self._interval
                    logger.warning("Cycle overran interval", skipped_ticks=skipped)

                self._set_state(SchedulerState.WAITING)
                await self._wait_until(next_run)
        finally:
            if self._state != SchedulerState.DRAINING:
                self._set_state(SchedulerState.DRAINING)
            self._set_state(SchedulerState.STOPPED)
            logger.info(
                "Scheduler stopped",
                cycles=self._cycles_run,
                failed=self._cycles_failed,
            )

    # ── Internals ───────────────────────────────────────────────

    def _set_state(self, state: SchedulerState) -> None:
        self._state = state
        self._metrics.set_scheduler_state(state.value, [s.value for s in SchedulerState])
        logger.debug("Scheduler state", state=state.value)

    async def _run_cycle(self) -> None:
        """Run one cycle while continuing to consume control events."""
        self._set_state(SchedulerState.RUNNING_CYCLE)
        self._cycles_run += 1
        bind_context(cycle=self._cycles_run)

        sources = self._sources
        self._deadline = Deadline(self._fetch_timeout)
        cycle = asyncio.create_task(
            self._runner.run_cycle(sources, deadline=self._deadline),
            name=f"cycle:{self._cycles_run}",
        )

        try:
            while not cycle.done():
                getter = asyncio.create_task(self._events.get())
                try:
                    await asyncio.wait({cycle, getter}, return_when=asyncio.FIRST_COMPLETED)
                finally:
                    if not getter.done():
                        getter.cancel()
                if getter.done() and not getter.cancelled():
                    self._handle_event(getter.result())
        finally:
            if not cycle.done():
                cycle.cancel()
                await asyncio.gather(cycle, return_exceptions=True)
            self._deadline = None

        try:
            cycle.result()
        except CycleError as e:
            self._cycles_failed += 1
            logger.error("Cycle failed", error=str(e))
        except Exception as e:
            self._cycles_failed += 1
            logger.exception("Unexpected cycle error", error=str(e))

    async def _wait_until(self, when: float) -> None:
        """Sleep until `when`, handling control events as they arrive."""
        loop = asyncio.get_running_loop()
        while not self._stopping:
            remaining = when - loop.time()
            if remaining <= 0:
                return
            try:
                event = await asyncio.wait_for(self._events.get(), timeout=remaining)
            except asyncio.TimeoutError:
                return
            self._handle_event(event)

    def _handle_event(self, event: ControlEvent) -> None:
        if event is ControlEvent.RELOAD:
            self._reload()
        elif event is ControlEvent.STOP:
            self._begin_drain()

    def _reload(self) -> None:
        """Replace the source list used by the next cycle."""
        if self._reload_sources is None:
            logger.warning("Reload requested but no reload source configured")
            return

        logger.info("Reloading source list")
        try:
            sources = tuple(self._reload_sources())
        except ConfigError as e:
            self._metrics.record_reload(False)
            logger.error("Reload failed, keeping current sources", error=str(e))
            return
        except Exception as e:
            self._metrics.record_reload(False)
            logger.exception("Unexpected reload error, keeping current sources", error=str(e))
            return

        self._sources = sources
        self._metrics.record_reload(True)
        logger.info("New configuration", sources=list(sources))

    def _begin_drain(self) -> None:
        if self._stopping:
            return
        self._stopping = True
        self._set_state(SchedulerState.DRAINING)
        logger.info("Stop requested, draining")
        if self._deadline is not None and self._deadline.shorten(self._shutdown_grace):
            logger.info("Shortened in-flight fetch deadline", grace_seconds=self._shutdown_grace)
