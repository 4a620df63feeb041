"""
Enforcer Service - optional long-lived mode

Runs the single-shot orchestrator on a fixed interval instead of relying
on an external scheduler. Each iteration re-reads state from the store,
so behaviour is identical to repeated invocations.

Runs never overlap: the next evaluation starts only after the previous
one (including any notification the user is looking at) returns.
"""

import asyncio
import signal

from rebootguard.common.logging_setup import get_service_logger
from .orchestrator import ExitStatus, Orchestrator

logger = get_service_logger("service")


class EnforcerService:
    """
    Polls the orchestrator every poll_interval_seconds.

    Stops by itself once a reboot has been initiated.
    """

    def __init__(self, orchestrator: Orchestrator, poll_interval_seconds: float = 300):
        self.orchestrator = orchestrator
        self.poll_interval_seconds = poll_interval_seconds

        self._running = False
        self._task: asyncio.Task | None = None
        self._shutdown_event = asyncio.Event()
        self.last_status: ExitStatus | None = None
        self.run_count = 0

    async def start(self) -> None:
        """Start polling"""
        self._running = True
        self._task = asyncio.create_task(self._poll_loop())
        logger.info(
            f"Enforcer service started (every {self.poll_interval_seconds}s)",
            extra={"poll_interval_seconds": self.poll_interval_seconds},
        )

    async def stop(self) -> None:
        """Stop polling"""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        logger.info("Enforcer service stopped")

    async def run_forever(self) -> None:
        """Start, wait for a shutdown signal or a reboot, then stop"""
        self._setup_signal_handlers()
        await self.start()
        try:
            await self._shutdown_event.wait()
        finally:
            await self.stop()

    async def _poll_loop(self) -> None:
        """Evaluate, then sleep"""
        while self._running:
            try:
                status = await asyncio.to_thread(self.orchestrator.run)
                self.last_status = status
                self.run_count += 1
            except Exception as e:
                logger.error(f"Error during evaluation: {e}")
                status = None

            if status == ExitStatus.REBOOT_INITIATED:
                logger.info("Reboot initiated, stopping service")
                self._running = False
                self._shutdown_event.set()
                return

            await asyncio.sleep(self.poll_interval_seconds)

    def _setup_signal_handlers(self) -> None:
        """Setup graceful shutdown signal handlers"""
        loop = asyncio.get_running_loop()

        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, self._handle_shutdown)
            except NotImplementedError:
                # Windows doesn't support add_signal_handler
                signal.signal(sig, lambda s, f: self._handle_shutdown())

    def _handle_shutdown(self) -> None:
        """Handle shutdown signal"""
        logger.info("Received shutdown signal")
        self._shutdown_event.set()
