"""Daemon bootstrap for Blackbox.

Startup order: config -> logging -> runtime -> watch own loop -> REST
Shutdown runs in reverse. The daemon watches its own asyncio loop under the
``daemon`` scope, so a blocked event loop produces a heartbeat-stall
incident.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING

from blackbox.config import load_config
from blackbox.models.config import BlackboxConfig
from blackbox.observability.logging import get_logger, setup_logging
from blackbox.runtime import BlackboxRuntime

if TYPE_CHECKING:
    import structlog

DAEMON_SCOPE = "daemon"


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


class BlackboxApp:
    """Application root. Owns the runtime and the optional REST server.

    ``stop()`` is safe to call on an app that was never started or has
    already stopped.
    """

    def __init__(self, config: BlackboxConfig | None = None) -> None:
        self.config = config
        self.runtime: BlackboxRuntime | None = None
        self._rest_server: object | None = None
        self._background_tasks: list[asyncio.Task[None]] = []
        self._running = False
        self._log: structlog.stdlib.BoundLogger | None = None

    @property
    def running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start every component in dependency order.

        Raises _ComponentError if a mandatory component cannot start.
        """
        if self.config is None:
            self.config = load_config()

        setup_logging(self.config.log.level)
        self._log = get_logger("app")
        self._log.info("blackbox_starting", version=_blackbox_version(), data_dir=str(self.config.data_dir))

        self._start_runtime()
        await self._start_rest()

        self._running = True
        self._log.info("blackbox_started", api_enabled=self.config.api.enabled)

    def _start_runtime(self) -> None:
        assert self._log is not None
        assert self.config is not None
        try:
            runtime = BlackboxRuntime(self.config)
            runtime.start()
            runtime.watch_loop(DAEMON_SCOPE, asyncio.get_running_loop())
        except Exception as exc:
            raise _ComponentError("runtime", exc) from exc
        self.runtime = runtime

    async def _start_rest(self) -> None:
        """Start the uvicorn REST server when the API is enabled."""
        assert self._log is not None
        assert self.config is not None
        if not self.config.api.enabled:
            self._log.info("rest_api_disabled")
            return
        assert self.runtime is not None
        try:
            import uvicorn

            from blackbox.api import create_app

            uv_config = uvicorn.Config(
                app=create_app(self.runtime),
                host=self.config.api.host,
                port=self.config.api.port,
                log_config=None,  # structlog handles all logging
                access_log=False,
            )
            server = uvicorn.Server(uv_config)
            task = asyncio.create_task(server.serve(), name="rest-server")
            self._background_tasks.append(task)
            self._rest_server = server
            self._log.info("rest_api_started", host=self.config.api.host, port=self.config.api.port)
        except Exception as exc:
            raise _ComponentError("rest", exc) from exc

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Stop the REST server, then the runtime."""
        if not self._running and self._log is None:
            return

        log = self._log or get_logger("app")
        log.info("blackbox_stopping")
        self._running = False

        await self._stop_rest()
        await self._stop_runtime(log)

        log.info("blackbox_stopped")

    async def _stop_rest(self) -> None:
        if self._rest_server is not None:
            self._rest_server.should_exit = True  # type: ignore[attr-defined]
        tasks, self._background_tasks = self._background_tasks, []
        self._rest_server = None
        if not tasks:
            return
        _done, pending = await asyncio.wait(tasks, timeout=self._shutdown_grace())
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def _stop_runtime(self, log: structlog.stdlib.BoundLogger) -> None:
        runtime, self.runtime = self.runtime, None
        if runtime is None:
            return
        # close() joins threads, keep it off the event loop.
        try:
            await asyncio.to_thread(runtime.close)
        except Exception as exc:
            log.error("runtime_close_failed", error=str(exc))

    def _shutdown_grace(self) -> float:
        if self.config is None:
            return 2.0
        return self.config.scheduler.shutdown_grace.total_seconds()


def _blackbox_version() -> str:
    from blackbox import __version__

    return __version__


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------


async def main(config: BlackboxConfig | None = None) -> None:
    """Create the app, register OS signals, run until shutdown is requested."""
    app = BlackboxApp(config)
    loop = asyncio.get_running_loop()
    stop_requested = asyncio.Event()

    def _request_shutdown() -> None:
        stop_requested.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _request_shutdown)

    try:
        await app.start()
        await stop_requested.wait()
    except _ComponentError as exc:
        log = get_logger("app")
        log.critical(
            "startup_failed",
            component=exc.component,
            error=str(exc.cause),
        )
        await app.stop()
        raise SystemExit(1) from exc
    finally:
        if app.running:
            await app.stop()
