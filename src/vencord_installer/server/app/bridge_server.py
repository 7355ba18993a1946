"""WebSocket entry point for the Vencord web installer bridge."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from websockets.asyncio.server import Server, ServerConnection, serve
from websockets.http11 import Request, Response

from vencord_installer.installs import InstallBackend, LocalInstallBackend
from vencord_installer.installs.builds import builds_present
from vencord_installer.installs.download import Downloader
from vencord_installer.server.config import ServerCtx, load_server_ctx
from vencord_installer.server.control.dispatcher import OperationDispatcher
from vencord_installer.server.control.handshake import check_handshake
from vencord_installer.server.control.session import run_session
from vencord_installer.server.metrics import Metrics

logger = logging.getLogger(__name__)

_PACKAGE_LOGGER = "vencord_installer"
_LOG_FORMAT = "[%(asctime)s] %(name)s - %(levelname)s - %(message)s"
_MAX_FRAME_BYTES = 1 << 20


def build_backend(ctx: ServerCtx) -> LocalInstallBackend:
    installer = ctx.installer
    return LocalInstallBackend(
        files_dir=installer.files_dir,
        search_paths=installer.search_paths,
        release_url=installer.release_url,
        openasar_url=installer.openasar_url,
        fetcher=Downloader(timeout_s=installer.http_timeout_s),
    )


class BridgeServer:
    """Accept origin-checked connections and run one session per connection.

    Sessions share the backend and metrics but no protocol state; each one
    runs as its own task on the event loop.
    """

    def __init__(
        self,
        ctx: Optional[ServerCtx] = None,
        *,
        backend: Optional[InstallBackend] = None,
        metrics: Optional[Metrics] = None,
        debug: bool = False,
    ) -> None:
        self._ctx = ctx or load_server_ctx()
        self.cfg = self._ctx.cfg
        self.metrics = metrics or Metrics()
        self.backend = backend if backend is not None else build_backend(self._ctx)
        toggles = self._ctx.debug_policy.logging
        self._log_handshakes = toggles.log_handshakes
        self._log_session_traces = toggles.log_session_traces
        self._debug_only_this_logger = bool(debug)
        self.dispatcher = OperationDispatcher(
            self.backend,
            timeout_s=self.cfg.op_timeout_s,
            metrics=self.metrics,
            log_operations=toggles.log_operations,
        )
        self._clients: set[ServerConnection] = set()

    # --- Handshake ---------------------------------------------------------------
    def _process_request(self, connection: ServerConnection, request: Request) -> Optional[Response]:
        origin = request.headers.get("Origin")
        rejection = check_handshake(request.path, origin, self.cfg)
        if rejection is None:
            log = logger.info if self._log_handshakes else logger.debug
            log("handshake accepted remote=%s origin=%s", connection.remote_address, origin)
            return None
        self.metrics.inc("vencord_installer_rejected_handshakes")
        logger.warning(
            "handshake rejected remote=%s path=%s origin=%s status=%d",
            connection.remote_address,
            request.path,
            origin,
            int(rejection.status),
        )
        return connection.respond(rejection.status, f"{rejection.reason}\n")

    # --- Sessions ----------------------------------------------------------------
    async def _handle_connection(self, ws: ServerConnection) -> None:
        self._clients.add(ws)
        self.metrics.inc("vencord_installer_connects")
        self._update_client_gauge()
        try:
            await run_session(
                ws,
                self.dispatcher,
                metrics=self.metrics,
                log_traces=self._log_session_traces,
            )
        finally:
            self._clients.discard(ws)
            self._update_client_gauge()

    def _update_client_gauge(self) -> None:
        self.metrics.set("vencord_installer_clients", float(len(self._clients)))

    # --- Lifecycle ---------------------------------------------------------------
    async def serve(self) -> Server:
        """Bind the listener and return the running websockets server."""

        return await serve(
            self._handle_connection,
            self.cfg.host,
            self.cfg.port,
            process_request=self._process_request,
            compression=None,
            max_size=_MAX_FRAME_BYTES,
        )

    def _maybe_enable_debug_logger(self) -> None:
        if not self._debug_only_this_logger:
            return
        package_logger = logging.getLogger(_PACKAGE_LOGGER)
        if any(getattr(h, "_vencord_installer_local", False) for h in package_logger.handlers):
            return
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        handler.setLevel(logging.DEBUG)
        handler._vencord_installer_local = True  # type: ignore[attr-defined]
        package_logger.addHandler(handler)
        package_logger.setLevel(logging.DEBUG)
        package_logger.propagate = False

    async def start(self) -> None:
        logging.basicConfig(level=logging.INFO, format=_LOG_FORMAT)
        self._maybe_enable_debug_logger()
        if self._debug_only_this_logger:
            logger.info("Resolved ServerCtx: %s", self._ctx)
        else:
            logger.debug("Resolved ServerCtx: %s", self._ctx)

        files_dir = self._ctx.installer.files_dir
        if not builds_present(files_dir):
            logger.warning("Vencord files not found in %s; REPAIR will download them", files_dir)

        server = await self.serve()
        logger.info(
            "WS listening on ws://%s:%d%s (origin %s)",
            self.cfg.host,
            self.cfg.port,
            self.cfg.path,
            self.cfg.allowed_origin,
        )
        try:
            await server.serve_forever()
        finally:
            server.close()
            await server.wait_closed()
            logger.info("bridge stopped; metrics=%s", self.metrics.snapshot()["counters"])


def main() -> None:
    import argparse

    ctx = load_server_ctx()
    parser = argparse.ArgumentParser(description="Vencord web installer bridge")
    parser.add_argument("--host", default=None, help=f"Listen address (default {ctx.cfg.host})")
    parser.add_argument("--port", type=int, default=None, help=f"Listen port (default {ctx.cfg.port})")
    parser.add_argument("--origin", default=None, help=f"Allowed browser origin (default {ctx.cfg.allowed_origin})")
    parser.add_argument(
        "--op-timeout",
        type=float,
        default=None,
        help="Per-operation timeout in seconds; 0 disables (default from VENCORD_INSTALLER_OP_TIMEOUT)",
    )
    parser.add_argument("--debug", action="store_true", help="Enable DEBUG for the installer packages only")
    args = parser.parse_args()

    ctx = ctx.with_overrides(
        host=args.host,
        port=args.port,
        allowed_origin=args.origin,
        op_timeout_s=args.op_timeout,
    )

    async def run() -> None:
        srv = BridgeServer(ctx, debug=bool(args.debug))
        await srv.start()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("interrupted")


if __name__ == "__main__":
    main()
