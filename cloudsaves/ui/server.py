"""Local API server for Cloud Saves.

The service's coroutines (and the auto-save timer) live on one asyncio loop
running in a daemon thread; ``ThreadingHTTPServer`` request threads submit
work to it.

Usage:
    from cloudsaves.ui.server import run_server
    run_server(port=5556)
"""

from __future__ import annotations

import asyncio
import logging
import threading
from http.server import ThreadingHTTPServer

from cloudsaves.service import CloudSavesService
from cloudsaves.ui.api import CloudSavesAPIHandler

logger = logging.getLogger(__name__)

DEFAULT_PORT = 5556


class ServiceLoop:
    """An event loop running forever in a background thread."""

    def __init__(self) -> None:
        self.loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run, name="cloudsaves-loop", daemon=True)

    def _run(self) -> None:
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()

    def start(self) -> ServiceLoop:
        self._thread.start()
        return self

    def submit(self, coro):
        """Run coro on the loop and block for its result."""
        return asyncio.run_coroutine_threadsafe(coro, self.loop).result()

    def stop(self) -> None:
        self.loop.call_soon_threadsafe(self.loop.stop)
        self._thread.join(timeout=5)
        if not self._thread.is_alive():
            self.loop.close()


class CloudSavesServer(ThreadingHTTPServer):
    """HTTP server bound to one service and its loop."""

    daemon_threads = True

    def __init__(self, address: tuple[str, int], service: CloudSavesService, service_loop: ServiceLoop):
        super().__init__(address, create_handler(service, service_loop.loop))
        self.service = service
        self.service_loop = service_loop

    @property
    def url(self) -> str:
        host, port = self.server_address[:2]
        return f"http://{host}:{port}"

    def close(self) -> None:
        """Stop serving, cancel the auto-save timer and stop the loop."""
        self.shutdown()
        self.server_close()
        self.service_loop.submit(self.service.shutdown())
        self.service_loop.stop()


def create_handler(service: CloudSavesService, loop: asyncio.AbstractEventLoop):
    """Create a handler class with the service and loop bound."""

    class BoundHandler(CloudSavesAPIHandler):
        pass

    BoundHandler.service = service
    BoundHandler.loop = loop
    return BoundHandler


def _start(host: str, port: int, service: CloudSavesService | None) -> CloudSavesServer:
    service = service or CloudSavesService()
    service_loop = ServiceLoop().start()
    service_loop.submit(service.start())
    return CloudSavesServer((host, port), service, service_loop)


def run_server(
    port: int = DEFAULT_PORT,
    service: CloudSavesService | None = None,
    host: str = "127.0.0.1",
) -> None:
    """Run the Cloud Saves API until interrupted.

    Args:
        port: Port to listen on
        service: Service to expose (default: built from config/env)
        host: Interface to bind
    """
    httpd = _start(host, port, service)

    print(f"Cloud Saves API running at {httpd.url}/api/")
    print(f"Data directory: {httpd.service.data_dir}")
    print("Press Ctrl+C to stop")

    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    try:
        thread.join()
    except KeyboardInterrupt:
        print("\nShutting down...")
    finally:
        httpd.close()


def run_server_background(
    port: int = 0,
    service: CloudSavesService | None = None,
    host: str = "127.0.0.1",
) -> CloudSavesServer:
    """Run server in background thread. Returns server instance.

    Useful for testing or embedding in other apps.
    Call server.close() to stop. Port 0 picks a free port.
    """
    httpd = _start(host, port, service)

    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()

    logger.info(f"Cloud Saves server running in background at {httpd.url}")
    return httpd
