"""Fixtures for integration tests: a local aiohttp collector."""

import asyncio
import socket
import threading

import pytest
from aiohttp import web


class CollectorServer:
    """Collector stand-in recording every multipart upload it receives."""

    def __init__(self):
        self.requests = []
        self.status = 200
        self.port = None
        self._loop = None
        self._thread = None

    @property
    def base_url(self) -> str:
        return f"http://127.0.0.1:{self.port}"

    def by_kind(self, kind):
        return [r for r in self.requests if r["kind"] == kind]

    def start(self) -> None:
        ready = threading.Event()
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._serve, args=(ready,), daemon=True)
        self._thread.name = "CollectorServerThread"
        self._thread.start()
        assert ready.wait(5), "collector server did not start"

    def stop(self) -> None:
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(5)

    def _serve(self, ready: threading.Event) -> None:
        asyncio.set_event_loop(self._loop)
        app = web.Application(client_max_size=64 * 1024 * 1024)
        app.router.add_post("/upload/image", self._handler("image"))
        app.router.add_post("/upload/audio", self._handler("audio"))

        runner = web.AppRunner(app)
        self._loop.run_until_complete(runner.setup())
        site = web.TCPSite(runner, "127.0.0.1", 0)
        self._loop.run_until_complete(site.start())
        self.port = runner.addresses[0][1]
        ready.set()

        try:
            self._loop.run_forever()
        finally:
            self._loop.run_until_complete(runner.cleanup())
            self._loop.close()

    def _handler(self, kind):
        async def handle(request: web.Request) -> web.Response:
            form = await request.post()
            fields = {}
            files = []
            for name, value in form.items():
                if isinstance(value, web.FileField):
                    files.append({
                        "field": name,
                        "filename": value.filename,
                        "content_type": value.content_type,
                        "data": value.file.read(),
                    })
                else:
                    fields[name] = value

            self.requests.append({
                "kind": kind,
                "content_type": request.content_type,
                "fields": fields,
                "files": files,
            })
            return web.json_response({"received": len(files)}, status=self.status)

        return handle


@pytest.fixture
def collector_server():
    server = CollectorServer()
    server.start()
    yield server
    server.stop()


@pytest.fixture
def unused_port():
    """A localhost port nothing listens on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]
