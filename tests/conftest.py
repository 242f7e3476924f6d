import asyncio
import json

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer, unused_port

STATE = web.AppKey("state", dict)


def _split(body: bytes, pieces: int):
    if pieces <= 1 or len(body) < 2:
        return [body]
    step = max(1, len(body) // pieces)
    return [body[i:i + step] for i in range(0, len(body), step)]


@pytest.fixture
def make_app():
    """Build an app serving ``/api`` with the given body, streamed in pieces."""

    def factory(body=b"", status=200, pieces=1, fail_first=0):
        if isinstance(body, (dict, list)):
            body = json.dumps(body).encode("utf-8")
        state = {"hits": 0, "query": None}

        async def handler(request):
            state["hits"] += 1
            state["query"] = dict(request.query)
            if state["hits"] <= fail_first:
                return web.Response(status=503, text="unavailable")
            if status != 200:
                return web.Response(status=status, text="error")
            resp = web.StreamResponse()
            resp.content_type = "application/json"
            await resp.prepare(request)
            for piece in _split(body, pieces):
                await resp.write(piece)
            await resp.write_eof()
            return resp

        app = web.Application()
        app.router.add_get("/api", handler)
        app[STATE] = state
        return app

    return factory


@pytest.fixture
def serve():
    """Run ``fn(url)`` against a live test server for ``app``."""

    def runner(app, fn):
        async def main():
            async with TestServer(app) as server:
                return await fn(str(server.make_url("/api")))

        return asyncio.run(main())

    return runner


@pytest.fixture
def unused_tcp_port_url():
    return f"http://127.0.0.1:{unused_port()}/api"


@pytest.fixture
def app_state():
    """Request counters recorded by an app built with ``make_app``."""

    def lookup(app):
        return app[STATE]

    return lookup
