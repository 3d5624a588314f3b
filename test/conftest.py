from typing import AsyncGenerator, Awaitable, Callable, List

import pytest_asyncio
from aiohttp import web
from mock_jenkins_server import MockJenkinsServer

from jenkins_client.jenkins_client import JenkinsClient

USERNAME = "username"
API_KEY = "apikey"


@pytest_asyncio.fixture
async def jenkins() -> AsyncGenerator[MockJenkinsServer, None]:
    """Start and yield a mock Jenkins server on a free port."""
    server_instance = MockJenkinsServer(job_name="testjob")
    await server_instance.start()
    try:
        yield server_instance
    finally:
        await server_instance.stop()


@pytest_asyncio.fixture
async def client(jenkins) -> AsyncGenerator[JenkinsClient, None]:
    """Provide a client pointed at the mock Jenkins server."""
    async with JenkinsClient(jenkins.base_url, USERNAME, API_KEY) as jenkins_client:
        yield jenkins_client


@pytest_asyncio.fixture
async def serve() -> AsyncGenerator[Callable[..., Awaitable[str]], None]:
    """Serve a single handler on a free port and return the base url."""
    runners: List[web.AppRunner] = []

    async def _serve(path: str, handler, method: str = "GET") -> str:
        app = web.Application()
        app.router.add_route(method, path, handler)
        runner = web.AppRunner(app)
        await runner.setup()
        site = web.TCPSite(runner, "127.0.0.1", 0)
        await site.start()
        runners.append(runner)
        return f"http://127.0.0.1:{runner.addresses[0][1]}"

    try:
        yield _serve
    finally:
        for runner in runners:
            await runner.cleanup()


def scripted_handler(*bodies: str):
    """Answer with each body in turn.

    Calls past the last body get a 500 and are counted, so tests assert on
    handler.calls["count"] rather than failing inside the server.
    """
    calls = {"count": 0}

    async def handler(request: web.Request) -> web.Response:
        index = calls["count"]
        calls["count"] += 1
        if index >= len(bodies):
            return web.Response(status=500, text=f"unexpected call {index + 1}")
        return web.Response(text=bodies[index], content_type="application/json")

    handler.calls = calls
    return handler
