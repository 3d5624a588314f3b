import asyncio
import time

import pytest
from aiohttp import web
from conftest import scripted_handler

from jenkins_client.deadline import Deadline
from jenkins_client.errors import (
    AggregatedError,
    DeadlineExceededError,
    DecodeError,
    QueueIDParseError,
    TransportError,
    VerificationError,
)
from jenkins_client.job_api import JobAPI, queue_id_from_location
from jenkins_client.models import BUILD_INFO_TREE, BuildInfo, PollingConfig, QueueItem
from jenkins_client.requestor import Requestor
from jenkins_client.urls import URLBuilder

GET_BUILDS_RESPONSE = """
{
    "builds": [{
        "number": 2, "queueId": 3, "result": "SUCCESS", "url": "http://testurl.com/jenkins/job/Test/2"
    }, {
        "number": 3, "queueId": 4, "result": "FAILURE", "url": "http://testurl.com/jenkins/job/Test/3"
    }, {
        "number": 4, "queueId": 5, "result": "SUCCESS", "url": "http://testurl.com/jenkins/job/Test/4"
    }]
}
"""

BUILD_IN_PROGRESS_RESPONSE = """
{
  "building" : true,
  "number" : 2,
  "queueId" : 3,
  "result" : null,
  "url" : "http://testurl.com/jenkins/job/Test/2"
}
"""

BUILD_COMPLETE_RESPONSE = """
{
  "building" : false,
  "number" : 2,
  "queueId" : 3,
  "result" : "SUCCESS",
  "url" : "http://testurl.com/jenkins/job/Test/2"
}
"""

EXPECTED_BUILD = BuildInfo(
    number=2, queue_id=3, result="SUCCESS", url="http://testurl.com/jenkins/job/Test/2"
)


async def job_api(serve, path, handler, method="GET"):
    base_url = await serve(path, handler, method=method)
    return JobAPI(URLBuilder(base_url), Requestor("", "")), base_url


async def wait_until_complete(serve, handler, timeout: float, retry_interval: float):
    api, base_url = await job_api(serve, "/job/Test/1/api/json", handler)
    item = QueueItem(number=1, url=f"{base_url}/job/Test/1/")
    try:
        return await api.wait_until_build_is_complete(item, retry_interval, Deadline.after(timeout))
    finally:
        await api.requestor.close()


@pytest.mark.asyncio
async def test_schedule_build_returns_queue_id(serve):
    seen = {}

    async def handler(request: web.Request) -> web.Response:
        seen["form"] = dict(await request.post())
        return web.Response(status=201, headers={"Location": "http://testurl.com/queue/item/3/"})

    api, _ = await job_api(serve, "/job/Test/buildWithParameters/api/json", handler, "POST")
    try:
        queue_id = await api.schedule_build("Test", {"Branch": "main"})
    finally:
        await api.requestor.close()

    assert queue_id == 3
    assert seen["form"] == {"Branch": "main"}


@pytest.mark.asyncio
async def test_schedule_build_without_location_is_a_parse_error(serve):
    async def handler(request: web.Request) -> web.Response:
        return web.Response(status=201)

    api, _ = await job_api(serve, "/job/Test/buildWithParameters/api/json", handler, "POST")
    try:
        with pytest.raises(QueueIDParseError) as exc_info:
            await api.schedule_build("Test")
    finally:
        await api.requestor.close()

    assert not isinstance(exc_info.value, (TransportError, VerificationError, AggregatedError))


@pytest.mark.asyncio
async def test_schedule_build_rejects_unexpected_status(serve):
    async def handler(request: web.Request) -> web.Response:
        return web.Response(status=403, text="No valid crumb")

    api, _ = await job_api(serve, "/job/Test/buildWithParameters/api/json", handler, "POST")
    try:
        with pytest.raises(AggregatedError) as exc_info:
            await api.schedule_build("Test")
    finally:
        await api.requestor.close()

    assert exc_info.value.of_type(VerificationError)


@pytest.mark.parametrize(
    "location,expected",
    [
        ("http://testurl.com/queue/item/3/", 3),
        ("http://testurl.com/jenkins/queue/item/42", 42),
    ],
)
def test_queue_id_from_location(location, expected):
    assert queue_id_from_location(location) == expected


@pytest.mark.parametrize("location", [None, "", "http://testurl.com/queue/item/abc/"])
def test_queue_id_from_bad_location(location):
    with pytest.raises(QueueIDParseError):
        queue_id_from_location(location)


@pytest.mark.asyncio
async def test_get_builds_requests_tree_range(serve):
    seen = {}

    async def handler(request: web.Request) -> web.Response:
        seen["tree"] = request.query.get("tree")
        return web.Response(text=GET_BUILDS_RESPONSE, content_type="application/json")

    api, _ = await job_api(serve, "/job/Test/api/json", handler)
    try:
        builds = await api.get_builds("Test", 0, 5)
    finally:
        await api.requestor.close()

    assert seen["tree"] == f"builds[{BUILD_INFO_TREE}]{{0,5}}"
    assert [build.number for build in builds] == [2, 3, 4]
    assert builds[1].result == "FAILURE"


@pytest.mark.asyncio
async def test_stops_once_build_is_complete(serve):
    handler = scripted_handler(BUILD_COMPLETE_RESPONSE)

    info = await wait_until_complete(serve, handler, timeout=1.0, retry_interval=0.001)

    assert info == EXPECTED_BUILD
    assert handler.calls["count"] == 1


@pytest.mark.asyncio
async def test_retries_until_build_completes(serve):
    handler = scripted_handler(BUILD_IN_PROGRESS_RESPONSE, BUILD_COMPLETE_RESPONSE)

    info = await wait_until_complete(serve, handler, timeout=1.0, retry_interval=0.001)

    assert info == EXPECTED_BUILD
    assert handler.calls["count"] == 2


@pytest.mark.asyncio
async def test_stops_polling_on_error(serve):
    handler = scripted_handler("")

    with pytest.raises(AggregatedError) as exc_info:
        await wait_until_complete(serve, handler, timeout=1.0, retry_interval=0.001)

    assert exc_info.value.of_type(DecodeError)
    assert handler.calls["count"] == 1


@pytest.mark.asyncio
async def test_times_out_while_building(serve):
    async def handler(request: web.Request) -> web.Response:
        return web.Response(text=BUILD_IN_PROGRESS_RESPONSE, content_type="application/json")

    with pytest.raises(DeadlineExceededError):
        await wait_until_complete(serve, handler, timeout=0.005, retry_interval=0.001)


@pytest.mark.asyncio
async def test_default_deadline_comes_from_config(monkeypatch):
    captured = {}

    async def fake_retry(deadline, retry_interval, probe):
        captured["remaining"] = deadline.remaining()

    monkeypatch.setattr("jenkins_client.job_api.retry_until_done", fake_retry)
    api = JobAPI(URLBuilder("http://unused"), Requestor("", ""), PollingConfig(completed_timeout=7.0))

    await api.wait_until_build_is_complete(QueueItem(number=1, url="http://unused/job/Test/1/"), 0.1)

    assert 6.0 < captured["remaining"] <= 7.0


@pytest.mark.asyncio
async def test_caller_deadline_wins_over_default(monkeypatch):
    captured = {}

    async def fake_retry(deadline, retry_interval, probe):
        captured["deadline"] = deadline

    monkeypatch.setattr("jenkins_client.job_api.retry_until_done", fake_retry)
    api = JobAPI(URLBuilder("http://unused"), Requestor("", ""))
    deadline = Deadline.after(1.0)

    await api.wait_until_build_is_complete(QueueItem(number=1, url="http://unused/"), 0.1, deadline)

    assert captured["deadline"] is deadline


@pytest.mark.asyncio
async def test_deadline_aborts_slow_build_lookup(serve):
    async def handler(request: web.Request) -> web.Response:
        await asyncio.sleep(1.0)
        return web.Response(text=BUILD_COMPLETE_RESPONSE, content_type="application/json")

    start = time.monotonic()
    with pytest.raises(DeadlineExceededError):
        await wait_until_complete(serve, handler, timeout=0.1, retry_interval=0.001)

    assert time.monotonic() - start < 0.8
