import re
from typing import Dict, List, Optional
from urllib.parse import urlencode

from loguru import logger
from pydantic import BaseModel

from jenkins_client.deadline import Deadline, resolve_deadline
from jenkins_client.errors import QueueIDParseError
from jenkins_client.models import (
    BUILD_INFO_TREE,
    CONTENT_TYPE_FORM_URL_ENCODED,
    BuildInfo,
    PollingConfig,
    QueueItem,
    Request,
)
from jenkins_client.requestor import (
    Requestor,
    json_decoder,
    no_op_decoder,
    status_code_verifier,
)
from jenkins_client.retrier import retry_until_done
from jenkins_client.urls import JSON_ENDPOINT, URLBuilder

QUEUE_ID_REGEX = re.compile(r".*/item/(\d+)")


class _BuildsResponse(BaseModel):
    builds: List[BuildInfo] = []


def queue_id_from_location(location: Optional[str]) -> int:
    """Extracts the queue id from a .../queue/item/<id>/ Location header"""
    match = QUEUE_ID_REGEX.match(location or "")
    if match is None:
        raise QueueIDParseError(f"Failed to parse queue id from Location {location!r}")
    return int(match.group(1))


class JobAPI:
    """Schedules builds of a job and follows them to completion"""

    def __init__(
        self,
        url_builder: URLBuilder,
        requestor: Requestor,
        config: Optional[PollingConfig] = None,
    ):
        self.url_builder = url_builder
        self.requestor = requestor
        self.config = config or PollingConfig()
        self.logger = logger

    async def schedule_build(
        self,
        job_name: str,
        params: Optional[Dict[str, str]] = None,
        deadline: Optional[Deadline] = None,
    ) -> int:
        """Triggers a build and returns the id of its queue item"""
        resp = await self.requestor.do(
            Request(
                method="POST",
                url=self.url_builder.json_endpoint("job", job_name, "buildWithParameters"),
                content_type=CONTENT_TYPE_FORM_URL_ENCODED,
                body=urlencode(params or {}),
            ),
            deadline,
        )
        await resp.verify_and_decode(no_op_decoder, status_code_verifier(201))
        queue_id = queue_id_from_location(resp.headers.get("Location"))
        self.logger.debug(f"Scheduled {job_name} as queue item {queue_id}")
        return queue_id

    async def get_builds(
        self,
        job_name: str,
        start: int,
        end: int,
        deadline: Optional[Deadline] = None,
    ) -> List[BuildInfo]:
        """Returns the builds of a job in the index range [start, end)"""
        resp = await self.requestor.do(
            Request(
                method="GET",
                url=self.url_builder.json_endpoint("job", job_name),
                query={"tree": f"builds[{BUILD_INFO_TREE}]{{{start},{end}}}"},
            ),
            deadline,
        )
        builds = await resp.verify_and_decode(json_decoder(_BuildsResponse))
        return builds.builds

    async def build_info(
        self, item: QueueItem, deadline: Optional[Deadline] = None
    ) -> BuildInfo:
        resp = await self.requestor.do(
            Request(
                method="GET",
                url=f"{item.url.rstrip('/')}/{JSON_ENDPOINT}",
                query={"tree": f"{BUILD_INFO_TREE},building"},
            ),
            deadline,
        )
        return await resp.verify_and_decode(json_decoder(BuildInfo))

    async def wait_until_build_is_complete(
        self,
        item: QueueItem,
        retry_interval: float,
        deadline: Optional[Deadline] = None,
    ) -> BuildInfo:
        """Poll the build until Jenkins reports it is no longer building.

        Without a deadline, config.completed_timeout applies. retry_interval
        seconds are waited between polls of a running build.
        """
        deadline = resolve_deadline(deadline, self.config.completed_timeout)
        build = BuildInfo()

        async def probe() -> bool:
            nonlocal build
            build = await self.build_info(item, deadline)
            return build.building

        self.logger.debug(f"Waiting for build {item.number} at {item.url}, {deadline}")
        await retry_until_done(deadline, retry_interval, probe)
        self.logger.debug(f"Build {build.number} finished with {build.result}")
        return build
