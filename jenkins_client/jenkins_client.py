from typing import Optional

import aiohttp

from jenkins_client.job_api import JobAPI
from jenkins_client.models import PollingConfig
from jenkins_client.queue_api import QueueAPI
from jenkins_client.requestor import Requestor
from jenkins_client.urls import URLBuilder
from jenkins_client.view_api import ViewAPI


class JenkinsClient:
    """Jenkins REST API client composed of the job, queue and view capabilities.

    Each capability is usable on its own; the client only wires them to one
    URL builder and one authenticated requestor, and closes the shared HTTP
    session when used as an async context manager.
    """

    def __init__(
        self,
        base_url: str,
        username: str,
        api_key: str,
        config: Optional[PollingConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.config = config or PollingConfig()
        self.url_builder = URLBuilder(base_url)
        self.requestor = Requestor(username, api_key, session)

        self.jobs = JobAPI(self.url_builder, self.requestor, self.config)
        self.queue = QueueAPI(self.url_builder, self.requestor, self.config)
        self.views = ViewAPI(self.url_builder, self.requestor)

    async def close(self) -> None:
        await self.requestor.close()

    async def __aenter__(self) -> "JenkinsClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
