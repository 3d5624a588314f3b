from typing import List, Optional

from loguru import logger
from pydantic import BaseModel, Field

from jenkins_client.deadline import Deadline, resolve_deadline
from jenkins_client.models import PollingConfig, QueueItem, QueueStats, Request
from jenkins_client.requestor import Requestor, json_decoder
from jenkins_client.retrier import retry_until_done
from jenkins_client.urls import URLBuilder


class _Task(BaseModel):
    name: str = ""


class _QueueEntry(BaseModel):
    task: _Task = Field(default_factory=_Task)


class _QueueResponse(BaseModel):
    items: List[_QueueEntry] = []


class _QueueItemResponse(BaseModel):
    executable: Optional[QueueItem] = None


class QueueAPI:
    """Reads the Jenkins build queue"""

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

    async def queue_stats(self, deadline: Optional[Deadline] = None) -> QueueStats:
        resp = await self.requestor.do(
            Request(method="GET", url=self.url_builder.json_endpoint("queue")), deadline
        )
        queue = await resp.verify_and_decode(json_decoder(_QueueResponse))
        return QueueStats(
            length=len(queue.items),
            task_names=[item.task.name for item in queue.items],
        )

    async def wait_until_build_is_queued(
        self,
        queue_id: int,
        retry_interval: float,
        deadline: Optional[Deadline] = None,
    ) -> QueueItem:
        """Poll the queue item until Jenkins assigns it a build number.

        Without a deadline, config.queued_timeout applies. retry_interval
        seconds are waited between unsuccessful polls.
        """
        deadline = resolve_deadline(deadline, self.config.queued_timeout)
        url = self.url_builder.json_endpoint("queue", "item", str(queue_id))
        queue_item = QueueItem()

        async def probe() -> bool:
            nonlocal queue_item
            resp = await self.requestor.do(Request(method="GET", url=url), deadline)
            decoded = await resp.verify_and_decode(json_decoder(_QueueItemResponse))
            queue_item = decoded.executable or QueueItem()
            return queue_item.number == 0

        self.logger.debug(f"Waiting for queue item {queue_id} to get a build, {deadline}")
        await retry_until_done(deadline, retry_interval, probe)
        self.logger.debug(f"Queue item {queue_id} started build {queue_item.number}")
        return queue_item
