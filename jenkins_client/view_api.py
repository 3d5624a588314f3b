from typing import List, Optional

from pydantic import BaseModel

from jenkins_client.deadline import Deadline
from jenkins_client.models import Request
from jenkins_client.requestor import Requestor, json_decoder
from jenkins_client.urls import URLBuilder


class _Job(BaseModel):
    name: str


class _ViewResponse(BaseModel):
    jobs: List[_Job] = []


class ViewAPI:
    def __init__(self, url_builder: URLBuilder, requestor: Requestor):
        self.url_builder = url_builder
        self.requestor = requestor

    async def list_job_names(
        self, view_name: str, deadline: Optional[Deadline] = None
    ) -> List[str]:
        resp = await self.requestor.do(
            Request(method="GET", url=self.url_builder.json_endpoint("view", view_name)),
            deadline,
        )
        view = await resp.verify_and_decode(json_decoder(_ViewResponse))
        return [job.name for job in view.jobs]
