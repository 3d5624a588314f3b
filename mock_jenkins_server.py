from typing import Dict, List, Optional

from aiohttp import web
from loguru import logger


class MockJenkinsServer:
    """A scripted stand-in for the Jenkins REST API.

    Queue item and build lookups answer "not yet" for a configurable number
    of polls before reporting an assigned build and a finished build.
    """

    def __init__(
        self,
        job_name: str = "testjob",
        polls_until_queued: int = 0,
        polls_until_complete: int = 0,
        build_result: str = "SUCCESS",
    ):
        self.job_name = job_name
        self.polls_until_queued = polls_until_queued
        self.polls_until_complete = polls_until_complete
        self.build_result = build_result
        self.queue_id = 1
        self.build_number = 1
        self.location_header: Optional[str] = None
        self.requests: Dict[str, int] = {"schedule": 0, "queue_item": 0, "build": 0}
        self.last_schedule_form: Dict[str, str] = {}
        self.views: Dict[str, List[str]] = {}
        self.queue_tasks: List[str] = []
        self.base_url = ""
        self.runner: Optional[web.AppRunner] = None
        self.app = web.Application()
        self.app.router.add_post(
            "/job/{job}/buildWithParameters/api/json", self.handle_schedule
        )
        self.app.router.add_get("/queue/api/json", self.handle_queue)
        self.app.router.add_get("/queue/item/{id}/api/json", self.handle_queue_item)
        self.app.router.add_get("/job/{job}/api/json", self.handle_job)
        self.app.router.add_get("/job/{job}/{number}/api/json", self.handle_build)
        self.app.router.add_get("/view/{view}/api/json", self.handle_view)
        self.logger = logger

    def build_url(self) -> str:
        return f"{self.base_url}/job/{self.job_name}/{self.build_number}/"

    async def handle_schedule(self, request: web.Request) -> web.Response:
        self.requests["schedule"] += 1
        self.last_schedule_form = dict(await request.post())
        location = self.location_header
        if location is None:
            location = f"{self.base_url}/queue/item/{self.queue_id}/"
        self.logger.info(f"Scheduled {request.match_info['job']}, Location {location}")
        return web.Response(status=201, headers={"Location": location})

    async def handle_queue(self, request: web.Request) -> web.Response:
        items = [{"task": {"name": name}, "why": "Waiting"} for name in self.queue_tasks]
        return web.json_response({"discoverableItems": [], "items": items})

    async def handle_queue_item(self, request: web.Request) -> web.Response:
        self.requests["queue_item"] += 1
        if self.requests["queue_item"] <= self.polls_until_queued:
            self.logger.info("Returning queue item without executable")
            return web.json_response({"id": self.queue_id, "why": "Waiting"})

        self.logger.info(f"Returning queue item with build {self.build_number}")
        return web.json_response(
            {
                "id": self.queue_id,
                "executable": {"number": self.build_number, "url": self.build_url()},
            }
        )

    async def handle_build(self, request: web.Request) -> web.Response:
        self.requests["build"] += 1
        building = self.requests["build"] <= self.polls_until_complete
        self.logger.info(f"Returning build {self.build_number} (building: {building})")
        return web.json_response(
            {
                "building": building,
                "number": self.build_number,
                "queueId": self.queue_id,
                "result": None if building else self.build_result,
                "url": self.build_url(),
            }
        )

    async def handle_job(self, request: web.Request) -> web.Response:
        builds = [
            {
                "number": number,
                "queueId": number,
                "result": self.build_result,
                "url": f"{self.base_url}/job/{self.job_name}/{number}/",
            }
            for number in range(1, self.build_number + 1)
        ]
        return web.json_response({"builds": builds})

    async def handle_view(self, request: web.Request) -> web.Response:
        view = request.match_info["view"]
        if view not in self.views:
            raise web.HTTPNotFound()
        return web.json_response({"jobs": [{"name": name} for name in self.views[view]]})

    async def start(self, host: str = "127.0.0.1", port: int = 0) -> str:
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()
        site = web.TCPSite(self.runner, host, port)
        await site.start()
        bound_port = self.runner.addresses[0][1]
        self.base_url = f"http://{host}:{bound_port}"
        self.logger.info(f"Mock Jenkins started on {self.base_url}")
        return self.base_url

    async def stop(self) -> None:
        if self.runner is not None:
            await self.runner.cleanup()
            self.runner = None
