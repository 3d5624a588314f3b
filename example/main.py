import asyncio

from mock_jenkins_server import MockJenkinsServer

from jenkins_client.deadline import Deadline
from jenkins_client.errors import DeadlineExceededError, JenkinsError
from jenkins_client.jenkins_client import JenkinsClient
from jenkins_client.models import PollingConfig


async def main():
    server = MockJenkinsServer(job_name="testjob", polls_until_queued=2, polls_until_complete=5)
    base_url = await server.start()
    print(f"Mock Jenkins started on {base_url}")

    config = PollingConfig(queued_timeout=30.0, completed_timeout=120.0)

    async with JenkinsClient(base_url, "username", "apikey", config) as client:
        # Gives up and raises DeadlineExceededError after 10 minutes
        deadline = Deadline.after(600)
        try:
            queue_id = await client.jobs.schedule_build("testjob", {"Branch": "main"}, deadline)
            print(f"Scheduled queue item {queue_id}")

            item = await client.queue.wait_until_build_is_queued(queue_id, 0.5, deadline)
            print(f"Build {item.number} started at {item.url}")

            build = await client.jobs.wait_until_build_is_complete(item, 0.5, deadline)
            print(f"Build {build.number} finished: {build.result}")
        except DeadlineExceededError as e:
            print(f"Polling timed out: {e}")
        except JenkinsError as e:
            print(f"Error occurred: {e}")

    await server.stop()


if __name__ == "__main__":
    asyncio.run(main())
