from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

CONTENT_TYPE_JSON = "application/json"
CONTENT_TYPE_FORM_URL_ENCODED = "application/x-www-form-urlencoded"

# Default polling budgets, used only when the caller supplies no deadline
DEFAULT_WAIT_FOR_BUILD_TO_BE_QUEUED_TIMEOUT = 60.0  # 1 minute
DEFAULT_WAIT_FOR_BUILD_TO_BE_COMPLETED_TIMEOUT = 25 * 60.0  # 25 minutes

BUILD_INFO_TREE = "number,queueId,url,result"


class Request(BaseModel):
    method: str
    url: str
    query: Dict[str, str] = Field(default_factory=dict)
    content_type: str = CONTENT_TYPE_JSON
    body: Optional[Union[str, bytes]] = None


class QueueItem(BaseModel):
    number: int = 0
    url: str = ""


class BuildInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    number: int = 0
    queue_id: int = Field(default=0, alias="queueId")
    url: str = ""
    result: Optional[str] = None
    building: bool = False


class QueueStats(BaseModel):
    length: int
    task_names: List[str]


class PollingConfig(BaseModel):
    queued_timeout: float = Field(
        default=DEFAULT_WAIT_FOR_BUILD_TO_BE_QUEUED_TIMEOUT, gt=0
    )
    completed_timeout: float = Field(
        default=DEFAULT_WAIT_FOR_BUILD_TO_BE_COMPLETED_TIMEOUT, gt=0
    )
