import time
from typing import Optional

from jenkins_client.errors import DeadlineExceededError


class Deadline:
    """An absolute point on the monotonic clock bounding a polling operation"""

    def __init__(self, at: float):
        self.at = at

    @classmethod
    def after(cls, timeout: float) -> "Deadline":
        return cls(time.monotonic() + timeout)

    def remaining(self) -> float:
        return max(0.0, self.at - time.monotonic())

    def expired(self) -> bool:
        return time.monotonic() >= self.at

    def check(self, operation: str = "operation") -> None:
        """Raise DeadlineExceededError if the deadline has already passed"""
        if self.expired():
            raise DeadlineExceededError(f"{operation}: deadline exceeded")

    def __repr__(self) -> str:
        return f"Deadline(remaining={self.remaining():.3f}s)"


def resolve_deadline(deadline: Optional[Deadline], default_timeout: float) -> Deadline:
    """Caller-supplied deadline wins; otherwise the default timeout applies from now"""
    if deadline is not None:
        return deadline
    return Deadline.after(default_timeout)
