from typing import List, Type


class JenkinsError(Exception):
    """Base class for every error raised by the Jenkins client"""


class TransportError(JenkinsError):
    """The HTTP exchange itself failed (connection, DNS, TLS, payload)"""


class VerificationError(JenkinsError):
    """A response failed a status or shape check"""


class DecodeError(JenkinsError):
    """A response body could not be parsed into the expected model"""


class AlreadyConsumedError(JenkinsError):
    """The body of a response was read a second time"""


class QueueIDParseError(JenkinsError):
    """The Location header of a scheduled build did not carry a queue id"""


class DeadlineExceededError(JenkinsError, TimeoutError):
    """A polling operation ran out of time while still waiting"""


class AggregatedError(JenkinsError):
    """Failures collected from one response, reported together in order"""

    def __init__(self, errors: List[Exception]):
        self.errors = list(errors)
        super().__init__(" : ".join(str(error) for error in self.errors))

    def of_type(self, error_type: Type[Exception]) -> List[Exception]:
        return [error for error in self.errors if isinstance(error, error_type)]
