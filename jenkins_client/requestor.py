import asyncio
import base64
from typing import Any, Awaitable, Callable, List, Optional, Type, TypeVar

import aiohttp
from loguru import logger
from pydantic import BaseModel, ValidationError

from jenkins_client.deadline import Deadline
from jenkins_client.errors import (
    AggregatedError,
    AlreadyConsumedError,
    DeadlineExceededError,
    DecodeError,
    TransportError,
    VerificationError,
)
from jenkins_client.models import Request

ModelT = TypeVar("ModelT", bound=BaseModel)

# A verifier inspects status and headers and raises VerificationError on mismatch.
# A decoder consumes the body and returns the decoded value or raises DecodeError.
Verifier = Callable[[Any], None]
Decoder = Callable[[Any], Awaitable[Any]]


def status_code_verifier(status_code: int) -> Verifier:
    def verify(response: Any) -> None:
        if response.status != status_code:
            raise VerificationError(
                f"Unexpected status code {response.status}. Expected {status_code}"
            )

    return verify


STATUS_OK_VERIFIER = status_code_verifier(200)


async def no_op_decoder(response: Any) -> None:
    """Drains the body, for calls where only the status and headers matter"""
    await response.read()


def json_decoder(model: Type[ModelT]) -> Callable[[Any], Awaitable[ModelT]]:
    async def decode(response: Any) -> ModelT:
        body = await response.read()
        try:
            return model.model_validate_json(body)
        except ValidationError as e:
            raise DecodeError(f"Failed to decode {model.__name__}: {e}") from e

    return decode


class Response:
    """One HTTP response whose body can be verified and decoded exactly once"""

    def __init__(self, raw: Any, deadline: Optional[Deadline] = None):
        self._raw = raw
        self._deadline = deadline
        self._consumed = False
        self.logger = logger

    @property
    def status(self) -> int:
        return self._raw.status

    @property
    def headers(self):
        return self._raw.headers

    @property
    def consumed(self) -> bool:
        return self._consumed

    async def verify_and_decode(self, decoder: Decoder, *verifiers: Verifier) -> Any:
        """Apply every verifier, then decode the body once.

        Verification and decode failures are collected into a single
        AggregatedError instead of the first one masking the others. The body
        is released whether decoding succeeds or not, and any later call on
        the same response raises AlreadyConsumedError.
        """
        if self._consumed:
            raise AlreadyConsumedError("Cannot decode from a consumed response body")

        self._consumed = True
        errors: List[Exception] = []
        result = None
        try:
            for verifier in verifiers or (STATUS_OK_VERIFIER,):
                try:
                    verifier(self._raw)
                except VerificationError as e:
                    errors.append(e)

            try:
                result = await decoder(self._raw)
            except DecodeError as e:
                errors.append(e)
            except asyncio.TimeoutError as e:
                raise self._timeout_error(e) from e
            except aiohttp.ClientError as e:
                raise TransportError(f"Failed to read response body: {e}") from e
        finally:
            self._raw.release()

        if errors:
            error = AggregatedError(errors)
            self.logger.error(f"Response verification failed: {error}")
            raise error
        return result

    def _timeout_error(self, cause: Exception) -> Exception:
        if self._deadline is not None:
            return DeadlineExceededError("Deadline exceeded while reading response body")
        return TransportError(f"Timed out reading response body: {cause}")


class Requestor:
    """Issues single authenticated requests against the Jenkins API"""

    def __init__(
        self,
        username: str,
        api_key: str,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        credentials = base64.b64encode(f"{username}:{api_key}".encode()).decode()
        self.authorization = f"Basic {credentials}"
        self._session = session
        self._owns_session = session is None
        self.logger = logger

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    async def do(self, request: Request, deadline: Optional[Deadline] = None) -> Response:
        """Sends one request; the deadline, when given, bounds the whole exchange"""
        kwargs = {}
        if deadline is not None:
            deadline.check(f"{request.method} {request.url}")
            # aiohttp treats a zero total as "no timeout"
            kwargs["timeout"] = aiohttp.ClientTimeout(
                total=max(deadline.remaining(), 0.001)
            )

        try:
            raw = await self._get_session().request(
                request.method,
                request.url,
                params=request.query or None,
                data=request.body,
                headers={
                    "Authorization": self.authorization,
                    "Content-Type": request.content_type,
                },
                **kwargs,
            )
        except asyncio.TimeoutError as e:
            if deadline is not None:
                raise DeadlineExceededError(
                    f"{request.method} {request.url}: deadline exceeded"
                ) from e
            self.logger.error(f"Timed out at {request.url}: {e}")
            raise TransportError(f"{request.method} {request.url} timed out") from e
        except aiohttp.ClientError as e:
            self.logger.error(f"HTTP error at {request.url}: {e}")
            raise TransportError(f"{request.method} {request.url} failed: {e}") from e

        return Response(raw, deadline)
