import httpx
import time
import asyncio
from typing import Dict, Optional

from .exceptions import SpecialistInvocationError
from .models import CoordinatorConfig, SpecialistRequest, SpecialistResult
from .logger import coordinator_logger


class SpecialistClient:
    """
    An async, reliable HTTP client for a single specialist agent.
    Features:
    - Connection pooling via a shared httpx.AsyncClient instance.
    - Retry with exponential backoff for transient errors.
    - Circuit breaker to prevent cascading failures.
    - Request tracing with a correlation_id.

    Retries live here and nowhere else in the coordinator.
    """

    def __init__(
        self,
        name: str,
        url: str,
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff_factor: float = 0.5,
        failure_threshold: int = 5,
        cooldown_period: int = 30,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
        self._max_retries = max(1, max_retries)
        self._backoff_factor = backoff_factor

        # Circuit Breaker state
        self._failure_threshold = failure_threshold
        self._cooldown_period = cooldown_period
        self._failure_count = 0
        self._circuit_state = "CLOSED"  # Can be "CLOSED", "OPEN", "HALF-OPEN"
        self._last_failure_time = 0
        self.name = name
        self.url = url

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self):
        await self._client.aclose()

    def _open_circuit(self):
        self._circuit_state = "OPEN"
        self._last_failure_time = time.time()
        coordinator_logger.warning(f"Circuit breaker opened for specialist '{self.name}' at {self.url}.")

    def _close_circuit(self):
        self._circuit_state = "CLOSED"
        self._failure_count = 0
        coordinator_logger.info(f"Circuit breaker closed for specialist '{self.name}'.")

    def _handle_successful_response(self):
        if self._circuit_state == "HALF-OPEN":
            self._close_circuit()
        self._failure_count = 0

    def _handle_failed_response(self):
        self._failure_count += 1
        if self._failure_count >= self._failure_threshold:
            self._open_circuit()

    def _check_circuit(self, correlation_id: str):
        if self._circuit_state != "OPEN":
            return
        if time.time() - self._last_failure_time > self._cooldown_period:
            self._circuit_state = "HALF-OPEN"
            coordinator_logger.info(f"Circuit breaker for specialist '{self.name}' is now HALF-OPEN.")
        else:
            raise SpecialistInvocationError(
                self.name, f"circuit breaker is open, correlation_id={correlation_id}"
            )

    async def _request(self, json_data: Dict, correlation_id: str) -> httpx.Response:
        self._check_circuit(correlation_id)
        headers = {"X-Correlation-ID": correlation_id}

        for attempt in range(self._max_retries):
            if self._circuit_state == "OPEN":
                raise SpecialistInvocationError(
                    self.name, f"circuit breaker is open, correlation_id={correlation_id}"
                )
            try:
                coordinator_logger.info(
                    f"Attempt {attempt + 1}/{self._max_retries} to POST {self.url}, correlation_id={correlation_id}"
                )
                response = await self._client.post(self.url, json=json_data, headers=headers)
                response.raise_for_status()
                self._handle_successful_response()
                return response

            except httpx.TimeoutException as e:
                coordinator_logger.warning(
                    f"Request timed out for {self.url}: {e}, correlation_id={correlation_id}"
                )
                self._handle_failed_response()

            except httpx.HTTPStatusError as e:
                if e.response.status_code >= 500:
                    coordinator_logger.warning(
                        f"HTTP Status Error for {self.url}: {e}, correlation_id={correlation_id}"
                    )
                    self._handle_failed_response()
                else:
                    coordinator_logger.error(
                        f"Client error for {self.url}: {e}, not retrying, correlation_id={correlation_id}"
                    )
                    raise SpecialistInvocationError(
                        self.name, f"specialist rejected the request with status {e.response.status_code}"
                    ) from e

            except httpx.RequestError as e:
                coordinator_logger.warning(
                    f"Request Error for {self.url}: {e}, correlation_id={correlation_id}"
                )
                self._handle_failed_response()

            if attempt < self._max_retries - 1:
                backoff_delay = self._backoff_factor * (2 ** attempt)
                coordinator_logger.info(f"Waiting {backoff_delay:.2f}s before retrying {self.url}...")
                await asyncio.sleep(backoff_delay)

        raise SpecialistInvocationError(
            self.name, f"no successful reply after {self._max_retries} attempts, correlation_id={correlation_id}"
        )

    async def invoke(self, request: SpecialistRequest, correlation_id: str) -> SpecialistResult:
        """
        Sends the request text to the specialist and returns its raw reply:
        the decoded JSON body when the specialist answers with JSON, the body
        text otherwise.
        """
        response = await self._request({"request": request.text}, correlation_id)

        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            try:
                return response.json()
            except ValueError:
                coordinator_logger.warning(
                    f"Specialist '{self.name}' declared JSON but sent an undecodable body, "
                    f"passing it on as text, correlation_id={correlation_id}"
                )
        return response.text


class SpecialistInvoker:
    """Holds one SpecialistClient per configured specialist and dispatches requests by name."""

    def __init__(self, clients: Dict[str, SpecialistClient]):
        self._clients = clients

    @classmethod
    def from_config(cls, config: CoordinatorConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        clients = {
            name: SpecialistClient(
                name=name,
                url=settings.url,
                timeout=config.specialist_timeout,
                max_retries=config.specialist_max_retries,
                backoff_factor=config.specialist_backoff_factor,
                failure_threshold=config.specialist_failure_threshold,
                cooldown_period=config.specialist_cooldown_period,
                transport=transport,
            )
            for name, settings in config.specialists.items()
        }
        return cls(clients)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self):
        for client in self._clients.values():
            await client.aclose()

    async def invoke(self, request: SpecialistRequest, correlation_id: str) -> SpecialistResult:
        client = self._clients.get(request.specialist)
        if client is None:
            raise SpecialistInvocationError(request.specialist, "no such specialist is configured")
        return await client.invoke(request, correlation_id)
