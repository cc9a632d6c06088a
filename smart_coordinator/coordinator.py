import asyncio
import uuid
from typing import Optional, Protocol

import httpx

from .exceptions import CoordinatorError, SpecialistInvocationError
from .logger import coordinator_logger
from .models import (
    CanonicalResponse, CoordinatorConfig, CoordinatorStage, RoutingDecision,
    SpecialistRequest, SpecialistResult
)
from .normalizer import ResponseNormalizer
from .request_builder import RequestBuilder
from .router import KeywordRouter
from .specialist_client import SpecialistInvoker


class Router(Protocol):
    def route(self, user_query: str) -> RoutingDecision: ...


class Invoker(Protocol):
    async def invoke(self, request: SpecialistRequest, correlation_id: str) -> SpecialistResult: ...


FAILURE_MESSAGES = {
    CoordinatorStage.ROUTE: "Sorry, I could not work out which specialist should answer your question.",
    CoordinatorStage.BUILD_REQUEST: "Sorry, your question could not be prepared for the specialist.",
    CoordinatorStage.INVOKE: "Sorry, the specialist is not available right now. Please try again later.",
    CoordinatorStage.NORMALIZE: "Sorry, the specialist's answer could not be read.",
}


class SmartCoordinator:
    """
    Routes a user query to a specialist and returns its reply as a
    CanonicalResponse.

    Each request walks ROUTE -> BUILD_REQUEST -> INVOKE -> NORMALIZE -> DONE.
    A failure in any stage moves the request to FAILED and is reported as an
    error-status CanonicalResponse; nothing is retried here and no exception
    escapes `handle` (task cancellation excepted).
    """

    def __init__(
        self,
        config: CoordinatorConfig,
        router: Router,
        request_builder: RequestBuilder,
        normalizer: ResponseNormalizer,
        invoker: Invoker,
    ):
        self.config = config
        self._router = router
        self._request_builder = request_builder
        self._normalizer = normalizer
        self._invoker = invoker

    @classmethod
    def from_config(
        cls,
        config: CoordinatorConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "SmartCoordinator":
        """Wires the default collaborators for the given configuration."""
        return cls(
            config=config,
            router=KeywordRouter(config),
            request_builder=RequestBuilder(),
            normalizer=ResponseNormalizer(parse_failure_status=config.parse_failure_status),
            invoker=SpecialistInvoker.from_config(config, transport=transport),
        )

    async def aclose(self):
        close = getattr(self._invoker, "aclose", None)
        if close is not None:
            await close()

    async def _invoke(self, request: SpecialistRequest, correlation_id: str) -> SpecialistResult:
        try:
            return await asyncio.wait_for(
                self._invoker.invoke(request, correlation_id),
                timeout=self.config.request_timeout,
            )
        except asyncio.TimeoutError as e:
            raise SpecialistInvocationError(
                request.specialist, f"timed out after {self.config.request_timeout}s"
            ) from e

    async def handle(self, user_query: str) -> CanonicalResponse:
        correlation_id = str(uuid.uuid4())
        stage = CoordinatorStage.ROUTE

        try:
            decision = self._router.route(user_query)
            coordinator_logger.info(
                f"Routed query to '{decision.specialist}', correlation_id={correlation_id}"
            )

            stage = CoordinatorStage.BUILD_REQUEST
            request = self._request_builder.build(decision)

            stage = CoordinatorStage.INVOKE
            result = await self._invoke(request, correlation_id)

            stage = CoordinatorStage.NORMALIZE
            response = self._normalizer.normalize(result)

        except CoordinatorError as e:
            coordinator_logger.error(
                f"Request failed at stage {stage.value}: {e}, correlation_id={correlation_id}"
            )
            return self._failure(stage, correlation_id)
        except Exception:
            coordinator_logger.exception(
                f"Unexpected error at stage {stage.value}, correlation_id={correlation_id}"
            )
            return self._failure(stage, correlation_id)

        coordinator_logger.info({
            "event": "request_completed",
            "stage": CoordinatorStage.DONE.value,
            "specialist": decision.specialist,
            "status": response.status,
            "correlation_id": correlation_id,
        })
        return response

    def _failure(self, stage: CoordinatorStage, correlation_id: str) -> CanonicalResponse:
        coordinator_logger.info({
            "event": "request_failed",
            "stage": CoordinatorStage.FAILED.value,
            "failed_stage": stage.value,
            "correlation_id": correlation_id,
        })
        return CanonicalResponse(
            status="error",
            response=f"{FAILURE_MESSAGES[stage]} (reference: {correlation_id})",
            data={},
            entities={},
        )
