from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request

from .config_resolver import ConfigResolver
from .coordinator import SmartCoordinator
from .logger import coordinator_logger, setup_logger
from .models import (
    CanonicalResponse, CoordinatorConfig, QueryRequestBody, SpecialistInfo,
    SpecialistListResponse
)


def create_app(
    config: Optional[CoordinatorConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Builds the coordinator API. The configuration is resolved exactly once,
    at startup, before any request is served; a ConfigNotFoundError aborts
    startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        resolved = config if config is not None else ConfigResolver().resolve()
        setup_logger(resolved.log_file, resolved.log_level)

        coordinator = SmartCoordinator.from_config(resolved, transport=transport)
        app.state.coordinator = coordinator
        coordinator_logger.info(
            f"Coordinator started with specialists: {', '.join(resolved.specialists)}"
        )
        try:
            yield
        finally:
            await coordinator.aclose()
            coordinator_logger.info("Coordinator stopped.")

    app = FastAPI(title="Smart Coordinator", lifespan=lifespan)

    @app.post("/query", response_model=CanonicalResponse)
    async def query(body: QueryRequestBody, request: Request):
        """
        Routes the query to a specialist and returns its normalized reply.
        Failures are reported in the body's `status`, never as an HTTP error.
        """
        coordinator: SmartCoordinator = request.app.state.coordinator
        return await coordinator.handle(body.query)

    @app.get("/specialists", response_model=SpecialistListResponse)
    async def list_specialists(request: Request):
        resolved: CoordinatorConfig = request.app.state.coordinator.config
        return SpecialistListResponse(
            default_specialist=resolved.default_specialist,
            specialists=[
                SpecialistInfo(name=name, description=settings.description)
                for name, settings in resolved.specialists.items()
            ],
        )

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
