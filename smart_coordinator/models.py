from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Any, Dict, List, Literal, Mapping, Optional, Union

# --- Request Models ---

class QueryRequestBody(BaseModel):
    """Request body accepted by the coordinator's /query endpoint."""
    query: str


# --- Routing and Dispatch Models ---

class RoutingDecision(BaseModel):
    """
    The outcome of classifying a user query: which specialist to invoke and
    the payload context it needs. Read-only once produced.
    """
    specialist: str
    payload: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)


class SpecialistRequest(BaseModel):
    """The single text blob sent to a specialist. Immutable once built."""
    specialist: str
    text: str

    model_config = ConfigDict(frozen=True)


# A specialist replies either with text (possibly a serialized record)
# or with an already-structured mapping.
SpecialistResult = Union[str, Mapping[str, Any]]


class CoordinatorStage(str, Enum):
    ROUTE = "ROUTE"
    BUILD_REQUEST = "BUILD_REQUEST"
    INVOKE = "INVOKE"
    NORMALIZE = "NORMALIZE"
    DONE = "DONE"
    FAILED = "FAILED"


# --- Canonical Response Model ---

class CanonicalResponse(BaseModel):
    """
    The normalized, display-ready record returned to callers regardless of
    the shape of the specialist's reply. `response` is final display text and
    must never be re-parsed by the consumer.
    """
    status: Literal["ok", "error"]
    response: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    entities: Dict[str, Any] = Field(default_factory=dict)


# --- Configuration Models ---

class SpecialistSettings(BaseModel):
    url: str
    description: str = ""
    keywords: List[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class CoordinatorConfig(BaseModel):
    """
    Process-wide configuration, loaded once at startup and immutable afterwards.
    """
    specialists: Dict[str, SpecialistSettings]
    default_specialist: str
    specialist_timeout: float = 30.0
    request_timeout: float = 120.0
    specialist_max_retries: int = 3
    specialist_backoff_factor: float = 0.5
    specialist_failure_threshold: int = 5
    specialist_cooldown_period: int = 30
    parse_failure_status: Literal["ok", "error"] = "ok"
    log_file: str = "coordinator_history.log"
    log_level: str = "INFO"

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def default_specialist_must_be_configured(self):
        if self.default_specialist not in self.specialists:
            raise ValueError(
                f"default_specialist '{self.default_specialist}' is not one of the configured specialists"
            )
        return self


class SpecialistInfo(BaseModel):
    name: str
    description: str


class SpecialistListResponse(BaseModel):
    default_specialist: str
    specialists: List[SpecialistInfo]
