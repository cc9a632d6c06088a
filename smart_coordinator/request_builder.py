from typing import Any, Callable, Dict

from .exceptions import MissingFieldError
from .models import RoutingDecision, SpecialistRequest
from .prompts import build_specialist_system_message

REQUEST_SEPARATOR = "---"
USER_QUERY_PREFIX = "User's original query: "


class RequestBuilder:
    """
    Assembles the text payload sent to a specialist: the system message
    derived from the decision payload, a separator line, and the user's
    query verbatim.
    """

    def __init__(
        self,
        system_message_builder: Callable[[Dict[str, Any]], str] = build_specialist_system_message,
    ):
        self._system_message_builder = system_message_builder

    def build(self, decision: RoutingDecision) -> SpecialistRequest:
        payload = decision.payload
        if "user_query" not in payload or payload["user_query"] is None:
            raise MissingFieldError("user_query")

        system_message = self._system_message_builder(payload)
        text = (
            f"{system_message}\n\n"
            f"{REQUEST_SEPARATOR}\n\n"
            f"{USER_QUERY_PREFIX}{payload['user_query']}"
        )
        return SpecialistRequest(specialist=decision.specialist, text=text)
