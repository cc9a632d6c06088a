from typing import Any, Dict

SPECIALIST_SYSTEM_TEMPLATE = """You are the {specialist} specialist of a team of assistants coordinated by a single front desk.
{description}

Answer only the question below. Reply with a single JSON object with these optional keys:
- "response": the final answer formatted for display (Markdown allowed). Put display text here directly; never nest another JSON document inside it.
- "data": an object with any structured values backing your answer.
- "entities": an object with the entities you recognised in the question."""

REPLY_CONTEXT_HEADER = "Context provided by the coordinator:"

# Payload keys that are consumed by the template itself and not repeated as context.
_RESERVED_KEYS = {"user_query", "specialist", "specialist_description"}


def _format_value(value: Any) -> str:
    if isinstance(value, (list, tuple, set)):
        return ", ".join(str(v) for v in value) or "(none)"
    return str(value)


def build_specialist_system_message(payload: Dict[str, Any]) -> str:
    """
    Builds the system message for a specialist from a routing decision payload.
    Pure function: the same payload always yields the same text.
    """
    specialist = payload.get("specialist") or "general"
    description = payload.get("specialist_description") or ""

    message = SPECIALIST_SYSTEM_TEMPLATE.format(specialist=specialist, description=description)

    context_keys = sorted(key for key in payload if key not in _RESERVED_KEYS)
    if context_keys:
        lines = [f"- {key}: {_format_value(payload[key])}" for key in context_keys]
        message = f"{message}\n\n{REPLY_CONTEXT_HEADER}\n" + "\n".join(lines)

    return message
