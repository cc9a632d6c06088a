class CoordinatorError(Exception):
    """Base class for all errors raised by the coordinator."""
    pass


class ConfigNotFoundError(CoordinatorError):
    """Raised when no configuration strategy produced a usable configuration."""

    def __init__(self, symbol: str, attempts: list):
        self.symbol = symbol
        self.attempts = attempts
        detail = "; ".join(f"{name}: {reason}" for name, reason in attempts)
        super().__init__(f"Configuration '{symbol}' could not be resolved ({detail})")


class MissingFieldError(CoordinatorError):
    """Raised when a required field is absent from a routing decision payload."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Required field '{field}' is missing")


class UnsupportedResultShapeError(CoordinatorError):
    """Raised when a specialist returns something that is neither text nor a mapping."""

    def __init__(self, result_type: str):
        self.result_type = result_type
        super().__init__(f"Unsupported specialist result shape: {result_type}")


class SpecialistInvocationError(CoordinatorError):
    """Raised when the call to a specialist failed, timed out or was refused."""

    def __init__(self, specialist: str, reason: str):
        self.specialist = specialist
        self.reason = reason
        super().__init__(f"Specialist '{specialist}' could not be invoked: {reason}")
