"""Domain errors raised by the indicator managers and the statistics engine."""


class IndicatorStatsError(Exception):
    """Base class for all errors raised by this package."""


class ValidationError(IndicatorStatsError):
    """A field failed validation; nothing was written."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class ConflictError(ValidationError):
    """A uniqueness rule (indicator code/name, followup year) was violated."""


class ReferentialIntegrityError(IndicatorStatsError):
    """A write referenced a data slice position that does not exist."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class NotFoundError(IndicatorStatsError):
    def __init__(self, kind: str, object_id: str) -> None:
        self.kind = kind
        self.object_id = object_id
        super().__init__(f"{kind} {object_id!r} not found")


class ConcurrentModificationError(IndicatorStatsError):
    """The indicator changed since the caller last read it."""

    def __init__(self, indicator_id: str, expected: int, actual: int) -> None:
        self.indicator_id = indicator_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Indicator {indicator_id!r} is at version {actual}, expected {expected}"
        )
