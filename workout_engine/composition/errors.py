"""Domain-specific errors for workout composition.

Only conditions that make a session impossible to build are raised.
Recoverable problems (unfillable slots, clamped levels) travel as
GenerationWarning values on the generated session instead.
"""


class CompositionError(Exception):
    """Base exception for all composition errors."""

    pass


class InvalidBlueprintError(CompositionError):
    """Raised at load time when a blueprint is authored inconsistently.

    Attributes:
        code: Error code ("DUPLICATE_SLOT_ID", "FRAGMENT_TAGS_ON_UNSPLITTABLE",
            "INVALID_BLUEPRINT", "INVALID_BLUEPRINT_SCHEMA", "INVALID_BLUEPRINT_YAML",
            "DUPLICATE_BLUEPRINT_ID")
        details: List of error detail strings
    """

    def __init__(self, code: str, details: list[str]):
        self.code = code
        self.details = details
        super().__init__(f"{code}: {details}")


class UnknownBlueprintError(CompositionError):
    """Raised when an archetype id has no blueprint."""

    pass


class CatalogUnavailableError(CompositionError):
    """Raised when the exercise catalog query fails or times out.

    Generation is aborted; the call is safe to retry.
    """

    pass


class StaleGenerationError(CompositionError):
    """Raised when a superseded generation result is applied."""

    pass
