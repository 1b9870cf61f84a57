class ValidationError(ValueError):
    """Raised when the arguments of a simulation are invalid.

    Always raised before any random number is drawn.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class DesignConstructionError(RuntimeError):
    """Raised when no valid trait-to-block assignment could be built."""

    def __init__(self, message: str, attempts: int | None = None) -> None:
        self.message = message
        self.attempts = attempts
        super().__init__(message)
