"""Error taxonomy for the review engine."""


class EngineError(Exception):
    """Base class for every error the engine raises."""


class InvalidQuality(EngineError, ValueError):
    def __init__(self, quality):
        self.quality = quality
        super().__init__(f"Quality must be an integer between 0 and 5, got {quality!r}")


class OutOfOrderOperation(EngineError):
    def __init__(self, operation: str, state: str):
        self.operation = operation
        self.state = state
        super().__init__(f"Cannot {operation} while session is {state}")


class UnknownCard(EngineError):
    def __init__(self, card_id):
        self.card_id = card_id
        super().__init__(f"Card not found: {card_id}")


class StaleSchedule(EngineError):
    """The stored schedule changed since it was read; the write was not applied."""

    def __init__(self, card_id):
        self.card_id = card_id
        super().__init__(f"Schedule for card {card_id} was updated by another review")


class PersistenceFailure(EngineError):
    """Storage failed to record a review. Safe to retry with the same quality."""

    def __init__(self, card_id, cause: Exception):
        self.card_id = card_id
        self.cause = cause
        super().__init__(f"Failed to record review for card {card_id}: {cause}")
