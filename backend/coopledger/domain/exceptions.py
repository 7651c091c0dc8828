"""Engine error taxonomy"""


class EngineError(Exception):
    """Base exception for the calculation engine"""

    pass


class ValidationError(EngineError):
    """Input is malformed or out of range; nothing was applied"""

    pass


class InvalidStateError(EngineError):
    """Operation is not allowed in the loan or record's current state"""

    pass


class ClassificationAmbiguity(UserWarning):
    """A transaction mode could not be classified with confidence.

    Soft signal only: the keyword rule still decides, and the record is
    flagged for review.
    """

    pass
