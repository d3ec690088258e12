"""Custom exceptions for the stage-time / SLA module"""


class StageTimingError(Exception):
    """Base exception for the stage-time / SLA module"""
    pass


class InvalidInput(StageTimingError):
    """Raised when an instant or an hour budget cannot be resolved"""
    def __init__(self, value, reason: str = "not a valid instant"):
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid input {value!r}: {reason}")


class MissingReferencePoint(StageTimingError):
    """Raised when no stage-entry instant can be established for a stage"""
    def __init__(self, stage: str):
        self.stage = stage
        super().__init__(
            f"No chronology entry or creation instant available for stage '{stage}'"
        )
