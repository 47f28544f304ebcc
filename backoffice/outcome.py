from dataclasses import dataclass
from typing import Optional

from .errors import ValidationError


@dataclass
class Outcome:
    ok: bool
    message: str
    error: Optional[BaseException] = None

    @classmethod
    def success(cls, message):
        return cls(True, message)

    @classmethod
    def refused(cls, message):
        return cls(False, message, ValidationError(message))


def failed(log, message, err):
    """Log a controller-boundary failure and wrap it for the caller."""
    if isinstance(err, ValidationError):
        log.warning("%s: %s", message, err)
        return Outcome(False, err.message, err)
    log.error("%s: %s", message, err, exc_info=err)
    return Outcome(False, message, err)
