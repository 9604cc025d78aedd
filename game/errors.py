"""
Wolf's Journey Home - Errors

Exceptions raised by the evaluation pipeline. Routes translate these into
JSON bodies with a success flag.
"""

from typing import Optional


class GameError(Exception):
    """Base class for pipeline errors"""


class ValidationError(GameError):
    """Malformed request shape (HTTP 400)"""


class StoreReadError(GameError):
    """A store that a caller depends on is missing or unreadable"""


class JudgeError(GameError):
    """The sentiment judge reply could not be turned into a label"""


class WalrusError(GameError):
    """The Walrus publisher rejected an upload"""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body
