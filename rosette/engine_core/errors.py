"""
Engine errors.

Recoverable rejections (an illegal submission from a remote player, a full
room) are reported as values. Exceptions here signal that a caller broke
the turn protocol contract.
"""


class RosetteError(Exception):
    """Base class for all rosette errors."""


class ProtocolViolation(RosetteError, RuntimeError):
    """The turn protocol was driven out of order or with an illegal move."""


class RequestCancelled(RosetteError):
    """An outstanding participant request was failed by session teardown."""
