from __future__ import annotations

from typing import Optional


class BoundedCounterError(Exception):
    """Base error for BoundedCounter component."""


class ScriptLoadError(BoundedCounterError):
    """Raised when a script body cannot be read or the store rejects it."""

    def __init__(self, identifier: str, cause: BaseException):
        super().__init__(f"failed to load script {identifier!r}: {cause}")
        self.identifier = identifier
        self.cause = cause


class UnknownScriptError(BoundedCounterError):
    """Raised when a script identifier was never successfully registered."""

    def __init__(self, identifier: str):
        super().__init__(f"script {identifier!r} is not registered; call init() first")
        self.identifier = identifier


class StoreExecutionError(BoundedCounterError):
    """Raised for store failures during script invocation."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class ScriptRejected(StoreExecutionError):
    """The store refused a script body as malformed."""


class ScriptCacheMiss(StoreExecutionError):
    """The store no longer holds the script for a handle."""

    def __init__(self, handle: str, cause: Optional[BaseException] = None):
        super().__init__(f"script {handle} not cached", cause)
        self.handle = handle
