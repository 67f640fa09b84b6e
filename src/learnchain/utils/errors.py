"""
Error types and advisory error-message helpers.

Discovery and parse problems are never fatal: they travel as plain strings
joined with " | " so later messages are appended, never replacing earlier ones.
"""

from typing import Optional

ERROR_SEPARATOR = " | "


class LearnChainError(Exception):
    """Base exception for learnchain failures that callers may report."""


class StoreError(LearnChainError):
    """Raised when the attempt store cannot read or write."""


class GenerationError(LearnChainError):
    """Raised when the learning response cannot be generated or decoded."""


def merge_errors(first: Optional[str], second: Optional[str]) -> Optional[str]:
    """Join two optional error messages, keeping order."""
    if first and second:
        return f"{first}{ERROR_SEPARATOR}{second}"
    return first or second or None


def join_errors(messages: list[str]) -> Optional[str]:
    """Join a list of messages, or return None when empty."""
    return ERROR_SEPARATOR.join(messages) if messages else None


class ErrorLog:
    """Accumulates advisory error text for display."""

    def __init__(self, message: Optional[str] = None):
        self.message = message

    def push(self, message: Optional[str]) -> None:
        if message:
            self.message = merge_errors(self.message, message)

    def clear(self) -> None:
        self.message = None

    def __bool__(self) -> bool:
        return bool(self.message)

    def __str__(self) -> str:
        return self.message or ""
