"""Utility modules for learnchain."""

from learnchain.utils.errors import ErrorLog, merge_errors
from learnchain.utils.logging import get_logger

__all__ = ["ErrorLog", "get_logger", "merge_errors"]
