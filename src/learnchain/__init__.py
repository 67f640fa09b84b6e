"""Turn AI coding-assistant session logs into quizzes and track learning over time."""

__version__ = "0.1.0"
