"""voice2task - spoken sentences to task lists."""

__version__ = "0.1.0"
