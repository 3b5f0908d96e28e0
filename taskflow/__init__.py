"""taskflow: task lifecycle and asynchronous job dispatch engine."""

__version__ = "0.1.0"
