"""Job worker and overdue scanner."""

from .scanner import OverdueScanner, ScanResult
from .worker import JobWorker

__all__ = ["JobWorker", "OverdueScanner", "ScanResult"]
