"""Kernel services: session-bound infrastructure shared by all modules."""

from claims_kernel.services.base import BaseService
from claims_kernel.services.concurrency_guard import ConcurrencyGuard

__all__ = ["BaseService", "ConcurrencyGuard"]
