"""Vitrine: client-side resilience layer.

Versioned in-memory caches, persisted fault detection with boot-time
recovery, and authentication session persistence with background renewal.
"""

from vitrine.context import BootResult, ResilienceContext

__version__ = "0.4.0"

__all__ = ["BootResult", "ResilienceContext", "__version__"]
