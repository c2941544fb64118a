"""Core infrastructure module.

Foundation services required by all domains:
- Configuration schema (Valves)
- Error handling classes
- Session logging
- Pure utility functions
"""

from .config import Valves
from .errors import OpenRouterAPIError, StreamCancelledError
from .logging_system import SessionLogger
from .utils import generate_request_id

__all__ = [
    "Valves",
    "OpenRouterAPIError",
    "StreamCancelledError",
    "SessionLogger",
    "generate_request_id",
]
