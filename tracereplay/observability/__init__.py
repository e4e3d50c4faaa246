"""
Observability & Audit Layer

RESPONSIBILITY: Logging configuration, navigation audit trail
OUTPUTS: configured loggers, NavigationRecord history

WHAT THIS LAYER MUST NOT DO:
============================
- Modify playback behavior
- Make decisions based on logged data
"""

from .log_config import configure_logging, describe_error, log_exception
from .audit import NavigationAudit, NavigationRecord

__all__ = [
    'configure_logging',
    'describe_error',
    'log_exception',
    'NavigationAudit',
    'NavigationRecord',
]
