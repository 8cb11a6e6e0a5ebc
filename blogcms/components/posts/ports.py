"""
Posts component port definitions.
"""

from __future__ import annotations

from blogcms.core.ports.store import DocumentSnapshot, DocumentStorePort, TransactionPort
from blogcms.core.ports.time import TimePort

__all__ = [
    "DocumentSnapshot",
    "DocumentStorePort",
    "TimePort",
    "TransactionPort",
]
