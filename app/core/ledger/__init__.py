"""
Ledger audit domain
"""
from app.core.ledger.models import AuditEntry, AuditKind, AuditStatus

__all__ = [
    "AuditEntry",
    "AuditKind",
    "AuditStatus",
]
