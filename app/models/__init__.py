from app.models.user import User
from app.models.audit_log import AuditLog
from app.models.failed_job import FailedJob
from app.models.ledger import Account, Accounts, TransactionKind, TransactionRecord

__all__ = [
    "User",
    "AuditLog",
    "FailedJob",
    "Account",
    "Accounts",
    "TransactionKind",
    "TransactionRecord",
]
