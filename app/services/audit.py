from sqlalchemy.orm import Session

from .. import models

SENT = "SENT"
SIGNED = "SIGNED"
DECLINED = "DECLINED"
COMPLETED = "COMPLETED"
CANCELLED = "CANCELLED"


def record_action(db: Session, document_id: int, action: str, signer_id=None, ip_address=None, user_agent=None):
    """Add an audit row to the current transaction; the caller commits."""
    entry = models.AuditLog(
        document_id=document_id,
        signer_id=signer_id,
        action=action,
        ip_address=ip_address or "System",
        user_agent=user_agent or "System",
    )
    db.add(entry)
    return entry
