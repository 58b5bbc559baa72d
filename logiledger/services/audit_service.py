"""
Audit Service - append-only trail of ledger mutations
"""
from sqlalchemy.orm import Session
from typing import Any, Dict, Optional
from uuid import UUID

from logiledger.models import AuditLog

class AuditService:
    """Writes audit facts. The ledger never reads them back."""
    
    @staticmethod
    def log(
        db: Session,
        action: str,
        entity_type: str,
        entity_id: Any,
        user_id: Optional[UUID] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> AuditLog:
        """Stage an audit row in the caller's transaction"""
        audit = AuditLog(
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id),
            user_id=user_id,
            details=details or {}
        )
        db.add(audit)
        return audit
