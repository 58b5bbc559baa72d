"""
Shared API dependencies
"""
from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from logiledger.core import get_db
from logiledger.models import AppUser
from logiledger.services import OrderNumberSequence


def get_current_user_id(
    x_user_id: Optional[UUID] = Header(None),
    db: Session = Depends(get_db)
) -> Optional[UUID]:
    """Acting user from the X-User-Id header; unknown or inactive users act anonymously"""
    if x_user_id is None:
        return None
    user = db.query(AppUser).filter(AppUser.id == x_user_id).first()
    if not user or not user.is_active:
        return None
    return user.id


def get_order_sequence(request: Request) -> OrderNumberSequence:
    """The order-number sequence seeded at startup"""
    return request.app.state.order_sequence
