from __future__ import annotations

from fastapi import Depends, HTTPException, Request

from ..store import DataStore, get_store
from ..store.models import Merchant, PublicUser
from .users import is_admin


def require_merchant(request: Request, store: DataStore = Depends(get_store)) -> Merchant:
    """Raise 401 unless a merchant is logged in and still exists."""
    user = request.session.get("user")
    merchant = store.merchant(user["id"]) if user else None
    if merchant is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return merchant


def require_admin(merchant: Merchant = Depends(require_merchant)) -> Merchant:
    """Raise 401 if not logged in, 403 if not admin."""
    if not is_admin(merchant):
        raise HTTPException(status_code=403, detail="Admin access required")
    return merchant


def require_public_user(request: Request, store: DataStore = Depends(get_store)) -> PublicUser:
    """Raise 401 unless a public user is logged in and still exists."""
    session_user = request.session.get("public_user")
    user = store.public_user(session_user["id"]) if session_user else None
    if user is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


def require_session_ids(request: Request, store: DataStore = Depends(get_store)) -> set[str]:
    """Ids of the merchant and public user logged in on this session.

    Both may be present at once. Raises 401 when neither is.
    """
    ids = set()
    user = request.session.get("user")
    if user and store.merchant(user["id"]) is not None:
        ids.add(user["id"])
    public_user = request.session.get("public_user")
    if public_user and store.public_user(public_user["id"]) is not None:
        ids.add(public_user["id"])
    if not ids:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return ids
