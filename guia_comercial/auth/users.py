from __future__ import annotations

import logging
import secrets

from ..config import DEFAULT_SETTINGS, Settings
from ..errors import AuthenticationError, ConflictError, DirectoryError, NotFoundError, PermissionDeniedError
from ..store import DataStore, generate_id
from ..store.models import Interaction, InteractionType, Merchant, PublicUser
from .models import PublicRegisterRequest, PublicUserUpdate, RegisterRequest
from .passwords import hash_password, verify_password

logger = logging.getLogger(__name__)


def _normalize_email(email: str) -> str:
    email = email.strip().lower()
    if "@" not in email:
        raise DirectoryError("A valid email is required.")
    return email


def generate_verification_code() -> str:
    """Six-digit numeric code, never starting with zero."""
    return str(100000 + secrets.randbelow(900000))


def is_admin(merchant: Merchant, settings: Settings = DEFAULT_SETTINGS) -> bool:
    return merchant.email.lower() == settings.admin_email.lower()


# ── Merchants ────────────────────────────────────────────────────────────


def register_merchant(store: DataStore, body: RegisterRequest) -> tuple[Merchant, str]:
    """Create an unverified merchant. Returns ``(merchant, verification_code)``."""
    email = _normalize_email(body.email)
    with store.lock:
        if store.merchant_by_email(email):
            raise ConflictError("This email is already registered.")
        code = generate_verification_code()
        merchant = store.add_merchant(
            Merchant(
                id=generate_id("u"),
                name=body.name.strip(),
                email=email,
                phone=body.phone or None,
                password_hash=hash_password(body.password),
                verification_code=code,
            )
        )
    logger.info("Verification code for %s: %s", email, code)
    return merchant, code


def verify_merchant(store: DataStore, email: str, code: str) -> Merchant:
    merchant = store.merchant_by_email(email)
    if merchant is None:
        raise NotFoundError("User not found.")
    if merchant.is_verified:
        raise DirectoryError("This account has already been verified.")
    if merchant.verification_code != code.strip():
        raise DirectoryError("The verification code is incorrect.")
    merchant.is_verified = True
    merchant.verification_code = None
    return merchant


def authenticate_merchant(store: DataStore, email: str, password: str) -> Merchant:
    merchant = store.merchant_by_email(email)
    if merchant is None or not verify_password(password, merchant.password_hash):
        raise AuthenticationError("Invalid credentials.")
    if not merchant.is_verified:
        raise PermissionDeniedError("Your account has not been verified.")
    return merchant


def update_merchant(store: DataStore, merchant_id: str, name: str, phone: str | None) -> Merchant:
    merchant = store.merchant(merchant_id)
    if merchant is None:
        raise NotFoundError("User not found.")
    name = name.strip()
    if not name:
        raise DirectoryError("Name is required.")
    merchant.name = name
    merchant.phone = phone or None
    return merchant


# ── Public users ─────────────────────────────────────────────────────────


def register_public_user(store: DataStore, body: PublicRegisterRequest) -> PublicUser:
    email = _normalize_email(body.email)
    with store.lock:
        if store.public_user_by_email(email):
            raise ConflictError("This email is already registered.")
        return store.add_public_user(
            PublicUser(
                id=generate_id("pub"),
                name=body.name.strip(),
                surname=body.surname.strip(),
                email=email,
                whatsapp=body.whatsapp or None,
                password_hash=hash_password(body.password),
            )
        )


def authenticate_public_user(store: DataStore, email: str, password: str) -> PublicUser:
    user = store.public_user_by_email(email)
    if user is None or not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid credentials.")
    return user


def get_public_user(store: DataStore, user_id: str) -> PublicUser:
    user = store.public_user(user_id)
    if user is None:
        raise NotFoundError("User not found.")
    return user


def update_public_user(
    store: DataStore,
    user_id: str,
    body: PublicUserUpdate,
    settings: Settings = DEFAULT_SETTINGS,
) -> PublicUser:
    user = get_public_user(store, user_id)
    user.name = body.name.strip()
    user.surname = body.surname.strip()
    user.whatsapp = body.whatsapp or None
    if body.favorites is not None:
        user.favorites = list(dict.fromkeys(body.favorites))
    if body.history is not None:
        user.history = list(body.history)[: settings.history_limit]
    return user


def record_interaction(
    store: DataStore,
    user: PublicUser,
    business_id: str,
    kind: InteractionType,
    settings: Settings = DEFAULT_SETTINGS,
) -> PublicUser:
    """Push an interaction to the front of the user's bounded history.

    A business is logged as viewed only once; favorites and opinions are
    logged every time.
    """
    business = store.business(business_id)
    if business is None:
        raise NotFoundError("Business not found.")
    if kind is InteractionType.view and any(
        h.business_id == business_id and h.type is InteractionType.view for h in user.history
    ):
        return user
    entry = Interaction(
        business_id=business_id,
        type=kind,
        timestamp=store.clock(),
        business_name=business.name,
    )
    user.history = [entry, *user.history][: settings.history_limit]
    return user


def toggle_favorite(
    store: DataStore,
    user: PublicUser,
    business_id: str,
    settings: Settings = DEFAULT_SETTINGS,
) -> PublicUser:
    if store.business(business_id) is None:
        raise NotFoundError("Business not found.")
    with store.lock:
        if business_id in user.favorites:
            user.favorites = [f for f in user.favorites if f != business_id]
        else:
            user.favorites = [*user.favorites, business_id]
        return record_interaction(store, user, business_id, InteractionType.favorite, settings)
