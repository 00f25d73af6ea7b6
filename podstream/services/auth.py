"""Password hashing, bearer token issuing and request authentication."""

import logging
import secrets
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, Request
from werkzeug.security import check_password_hash, generate_password_hash

from podstream.config import settings
from podstream.db import DatabaseManager, get_db, now_ms

logger = logging.getLogger(__name__)

DAY_MS = 24 * 3600 * 1000


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return check_password_hash(password_hash, password)


def issue_token(db: DatabaseManager, user_id: str) -> str:
    """Create an opaque bearer token valid for ``token_ttl_days``."""
    token = secrets.token_urlsafe(32)
    db.save_token(token, user_id, now_ms() + settings.token_ttl_days * DAY_MS)
    return token


def get_token_from_header(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    token = authorization[len("Bearer "):].strip()
    return token or None


def resolve_user(db: DatabaseManager, token: Optional[str]) -> Optional[Dict[str, Any]]:
    """Return the user behind a token, or None if absent, unknown or expired."""
    if not token:
        return None
    return db.get_user_by_token(token)


def register_user(db: DatabaseManager, email: str, password: str, name: str) -> Dict[str, Any]:
    """
    Create a user with an inactive subscription record.

    Raises:
        ValueError: if the email is already registered
    """
    email = email.strip().lower()
    if db.get_user_by_email(email):
        raise ValueError("User already exists")

    admins = {e.strip().lower() for e in settings.admin_emails.split(",") if e.strip()}
    role = "admin" if email in admins else "user"

    user = db.create_user(email, hash_password(password), name, role=role)
    db.upsert_subscription(user["id"], status="inactive")
    logger.info(f"Registered user {user['id']} ({role})")
    return user


def authenticate(db: DatabaseManager, email: str, password: str) -> Optional[Dict[str, Any]]:
    user = db.get_user_by_email(email.strip().lower())
    if not user or not verify_password(password, user["password_hash"]):
        return None
    return user


def public_user(user: Dict[str, Any]) -> Dict[str, Any]:
    return {k: user[k] for k in ("id", "email", "name", "role")}


# ---------------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------------

def get_bearer_token(request: Request) -> Optional[str]:
    return get_token_from_header(request.headers.get("authorization"))


def require_user(
    token: Optional[str] = Depends(get_bearer_token),
    db: DatabaseManager = Depends(get_db),
) -> Dict[str, Any]:
    if not token:
        raise HTTPException(status_code=401, detail="No token provided")
    user = resolve_user(db, token)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid token")
    return user


def require_admin(user: Dict[str, Any] = Depends(require_user)) -> Dict[str, Any]:
    if user["role"] != "admin":
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
