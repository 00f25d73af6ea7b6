"""Registration, login and current-user endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from typing import Any, Dict

from podstream.db import DatabaseManager, get_db
from podstream.models import AuthResponse, LoginRequest, RegisterRequest, User
from podstream.services import auth

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(body: RegisterRequest, db: DatabaseManager = Depends(get_db)):
    """Create an account (with an inactive subscription) and log it in."""
    try:
        user = auth.register_user(db, body.email, body.password, body.name)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))

    token = auth.issue_token(db, user["id"])
    return AuthResponse(user=User(**auth.public_user(user)), token=token)


@router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, db: DatabaseManager = Depends(get_db)):
    user = auth.authenticate(db, body.email, body.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid email or password")

    token = auth.issue_token(db, user["id"])
    return AuthResponse(user=User(**auth.public_user(user)), token=token)


@router.get("/me", response_model=User)
async def me(user: Dict[str, Any] = Depends(auth.require_user)):
    return User(**auth.public_user(user))
