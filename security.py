from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from database import Store, get_store
from settings import Settings

security = HTTPBearer(auto_error=False)


class Principal(BaseModel):
    """The authenticated caller, passed explicitly into every protected handler."""
    id: str
    email: str
    name: str
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=12)).decode()


def check_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    return bcrypt.checkpw(password.encode(), password_hash.encode())


def create_token(payload: dict, settings: Settings) -> str:
    exp = datetime.now(timezone.utc) + timedelta(days=settings.jwt_expiry_days)
    to_encode = {**payload, "exp": exp}
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def token_for(user: dict, settings: Settings) -> str:
    return create_token({"id": str(user["_id"]), "email": user["email"], "role": user.get("role", "user")}, settings)


def decode_token(token: str, settings: Settings) -> dict:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    store: Store = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> Principal:
    if credentials is None:
        raise HTTPException(status_code=401, detail="Access token required")
    payload = decode_token(credentials.credentials, settings)
    user_id = payload.get("id")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token payload")
    try:
        user = store["user"].find_one({"_id": ObjectId(user_id)})
    except InvalidId:
        raise HTTPException(status_code=401, detail="Invalid token payload")
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return Principal(id=str(user["_id"]), email=user["email"], name=user["name"], role=user.get("role", "user"))


def require_admin(user: Principal = Depends(get_current_user)) -> Principal:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
