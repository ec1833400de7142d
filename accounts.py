import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from pymongo.errors import DuplicateKeyError

from database import Store, get_store, object_id
from schemas import GoogleAuthBody, LoginBody, ProfileUpdateBody, RegisterBody, User
from security import Principal, check_password, get_current_user, get_settings, hash_password, token_for
from settings import Settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

PROFILE_FIELDS = ("name", "email", "mobile_number", "gender", "role",
                  "address", "city", "state", "country", "postal_code")


def public_user(user: dict) -> dict:
    out = {"id": str(user["_id"])}
    out.update({k: user.get(k) for k in PROFILE_FIELDS})
    created = user.get("created_at")
    out["created_at"] = created.isoformat() if isinstance(created, datetime) else created
    return out


def auth_response(message: str, user: dict, settings: Settings) -> dict:
    return {"message": message, "user": public_user(user), "token": token_for(user, settings)}


def insert_user(store: Store, user: User) -> dict:
    try:
        uid = store.create_document("user", user)
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail="User already exists")
    return store["user"].find_one({"_id": object_id(uid)})


@router.post("/register", status_code=201)
def register(body: RegisterBody, store: Store = Depends(get_store), settings: Settings = Depends(get_settings)):
    if store["user"].find_one({"email": body.email}):
        raise HTTPException(status_code=400, detail="User already exists")
    user = insert_user(store, User(
        name=body.name,
        email=body.email,
        password_hash=hash_password(body.password),
        mobile_number=body.mobile_number,
        gender=body.gender,
    ))
    logger.info("Registered user %s", user["_id"])
    return auth_response("User registered successfully", user, settings)


@router.post("/login")
def login(body: LoginBody, store: Store = Depends(get_store), settings: Settings = Depends(get_settings)):
    user = store["user"].find_one({"email": body.email})
    if not user or not check_password(body.password, user.get("password_hash")):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return auth_response("Login successful", user, settings)


@router.post("/google")
def google_auth(body: GoogleAuthBody, store: Store = Depends(get_store), settings: Settings = Depends(get_settings)):
    user = store["user"].find_one({"google_id": body.google_id})
    if not user:
        existing = store["user"].find_one({"email": body.email})
        if existing:
            if existing.get("google_id"):
                raise HTTPException(status_code=409, detail="Email is linked to another Google account")
            store["user"].update_one({"_id": existing["_id"]}, {"$set": {"google_id": body.google_id}})
            user = store["user"].find_one({"_id": existing["_id"]})
        else:
            user = insert_user(store, User(name=body.name, email=body.email, google_id=body.google_id))
    return auth_response("Google authentication successful", user, settings)


@router.get("/profile")
def get_profile(user: Principal = Depends(get_current_user), store: Store = Depends(get_store)):
    doc = store["user"].find_one({"_id": object_id(user.id, "User not found")})
    if not doc:
        raise HTTPException(status_code=404, detail="User not found")
    return {"user": public_user(doc)}


@router.put("/profile")
def update_profile(body: ProfileUpdateBody, user: Principal = Depends(get_current_user),
                   store: Store = Depends(get_store)):
    update = body.model_dump(exclude_none=True)
    update["updated_at"] = datetime.now(timezone.utc)
    oid = object_id(user.id, "User not found")
    res = store["user"].update_one({"_id": oid}, {"$set": update})
    if res.matched_count == 0:
        raise HTTPException(status_code=404, detail="User not found")
    return {"message": "Profile updated successfully", "user": public_user(store["user"].find_one({"_id": oid}))}
