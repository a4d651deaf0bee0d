from __future__ import annotations

import re
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash, generate_password_hash

from app.ytgify.errors import NotFound, ValidationError
from app.ytgify.models import User
from app.ytgify.modules.gifs.models import PRIVACY_NAMES, PRIVACY_VALUES
from app.ytgify.storage import build_storage_key
from app.ytgify.utils import clean_str

USERNAME_RE = re.compile(r"^[A-Za-z0-9_]+$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 6
PROFILE_FIELDS = ("display_name", "bio", "website", "twitter_handle", "youtube_channel")


def username_taken(s: Session, username: str, *, exclude_id: int | None = None) -> bool:
    q = select(User.id).where(func.lower(User.username) == username.lower())
    if exclude_id is not None:
        q = q.where(User.id != exclude_id)
    return s.execute(q).first() is not None


def email_taken(s: Session, email: str, *, exclude_id: int | None = None) -> bool:
    q = select(User.id).where(User.email == email.lower())
    if exclude_id is not None:
        q = q.where(User.id != exclude_id)
    return s.execute(q).first() is not None


def validate_username(s: Session, username: str, *, exclude_id: int | None = None) -> list[str]:
    errors = []
    if not username:
        return ["Username can't be blank"]
    if not USERNAME_RE.match(username):
        errors.append("Username only allows letters, numbers, and underscores")
    if len(username) < 3:
        errors.append("Username is too short (minimum is 3 characters)")
    if len(username) > 30:
        errors.append("Username is too long (maximum is 30 characters)")
    if username_taken(s, username, exclude_id=exclude_id):
        errors.append("Username has already been taken")
    return errors


def validate_profile_lengths(display_name: str | None, bio: str | None) -> list[str]:
    errors = []
    if display_name and len(display_name) > 50:
        errors.append("Display name is too long (maximum is 50 characters)")
    if bio and len(bio) > 500:
        errors.append("Bio is too long (maximum is 500 characters)")
    return errors


def validate_password(password: str, confirmation: str | None) -> list[str]:
    errors = []
    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password is too short (minimum is {MIN_PASSWORD_LENGTH} characters)")
    if confirmation is not None and confirmation != password:
        errors.append("Password confirmation doesn't match Password")
    return errors


def register_user(s: Session, params: dict) -> User:
    email = (params.get("email") or "").strip().lower()
    username = (params.get("username") or "").strip()
    password = params.get("password") or ""
    display_name = clean_str(params.get("display_name"))

    errors = []
    if not email:
        errors.append("Email can't be blank")
    elif not EMAIL_RE.match(email):
        errors.append("Email is invalid")
    elif email_taken(s, email):
        errors.append("Email has already been taken")
    if not username and not errors:
        # Extension sign-ups may send only an email.
        username = generate_username_from_email(s, email)
    errors.extend(validate_username(s, username))
    errors.extend(validate_password(password, params.get("password_confirmation")))
    errors.extend(validate_profile_lengths(display_name, None))
    if errors:
        raise ValidationError(errors, error="Registration failed")

    now = datetime.utcnow()
    user = User(
        email=email,
        username=username,
        password_hash=generate_password_hash(password),
        display_name=display_name or username,
        created_at=now,
        updated_at=now,
    )
    s.add(user)
    s.flush()
    return user


def authenticate(s: Session, email: str, password: str, *, ip: str | None = None) -> User | None:
    user = s.execute(select(User).where(User.email == email.strip().lower())).scalar_one_or_none()
    if not user or not user.is_active or not check_password_hash(user.password_hash, password):
        return None
    user.sign_in_count = (user.sign_in_count or 0) + 1
    user.last_sign_in_at = datetime.utcnow()
    user.last_sign_in_ip = ip
    return user


def update_profile(s: Session, user: User, params: dict) -> bool:
    """
    Apply profile edits. Returns True when the user's token version was rotated
    (password or email change), which invalidates every outstanding token.
    """
    errors = []
    rotate = False

    changes: dict = {}
    for field in PROFILE_FIELDS:
        if field in params:
            changes[field] = clean_str(params.get(field))
    errors.extend(validate_profile_lengths(changes.get("display_name"), changes.get("bio")))

    privacy = params.get("default_privacy")
    if privacy is not None and privacy not in PRIVACY_VALUES:
        errors.append("Default privacy is not included in the list")

    new_email = None
    if params.get("email") is not None:
        new_email = (params.get("email") or "").strip().lower()
        if new_email != user.email:
            if not EMAIL_RE.match(new_email):
                errors.append("Email is invalid")
            elif email_taken(s, new_email, exclude_id=user.id):
                errors.append("Email has already been taken")

    new_password = params.get("password")
    if new_password:
        if not check_password_hash(user.password_hash, params.get("current_password") or ""):
            errors.append("Current password is invalid")
        errors.extend(validate_password(new_password, params.get("password_confirmation")))

    if errors:
        raise ValidationError(errors, message="Profile update failed")

    for field, value in changes.items():
        setattr(user, field, value)
    if privacy is not None:
        # Store the short name the clients use ("public", "unlisted", "private").
        user.set_preference("default_privacy", PRIVACY_NAMES[PRIVACY_VALUES[privacy]].replace("_access", ""))
    if new_email and new_email != user.email:
        user.email = new_email
        rotate = True
    if new_password:
        user.password_hash = generate_password_hash(new_password)
        rotate = True
    if rotate:
        user.rotate_jti()
    user.updated_at = datetime.utcnow()
    return rotate


def generate_username_from_email(s: Session, email: str) -> str:
    base = re.sub(r"[^A-Za-z0-9_]", "_", email.split("@")[0])[:25]
    if len(base) < 3:
        base = (base + "___")[:3]
    username = base
    counter = 1
    while username_taken(s, username):
        suffix = f"_{counter}"
        username = f"{base[: 25 - len(suffix)]}{suffix}"
        counter += 1
    return username


def get_user_by_username(s: Session, username: str) -> User:
    user = s.execute(select(User).where(func.lower(User.username) == username.lower())).scalar_one_or_none()
    if not user or not user.is_active:
        raise NotFound(f"Couldn't find User with username={username}")
    return user


def resolve_user(s: Session, ref: str) -> User:
    """Look a user up by numeric id, falling back to username."""
    if ref.isdigit():
        user = s.get(User, int(ref))
        if user is not None and user.is_active:
            return user
    return get_user_by_username(s, ref)


AVATAR_CONTENT_TYPES = ("image/png", "image/jpeg", "image/gif", "image/webp")


def set_avatar(s: Session, storage, user: User, upload) -> str:
    content_type = (getattr(upload, "mimetype", None) or "").lower()
    if content_type not in AVATAR_CONTENT_TYPES:
        raise ValidationError("Avatar must be a PNG, JPEG, GIF or WebP image")
    data = upload.read()
    if not data:
        raise ValidationError("Avatar can't be blank")
    key = build_storage_key("avatars", user.id, upload.filename or "avatar")
    storage.put_bytes(key, data, content_type=content_type)
    old_key = user.avatar_key
    user.avatar_key = key
    user.updated_at = datetime.utcnow()
    s.flush()
    if old_key and old_key != key:
        storage.delete(old_key)
    return key
