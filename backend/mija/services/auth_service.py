# Overview: Account creation and password authentication.

"""
Accounts

Passwords are hashed with bcrypt. Self-signup always creates a customer;
staff accounts come from the CLI (`flask system init`, `flask users create`).
"""

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Role, User
from ..time_utils import utcnow
from ..validation import ValidationError


class DuplicateEmailError(ValueError):
    """409-level conflict: email already registered."""


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def hash_password(password: str) -> str:
    if not password:
        raise ValidationError("password required")
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash
        return False


def get_user_by_email(email: str) -> User | None:
    return db.session.query(User).filter_by(email=normalize_email(email)).first()


def create_user(
    *,
    email: str,
    password: str,
    name: str,
    role: Role = Role.CUSTOMER,
    phone: str | None = None,
    address: str | None = None,
) -> User:
    email = normalize_email(email)
    if not email or "@" not in email:
        raise ValidationError("valid email required")
    if not (name or "").strip():
        raise ValidationError("name required")

    if get_user_by_email(email) is not None:
        raise DuplicateEmailError("User already exists")

    user = User(
        email=email,
        name=name.strip(),
        phone=phone,
        address=address,
        role=role,
        password_hash=hash_password(password),
    )
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise DuplicateEmailError("User already exists")
    return user


def signup_customer(*, email: str, password: str, name: str, phone: str | None = None, address: str | None = None) -> User:
    return create_user(email=email, password=password, name=name, role=Role.CUSTOMER, phone=phone, address=address)


def authenticate(email: str, password: str) -> User | None:
    """Returns the user on success, None on unknown email, bad password or inactive account."""
    user = get_user_by_email(email)
    if user is None or not user.is_active:
        return None
    if not verify_password(password or "", user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user
