# backend/fitai/identity.py
from functools import wraps

from flask import current_app, g, jsonify
from flask_jwt_extended import get_jwt, get_jwt_identity, jwt_required
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from . import db
from .models.user import User


def _claim_str(claims, key):
    value = claims.get(key)
    return value.strip() if isinstance(value, str) and value.strip() else None


def profile_from_claims(owner: str, claims: dict):
    """
    Pull (email, name) out of identity-provider claims, with safe fallbacks.
    """
    email = _claim_str(claims, "email") or _claim_str(claims, "primary_email_address")
    if not email:
        addresses = claims.get("email_addresses")
        if isinstance(addresses, list) and addresses and isinstance(addresses[0], dict):
            email = _claim_str(addresses[0], "email_address")
    if not email or "unknown" in email or "undefined" in email:
        email = User.fallback_email(owner)

    first = _claim_str(claims, "first_name")
    last = _claim_str(claims, "last_name")
    if first and last:
        name = f"{first} {last}"
    else:
        name = first or _claim_str(claims, "name") or _claim_str(claims, "username")

    return email.lower(), name or User.fallback_name(owner)


def find_or_create_account(owner: str, claims: dict) -> User:
    user = User.query.filter_by(owner=owner).first()
    if user:
        return user

    email, name = profile_from_claims(owner, claims)
    for candidate in (email, f"user-{owner}@fitai.com".lower()):
        user = User(owner=owner, email=candidate, name=name, goals=[])
        db.session.add(user)
        try:
            db.session.commit()
            current_app.logger.info(f"[identity] created account for owner={owner} email={candidate}")
            return user
        except IntegrityError:
            db.session.rollback()
            # a concurrent request may have created the same owner
            existing = User.query.filter_by(owner=owner).first()
            if existing:
                return existing
            current_app.logger.info(f"[identity] email {candidate} taken, trying fallback")

    raise RuntimeError(f"could not create account for owner {owner!r}")


def account_required(fn):
    """
    jwt_required() + attach the caller's account as `g.account`.
    """

    @wraps(fn)
    @jwt_required()
    def wrapper(*args, **kwargs):
        owner = get_jwt_identity()
        if not owner:
            return jsonify({"error": "Not authenticated"}), 401

        try:
            g.account = find_or_create_account(str(owner), get_jwt())
        except (SQLAlchemyError, RuntimeError) as e:
            db.session.rollback()
            current_app.logger.exception(f"[identity] account lookup failed: {e}")
            return (
                jsonify(
                    {
                        "error": "Cannot create user account",
                        "details": "Please try logging out and back in",
                    }
                ),
                500,
            )
        return fn(*args, **kwargs)

    return wrapper
