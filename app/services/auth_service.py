from __future__ import annotations

import logging
import re
from uuid import UUID

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError

from app.models.user import User
from app.repos.errors import DuplicateError
from app.repos.user_repo import UserRepo
from app.services.errors import remote_write

logger = logging.getLogger(__name__)

_ph = PasswordHasher()

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 8


class RegistrationError(ValueError):
    pass


class EmailTakenError(Exception):
    pass


class PendingApprovalError(Exception):
    """Credentials are valid but an administrator has not approved the account."""


class PasswordChangeError(ValueError):
    pass


class WrongPasswordError(Exception):
    """The current password given for a password change did not verify."""


def hash_password(plain_password: str) -> str:
    if not plain_password:
        raise ValueError("password must be non-empty")
    # Argon2 includes salt+params in the returned encoded string.
    return _ph.hash(plain_password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    if not plain_password or not password_hash:
        return False
    try:
        return _ph.verify(password_hash, plain_password)
    except (VerifyMismatchError, VerificationError, InvalidHash):
        return False


def normalize_email(email: str) -> str:
    return email.lower().strip()


async def register_user(repo: UserRepo, *, email: str, name: str, password: str) -> User:
    """Create a learner account.  New accounts cannot sign in until approved."""
    email = normalize_email(email)
    name = name.strip()

    if not _EMAIL_RE.match(email):
        raise RegistrationError("Invalid email address")
    if not name:
        raise RegistrationError("Name is required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise RegistrationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )

    if await repo.get_by_email(email) is not None:
        raise EmailTakenError("A user with this email already exists")

    user = User.new(email=email, password_hash=hash_password(password), name=name)
    try:
        await repo.add(user)
    except DuplicateError:
        # another request registered the same email in between
        raise EmailTakenError("A user with this email already exists") from None

    logger.info("User registered  user_id=%s", user.id)
    return user


async def authenticate_user(repo: UserRepo, email: str, password: str) -> User | None:
    """Return the user for valid credentials, None otherwise.

    Raises PendingApprovalError for a correct password on an unapproved
    learner account.
    """
    user = await repo.get_by_email(normalize_email(email))
    if user is None:
        return None
    if not verify_password(password, user.password_hash):
        return None
    if not user.can_sign_in:
        raise PendingApprovalError("Your account is awaiting administrator approval")

    try:
        if _ph.check_needs_rehash(user.password_hash):
            await repo.update_password_hash(user.id, _ph.hash(password))
            logger.info("Rehashed password for user=%s", user.id)
    except InvalidHash:
        return None

    return user


async def change_password(
    repo: UserRepo, user_id: UUID, *, current_password: str, new_password: str
) -> None:
    """Replace a user's password after checking the current one.

    Raises LookupError for an unknown user, WrongPasswordError when
    ``current_password`` does not verify and PasswordChangeError when the
    new password is too short or unchanged.  A failed store write raises
    RemoteWriteError.
    """
    user = await repo.get_by_id(user_id)
    if user is None:
        raise LookupError(f"user {user_id} not found")
    if not verify_password(current_password, user.password_hash):
        logger.warning("Password change refused: wrong current password user=%s", user_id)
        raise WrongPasswordError("Current password is incorrect")
    if len(new_password) < MIN_PASSWORD_LENGTH:
        raise PasswordChangeError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )
    if new_password == current_password:
        raise PasswordChangeError("New password must differ from the current one")

    await remote_write(
        "update_password", repo.update_password_hash(user_id, hash_password(new_password))
    )
    logger.info("Password changed  user_id=%s", user_id)
