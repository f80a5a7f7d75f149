from __future__ import annotations

import logging

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError

from knowledgeflow.core.clock import SYSTEM_CLOCK, Clock, format_timestamp
from knowledgeflow.models.user import User
from knowledgeflow.repos import paths
from knowledgeflow.repos.document_store import DocumentStore

logger = logging.getLogger(__name__)

# Argon2 hash strings encode parameters + salt
_ph = PasswordHasher()


class UserValidationError(ValueError):
    pass


class UsernameTakenError(Exception):
    pass


class EmailTakenError(Exception):
    pass


def hash_password(plain_password: str) -> str:
    if not plain_password:
        raise ValueError("password must be non-empty")
    return _ph.hash(plain_password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    if not plain_password or not password_hash:
        return False
    try:
        return _ph.verify(password_hash, plain_password)
    except (VerifyMismatchError, VerificationError, InvalidHash):
        return False


class UserDirectory:
    """Account records under ``users/``, keyed by username."""

    def __init__(self, store: DocumentStore, clock: Clock = SYSTEM_CLOCK) -> None:
        self._store = store
        self._clock = clock

    async def user_exists(self, username: str) -> bool:
        return await self._store.exists(paths.user_path(username))

    async def get_user(self, username: str) -> User | None:
        doc = await self._store.get(paths.user_path(username))
        if doc is None:
            return None
        return User.from_document(username, doc)

    async def signup(self, username: str, email: str, password: str) -> User:
        username = username.strip()
        email = email.strip().lower()
        if not username or not email or not password:
            logger.warning("Rejected signup with missing fields")
            raise UserValidationError("Missing required parameters")

        if await self.user_exists(username):
            logger.warning("Rejected signup, username=%s already taken", username)
            raise UsernameTakenError(username)

        if await self._store.query(paths.USERS, "email", email):
            logger.warning("Rejected signup, email already registered")
            raise EmailTakenError(email)

        user = User(
            username=username,
            email=email,
            password_hash=hash_password(password),
            created_at=format_timestamp(self._clock.now()),
        )
        # The account and its email claim are written together, and only if
        # neither exists: racing signups for one username or one address
        # cannot both win.
        email_claim = paths.email_path(email)
        created = await self._store.create(
            paths.user_path(username),
            user.to_document(),
            related={email_claim: {"username": username}},
            also_absent=[email_claim],
        )
        if not created:
            if await self.user_exists(username):
                logger.warning("Rejected signup, username=%s already taken", username)
                raise UsernameTakenError(username)
            logger.warning("Rejected signup, email already registered")
            raise EmailTakenError(email)

        logger.info("Registered user username=%s", username)
        return user

    async def authenticate(self, username: str, password: str) -> User | None:
        user = await self.get_user(username)
        if user is None:
            return None
        if not verify_password(password, user.password_hash):
            return None

        try:
            if _ph.check_needs_rehash(user.password_hash):
                await self._store.update(
                    paths.user_path(username), {"passwordHash": _ph.hash(password)}
                )
                logger.info("Rehashed password for user=%s", username)
        except InvalidHash:
            return None

        return user
