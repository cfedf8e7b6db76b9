"""Identity provider: email/password identities with argon2 hashes.

Identities live in their own `identities` collection, apart from the
`users` profile documents; the identity id becomes the users document id.
Creating an identity is stateless and never touches the caller's own
session, which is what lets an admin create accounts while signed in.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError

from coursetrack.repos.document_store import DocumentStore, Eq, new_document_id

logger = logging.getLogger(__name__)

IDENTITIES = "identities"
MIN_PASSWORD_LENGTH = 6

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# Argon2 hash strings encode parameters + salt
_ph = PasswordHasher()


class IdentityError(ValueError):
    """The identity could not be created (bad email, weak password...)."""


class IdentityExistsError(IdentityError):
    pass


@dataclass(frozen=True, slots=True)
class Identity:
    id: str
    email: str


def normalize_email(email: str) -> str:
    return email.strip().lower()


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


class IdentityProvider:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def create_identity(self, email: str, password: str) -> Identity:
        email = normalize_email(email)
        if not _EMAIL_RE.match(email):
            raise IdentityError(f"invalid email address {email!r}")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise IdentityError(
                f"password must be at least {MIN_PASSWORD_LENGTH} characters"
            )
        if await self._store.query(IDENTITIES, [Eq("email", email)]):
            raise IdentityExistsError(f"email already in use: {email}")

        identity = Identity(id=new_document_id(), email=email)
        await self._store.create(
            IDENTITIES,
            {"email": email, "passwordHash": hash_password(password)},
            doc_id=identity.id,
        )
        logger.info("Identity created id=%s email=%s", identity.id, email)
        return identity

    async def sign_in(self, email: str, password: str) -> Identity | None:
        email = normalize_email(email)
        docs = await self._store.query(IDENTITIES, [Eq("email", email)])
        if not docs:
            return None
        doc = docs[0]
        password_hash = doc.data.get("passwordHash", "")
        if not verify_password(password, password_hash):
            return None

        # Upgrade the stored hash if the hasher's parameters changed.
        if _ph.check_needs_rehash(password_hash):
            await self._store.set_with_merge(
                IDENTITIES, doc.id, {"passwordHash": _ph.hash(password)}
            )
            logger.info("Rehashed password for identity=%s", doc.id)

        return Identity(id=doc.id, email=email)
