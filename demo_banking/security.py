"""
Security Primitives

Password hashing (scrypt), one-way SSN hashing, session token signing
(PyJWT) and secure account-number generation. Secrets and salts are
passed in at construction; nothing here reads the environment.
"""

import hashlib
import hmac
import secrets
import uuid
from datetime import datetime, timezone, timedelta
from typing import Any, Dict, Optional

import jwt

from .config import BankingConfig


class PasswordHasher:
    """One-way password verifier using scrypt with a per-password salt"""

    scheme = "scrypt"

    def __init__(self, n: int = 16384, r: int = 8, p: int = 1):
        self.n = n
        self.r = r
        self.p = p

    def _derive(self, password: str, salt: str) -> str:
        return hashlib.scrypt(
            password.encode(),
            salt=salt.encode(),
            n=self.n, r=self.r, p=self.p
        ).hex()

    def hash(self, password: str) -> str:
        """Hash a password; the result embeds the scheme and salt"""
        salt = secrets.token_hex(16)
        return f"{self.scheme}${salt}${self._derive(password, salt)}"

    def verify(self, password: str, stored: str) -> bool:
        """Constant-time check of a password against a stored hash"""
        try:
            scheme, salt, expected = stored.split("$", 2)
        except (AttributeError, ValueError):
            return False
        if scheme != self.scheme:
            return False
        return hmac.compare_digest(self._derive(password, salt), expected)


class SSNHasher:
    """Salted SHA-256 of an SSN. Not reversible; only equality checks are possible."""

    def __init__(self, salt: str):
        if not salt:
            raise ValueError("SSN salt must not be empty")
        self._salt = salt

    def hash(self, ssn: str) -> str:
        return hashlib.sha256((ssn + self._salt).encode("utf-8")).hexdigest()


class TokenIssuer:
    """Signs and verifies opaque session tokens that carry a user id"""

    def __init__(self, secret: str, algorithm: str = "HS256", lifetime: timedelta = timedelta(days=7)):
        self._secret = secret
        self.algorithm = algorithm
        self.lifetime = lifetime

    @classmethod
    def from_config(cls, config: BankingConfig) -> "TokenIssuer":
        return cls(
            secret=config.jwt_secret,
            algorithm=config.jwt_algorithm,
            lifetime=timedelta(days=config.session_lifetime_days)
        )

    def issue(self, user_id: str, now: Optional[datetime] = None) -> str:
        """Create a signed token for user_id expiring after ``lifetime``"""
        now = now or datetime.now(timezone.utc)
        payload = {
            "sub": user_id,
            "jti": uuid.uuid4().hex,  # Makes tokens unique within the same second
            "iat": now,
            "exp": now + self.lifetime,
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> Optional[Dict[str, Any]]:
        """Return the token claims, or None if the signature or expiry is invalid"""
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self.algorithm])
        except jwt.InvalidTokenError:
            return None
        if not payload.get("sub"):
            return None
        return payload


def generate_account_number() -> str:
    """10-digit zero-padded account number from 4 cryptographically random bytes"""
    value = int.from_bytes(secrets.token_bytes(4), "big")
    return str(value).zfill(10)
