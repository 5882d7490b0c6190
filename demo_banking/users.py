"""
User Records Module

User identity records created at signup. Users are immutable once
created; the password hash and SSN hash never leave this module through
the public view.
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional
import logging
import uuid

from .errors import ConflictError, InternalError
from .storage import StorageInterface, StorageRecord

logger = logging.getLogger(__name__)

PRIVATE_FIELDS = ("password_hash", "ssn_hash")


@dataclass
class User(StorageRecord):
    """Registered user"""
    email: str
    password_hash: str
    first_name: str
    last_name: str
    phone_number: str
    date_of_birth: date
    ssn_hash: str
    address: str
    city: str
    state: str
    zip_code: str

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result['date_of_birth'] = self.date_of_birth.isoformat()
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'User':
        data = dict(data)
        data['created_at'] = datetime.fromisoformat(data['created_at'])
        data['date_of_birth'] = date.fromisoformat(data['date_of_birth'])
        return cls(**data)

    def public_dict(self) -> Dict[str, Any]:
        """Serializable view without password or SSN hashes"""
        result = self.to_dict()
        for name in PRIVATE_FIELDS:
            result.pop(name, None)
        return result


class UserManager:
    """Creates and looks up users in the record store"""

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = "users"

    def get_user(self, user_id: str) -> Optional[User]:
        data = self.storage.load(self.table_name, user_id)
        if data:
            return User.from_dict(data)
        return None

    def get_user_by_email(self, email: str) -> Optional[User]:
        """Look up a user by email; callers pass the lowercased form"""
        data = self.storage.find_one(self.table_name, {"email": email.lower()})
        if data:
            return User.from_dict(data)
        return None

    def create_user(
        self,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        phone_number: str,
        date_of_birth: date,
        ssn_hash: str,
        address: str,
        city: str,
        state: str,
        zip_code: str
    ) -> User:
        """
        Persist a new user and return the stored record

        Raises:
            ConflictError: If the email is already registered
            InternalError: If the stored row cannot be read back
        """
        if self.get_user_by_email(email):
            raise ConflictError("User already exists")

        user = User(
            id=str(uuid.uuid4()),
            created_at=datetime.now(timezone.utc),
            email=email.lower(),
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            phone_number=phone_number,
            date_of_birth=date_of_birth,
            ssn_hash=ssn_hash,
            address=address,
            city=city,
            state=state,
            zip_code=zip_code
        )
        self.storage.save(self.table_name, user.id, user.to_dict())

        stored = self.get_user(user.id)
        if stored is None:
            logger.error("User row missing after insert", extra={"user_id": user.id})
            raise InternalError("Failed to create user")
        return stored
