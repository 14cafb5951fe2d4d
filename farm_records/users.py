"""User registration and credential checks backed by users.json / payroll.json."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from .json_store import JsonFileStore, max_id
from .models import Role, User, utc_now_iso

logger = logging.getLogger(__name__)

# Prefixes werkzeug writes in front of a password hash
_HASH_PREFIXES = ("pbkdf2:", "scrypt:")


class RegistrationError(Exception):
    """Registration refused; the message is shown to the user as-is."""


def _password_matches(stored: str, candidate: str) -> bool:
    if stored.startswith(_HASH_PREFIXES):
        return check_password_hash(stored, candidate)
    # Hand-maintained user files may still hold plain text
    return bool(stored) and stored == candidate


class UserDirectory:
    def __init__(self, users: JsonFileStore, payroll: JsonFileStore):
        self.users = users
        self.payroll = payroll

    def find_payroll_record(self, payroll_number: Any) -> Optional[Dict[str, Any]]:
        key = str(payroll_number).strip()
        for record in self.payroll.read():
            if isinstance(record, dict) and str(record.get("payrollNumber", "")).strip() == key:
                return record
        return None

    def exists(self, username: str) -> bool:
        return any(isinstance(u, dict) and u.get("username") == username for u in self.users.read())

    def register(self, username: Any, password: Any, role: Any, payroll_number: Any) -> User:
        if not username or not password or not role or not payroll_number:
            raise RegistrationError("All fields are required")

        parsed_role = Role.parse(role)
        if parsed_role is None:
            raise RegistrationError("Invalid role")

        username = str(username)
        if self.exists(username):
            raise RegistrationError("Username already exists")

        payroll_record = self.find_payroll_record(payroll_number)
        if payroll_record is None or payroll_record.get("role") != parsed_role.value:
            logger.warning(f"Registration for '{username}' rejected: payroll {payroll_number} does not match role {parsed_role.value}")
            raise RegistrationError("Invalid credentials: payroll number does not match the selected role.")

        with self.users.update() as records:
            if any(isinstance(u, dict) and u.get("username") == username for u in records):
                raise RegistrationError("Username already exists")
            user = User(
                id=max_id(records) + 1,
                username=username,
                password=generate_password_hash(str(password)),
                role=parsed_role.value,
                payrollNumber=str(payroll_number),
                createdAt=utc_now_iso(),
            )
            records.append(user.to_dict())

        logger.info(f"Registered user '{user.username}' as {user.role}")
        return user

    def authenticate(self, username: Any, password: Any) -> Optional[User]:
        if not username or not password:
            return None
        for record in self.users.read():
            if not isinstance(record, dict) or record.get("username") != username:
                continue
            user = User.from_dict(record)
            if Role.parse(user.role) is None:
                logger.warning(f"User '{user.username}' has unknown role '{user.role}'; login refused")
                continue
            if _password_matches(user.password, str(password)):
                return user
        return None
