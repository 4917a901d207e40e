# readiness/services/user_service.py
import logging
from datetime import timedelta
from pathlib import Path
from typing import List, Optional

from ..errors import DuplicateUserError, UserNotFoundError
from ..models import AdminUser, utcnow
from ..utils.security import encode_password, verify_password
from .storage import JsonListFile

logger = logging.getLogger(__name__)

MAX_FAILED_ATTEMPTS = 5
LOCKOUT_DURATION = timedelta(minutes=15)
MIN_PASSWORD_LENGTH = 8


class UserAuthenticationService:
    """Admin accounts in users.json with failed-login lockout."""

    def __init__(self, data_dir: Path, default_username: str = "admin", default_password: Optional[str] = None):
        self.store = JsonListFile(Path(data_dir) / "users.json", AdminUser)
        if default_password:
            self._initialize_default_user(default_username, default_password)

    def _initialize_default_user(self, username: str, password: str) -> None:
        if self.store.load():
            return
        logger.info("No users found. Creating default admin user.")
        self.create_user(username, password)
        logger.info("Default admin user created successfully.")

    def get_user_by_username(self, username: str) -> Optional[AdminUser]:
        username = (username or "").lower()
        return next((u for u in self.store.load() if u.username.lower() == username), None)

    def get_user_by_id(self, user_id: str) -> Optional[AdminUser]:
        return next((u for u in self.store.load() if u.id == user_id), None)

    def validate_user(self, username: str, password: str) -> Optional[AdminUser]:
        user = self.get_user_by_username(username)
        if user is None:
            logger.warning("Login attempt for non-existent user: %s", username)
            return None

        now = utcnow()
        if user.is_locked(now):
            logger.warning("Login attempt for locked account: %s. Locked until: %s", username, user.locked_until)
            return None

        if user.locked_until is not None:
            # lockout period has passed
            user.locked_until = None
            user.failed_login_attempts = 0

        if verify_password(password, user.password_hash):
            user.failed_login_attempts = 0
            user.last_login_at = now
            user.locked_until = None
            self.update_user(user)
            logger.info("Successful login for user: %s", username)
            return user

        user.failed_login_attempts += 1
        if user.failed_login_attempts >= MAX_FAILED_ATTEMPTS:
            user.locked_until = now + LOCKOUT_DURATION
            logger.warning(
                "Account locked due to too many failed attempts: %s. Locked until: %s",
                username, user.locked_until,
            )
        else:
            logger.warning(
                "Failed login attempt for user: %s. Attempts: %d/%d",
                username, user.failed_login_attempts, MAX_FAILED_ATTEMPTS,
            )
        self.update_user(user)
        return None

    def create_user(self, username: str, password: str, role: str = "Administrator") -> AdminUser:
        users = self.store.load()
        if any(u.username.lower() == username.lower() for u in users):
            raise DuplicateUserError(f"User with username '{username}' already exists.")

        user = AdminUser(username=username, role=role, password_hash=encode_password(password))
        users.append(user)
        self.store.save(users)

        logger.info("User created: %s", username)
        return user

    def update_user(self, user: AdminUser) -> None:
        users = self.store.load()
        for i, existing in enumerate(users):
            if existing.id == user.id:
                users[i] = user
                self.store.save(users)
                return
        raise UserNotFoundError(f"User with ID '{user.id}' not found.")

    def change_password(self, username: str, current_password: str, new_password: str) -> bool:
        user = self.validate_user(username, current_password)
        if user is None:
            return False

        user.password_hash = encode_password(new_password)
        self.update_user(user)
        logger.info("Password changed for user: %s", username)
        return True

    def get_all_admin_users(self) -> List[AdminUser]:
        return [u for u in self.store.load() if u.role == "Administrator"]
