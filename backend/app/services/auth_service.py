"""
Auth Service
Sign-up, login, profile and address book for storefront users

Author: TM3
Date: 2025-11-20
"""
import logging
from typing import List, Optional

from app.core.auth import ROLE_USER, create_access_token, hash_password, verify_password
from app.core.database import db_cursor
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.domain.user import Address, AddressCreate, AddressUpdate, ProfileUpdate, SignupRequest, User
from app.repositories.user_repository import AddressRepository, UserRepository
from app.services.system_log_service import SystemLogService

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


class InvalidCredentialsError(Exception):
    """Email unknown or password mismatch; the API answers 401"""


class AuthService:

    def __init__(self):
        self.users = UserRepository()
        self.addresses = AddressRepository()
        self.system_logs = SystemLogService()

    def signup(self, data: SignupRequest, ip_address: Optional[str] = None) -> User:
        if len(data.password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        with db_cursor() as cursor:
            if self.users.find_by_email(data.email, cursor=cursor):
                raise ConflictError("Email already registered")
            user = self.users.create(
                data.first_name.strip(),
                data.last_name.strip(),
                data.email,
                hash_password(data.password),
                role=ROLE_USER,
                cursor=cursor,
            )

        self.system_logs.log_info(
            "USER_SIGNUP", f"New user registered: {user.email}",
            user_id=user.id, ip_address=ip_address,
        )
        return user

    def login(self, email: str, password: str, ip_address: Optional[str] = None) -> dict:
        """
        Verify credentials and issue an access token

        Returns:
            {"access_token", "token_type": "bearer", "user"}

        Raises:
            InvalidCredentialsError: Unknown email or wrong password
        """
        credentials = self.users.get_credentials(email)
        if not credentials or not verify_password(password, credentials['password_hash']):
            self.system_logs.log_warning(
                "LOGIN_FAILED", f"Failed login attempt for {email}", ip_address=ip_address,
            )
            raise InvalidCredentialsError("Invalid email or password")

        name = f"{credentials['first_name']} {credentials['last_name']}".strip()
        token = create_access_token(
            credentials['id'], credentials['email'], role=credentials['role'], name=name
        )
        user = self.users.find_by_id(credentials['id'])

        self.system_logs.log_info(
            "USER_LOGIN", f"User logged in: {credentials['email']}",
            user_id=credentials['id'], ip_address=ip_address,
        )
        return {"access_token": token, "token_type": "bearer", "user": user}

    def get_profile(self, user_id: int) -> User:
        user = self.users.find_by_id(user_id)
        if not user:
            raise NotFoundError("User", user_id)
        return user

    def update_profile(self, user_id: int, data: ProfileUpdate) -> User:
        user = self.users.update_profile(user_id, data.model_dump(exclude_unset=True))
        if not user:
            raise NotFoundError("User", user_id)
        return user

    def change_password(self, user_id: int, current_password: str, new_password: str):
        password_hash = self.users.get_password_hash(user_id)
        if not password_hash:
            raise NotFoundError("User", user_id)
        if not verify_password(current_password, password_hash):
            raise ValidationError("Current password is incorrect")
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        self.users.update_password(user_id, hash_password(new_password))
        logger.info(f"Password changed for user {user_id}")

    # ------------------------------------------------------------------
    # Addresses
    # ------------------------------------------------------------------

    def list_addresses(self, user_id: int) -> List[Address]:
        return self.addresses.find_for_user(user_id)

    def create_address(self, user_id: int, data: AddressCreate) -> Address:
        with db_cursor() as cursor:
            if data.is_default:
                self.addresses.clear_default(user_id, cursor=cursor)
            return self.addresses.create(user_id, data.model_dump(), cursor=cursor)

    def update_address(self, user_id: int, address_id: int, data: AddressUpdate) -> Address:
        fields = data.model_dump(exclude_unset=True)
        with db_cursor() as cursor:
            if not self.addresses.find_by_id(address_id, user_id=user_id, cursor=cursor):
                raise NotFoundError("Address", address_id)
            if fields.get("is_default"):
                self.addresses.clear_default(user_id, cursor=cursor)
            return self.addresses.update(address_id, user_id, fields, cursor=cursor)

    def delete_address(self, user_id: int, address_id: int):
        if not self.addresses.delete(address_id, user_id):
            raise NotFoundError("Address", address_id)
