"""
User Service.

Admin-side user management and per-user TOTP two-factor setup.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from eshop.backend.core.config import get_app_config
from eshop.backend.core.exceptions import ConflictError, ValidationError
from eshop.backend.core.security import (
    build_totp_uri,
    generate_totp_secret,
    hash_password,
    verify_totp,
)
from eshop.backend.core.utils import blank_to_none
from eshop.backend.models.user import User, UserRole
from eshop.backend.repositories.user import UserRepository
from eshop.backend.schemas.user import UserCreate, UserUpdate
from eshop.backend.services.base import BaseService

EMAIL_TAKEN_MESSAGE = "Email je už registrovaný"


class UserService(BaseService):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = UserRepository(session)

    def _check_password(self, password: str) -> None:
        min_length = get_app_config().security.passwords.min_length
        if len(password) < min_length:
            raise ValidationError(f"Heslo musí mať aspoň {min_length} znakov")

    async def list_users(self, role: str | None = None) -> list[User]:
        return await self.repo.list_by_role(role)

    async def get_user(self, user_id: str) -> User:
        return await self.repo.get_by_id(user_id)

    async def create_user(self, data: UserCreate) -> User:
        email = data.email.strip().lower()
        self._check_password(data.password)
        if await self.repo.get_by_email(email):
            raise ConflictError(EMAIL_TAKEN_MESSAGE)

        self._log_operation("Creating user", email=email, role=data.role)
        return await self._execute_db_operation(
            "create_user",
            self.repo.create(
                email=email,
                password_hash=hash_password(data.password),
                company_name=data.company_name.strip(),
                ico=blank_to_none(data.ico),
                dic=blank_to_none(data.dic),
                vat_id=blank_to_none(data.vat_id),
                role=data.role,
            ),
            conflict_message=EMAIL_TAKEN_MESSAGE,
        )

    async def update_user(self, user_id: str, data: UserUpdate) -> User:
        user = await self.repo.get_by_id(user_id)
        changes = data.model_dump(exclude_unset=True, by_alias=False)

        if "email" in changes:
            email = (changes["email"] or "").strip().lower()
            if not email:
                raise ValidationError("Email nemôže byť prázdny")
            if email != user.email:
                existing = await self.repo.get_by_email(email)
                if existing and existing.id != user.id:
                    raise ConflictError(EMAIL_TAKEN_MESSAGE)
            changes["email"] = email

        password = changes.pop("password", None)
        if password:
            self._check_password(password)
            changes["password_hash"] = hash_password(password)

        for field in ("ico", "dic", "vat_id"):
            if field in changes:
                changes[field] = blank_to_none(changes[field])
        if changes.get("role") is None:
            changes.pop("role", None)
        if changes.get("company_name") is None:
            changes.pop("company_name", None)

        self._log_operation("Updating user", user_id=user_id, fields=sorted(changes))
        return await self._execute_db_operation(
            "update_user",
            self.repo.update_instance(user, **changes),
            conflict_message=EMAIL_TAKEN_MESSAGE,
        )

    async def delete_user(self, user_id: str) -> None:
        self._log_operation("Deleting user", user_id=user_id)
        await self._execute_db_operation("delete_user", self.repo.delete(user_id))

    async def generate_2fa(self, user_id: str) -> dict:
        """
        Fresh TOTP secret and provisioning URI.

        Nothing is stored until enable_2fa confirms a code.
        """
        user = await self.repo.get_by_id(user_id)
        secret = generate_totp_secret()
        return {
            "secret": secret,
            "otpauth_url": build_totp_uri(secret, user.company_name or user.email),
            "two_factor_enabled": user.two_factor_enabled,
        }

    async def enable_2fa(self, user_id: str, secret: str, code: str) -> User:
        user = await self.repo.get_by_id(user_id)
        if not verify_totp(secret, code):
            raise ValidationError("Neplatný overovací kód")

        self._log_operation("Two-factor enabled", user_id=user_id)
        return await self.repo.update_instance(user, two_factor_enabled=True, two_factor_secret=secret)

    async def disable_2fa(self, user_id: str) -> User:
        user = await self.repo.get_by_id(user_id)
        self._log_operation("Two-factor disabled", user_id=user_id)
        return await self.repo.update_instance(user, two_factor_enabled=False, two_factor_secret=None)

    async def ensure_admin(self, email: str, password: str, name: str | None = None) -> tuple[User, str]:
        """
        Create an admin, or reset the password of an existing one.

        Returns the user and what happened: "created", "updated", or
        "not_admin" when the email belongs to a customer (left untouched).
        """
        email = email.strip().lower()
        self._check_password(password)
        existing = await self.repo.get_by_email(email)

        if existing is None:
            user = await self.create_user(
                UserCreate(
                    email=email,
                    password=password,
                    company_name=(name or "").strip() or "Administrator",
                    role=UserRole.ADMIN,
                )
            )
            return user, "created"

        if existing.role != UserRole.ADMIN:
            self._logger.warning("Email belongs to a non-admin account", extra={"email": email})
            return existing, "not_admin"

        self._log_operation("Admin password reset", user_id=existing.id)
        user = await self.repo.update_instance(existing, password_hash=hash_password(password))
        return user, "updated"
