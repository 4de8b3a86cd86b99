"""
Auth Service.

Customer registration and login, and the admin login with optional TOTP.
Successful logins return a JWT access token.
"""

import re
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from eshop.backend.core.config import get_app_config
from eshop.backend.core.exceptions import AuthenticationError, ValidationError
from eshop.backend.core.security import create_access_token, verify_password, verify_totp
from eshop.backend.models.user import User, UserRole
from eshop.backend.repositories.user import UserRepository
from eshop.backend.schemas.auth import CustomerRegister
from eshop.backend.schemas.user import UserCreate
from eshop.backend.services.base import BaseService
from eshop.backend.services.user import UserService

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
INVALID_CREDENTIALS = "Nesprávne prihlasovacie údaje"
INVALID_CODE = "Neplatný overovací kód"


@dataclass
class IssuedToken:
    access_token: str
    expires_in: int
    user: User


@dataclass
class AdminLoginResult:
    requires_two_factor: bool = False
    token: IssuedToken | None = None


def issue_token(user: User) -> IssuedToken:
    expire_minutes = get_app_config().security.jwt.access_token_expire_minutes
    token = create_access_token({"sub": user.id, "email": user.email, "role": user.role})
    return IssuedToken(access_token=token, expires_in=expire_minutes * 60, user=user)


class AuthService(BaseService):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = UserRepository(session)
        self.users = UserService(session)

    async def register_customer(self, data: CustomerRegister) -> IssuedToken:
        self._validate_required(
            data.model_dump(by_alias=False),
            ["email", "password", "company_name", "ico", "dic"],
            message="Vyplňte všetky povinné polia (email, heslo, firma, IČO, DIČ)",
        )
        email = data.email.strip().lower()
        if not EMAIL_PATTERN.match(email):
            raise ValidationError("Neplatný formát emailu")

        user = await self.users.create_user(
            UserCreate(
                email=email,
                password=data.password,
                company_name=data.company_name,
                ico=data.ico,
                dic=data.dic,
                vat_id=data.vat_id,
                role=UserRole.USER,
            )
        )
        self._log_operation("Customer registered", user_id=user.id)
        return issue_token(user)

    async def login_customer(self, email: str, password: str) -> IssuedToken:
        user = await self.repo.get_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            self._logger.warning("Customer login failed", extra={"email": email.strip().lower()})
            raise AuthenticationError(INVALID_CREDENTIALS)
        self._log_operation("Customer logged in", user_id=user.id)
        return issue_token(user)

    async def _find_admin_candidate(self, login: str) -> User | None:
        """Exact email, then admin company name, then admin email local part."""
        user = await self.repo.get_by_email(login)
        if user is None:
            user = await self.repo.find_admin_by_company_name(login)
        if user is None and "@" not in login:
            user = await self.repo.find_admin_by_email_prefix(login)
        return user

    async def login_admin(self, login: str, password: str, otp_code: str | None = None) -> AdminLoginResult:
        """
        Admin login.

        With two-factor enabled and no code given, the result only asks for
        the code and carries no token.
        """
        login = login.strip().lower()
        user = await self._find_admin_candidate(login)

        if user is None or not user.is_admin or not verify_password(password, user.password_hash):
            self._logger.warning("Admin login failed", extra={"login": login})
            raise AuthenticationError(INVALID_CREDENTIALS)

        if user.two_factor_enabled and user.two_factor_secret:
            if not otp_code or not otp_code.strip():
                self._log_debug("Admin login waiting for second factor", user_id=user.id)
                return AdminLoginResult(requires_two_factor=True)
            if not verify_totp(user.two_factor_secret, otp_code):
                self._logger.warning("Admin second factor rejected", extra={"user_id": user.id})
                raise AuthenticationError(INVALID_CODE)

        self._log_operation("Admin logged in", user_id=user.id)
        return AdminLoginResult(token=issue_token(user))

    async def list_admins(self) -> list[User]:
        return await self.repo.list_by_role(UserRole.ADMIN)
