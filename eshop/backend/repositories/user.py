"""
User Repository.
"""

from sqlalchemy import func, select

from eshop.backend.models.user import User, UserRole
from eshop.backend.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    model = User
    not_found_message = "Používateľ nenájdený"

    async def get_by_email(self, email: str) -> User | None:
        result = await self.session.execute(
            select(User).where(User.email == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def list_by_role(self, role: str | None = None) -> list[User]:
        stmt = select(User)
        if role:
            stmt = stmt.where(User.role == role)
        result = await self.session.execute(stmt.order_by(User.created_at.desc()))
        return list(result.scalars().all())

    async def find_admin_by_company_name(self, name: str) -> User | None:
        result = await self.session.execute(
            select(User).where(
                User.role == UserRole.ADMIN,
                func.lower(User.company_name) == name.strip().lower(),
            )
        )
        return result.scalars().first()

    async def find_admin_by_email_prefix(self, prefix: str) -> User | None:
        """Admin whose email local part equals `prefix` (login without the domain)."""
        result = await self.session.execute(
            select(User).where(
                User.role == UserRole.ADMIN,
                User.email.startswith(f"{prefix.strip().lower()}@", autoescape=True),
            )
        )
        return result.scalars().first()
