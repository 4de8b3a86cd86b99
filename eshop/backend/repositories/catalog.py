"""
Catalog Repositories.

Products, categories and subcategories.
"""

from sqlalchemy import or_, select, update

from eshop.backend.models.catalog import Category, Product, SubCategory
from eshop.backend.repositories.base import BaseRepository


class ProductRepository(BaseRepository[Product]):
    model = Product
    not_found_message = "Produkt neexistuje."

    async def get_by_id_or_slug(self, ref: str) -> Product | None:
        result = await self.session.execute(
            select(Product).where(or_(Product.id == ref, Product.slug == ref))
        )
        return result.scalars().first()

    async def get_by_slug(self, slug: str) -> Product | None:
        result = await self.session.execute(select(Product).where(Product.slug == slug))
        return result.scalar_one_or_none()

    async def search(
        self,
        category: str | None = None,
        query: str | None = None,
        limit: int | None = None,
        active_only: bool = False,
    ) -> list[Product]:
        """
        Filter products by category name and a free-text query.

        The query matches name, description or tagline, case-insensitively.
        Most recently updated first.
        """
        stmt = select(Product)
        if category:
            stmt = stmt.join(Category, Product.category_id == Category.id).where(
                Category.name == category
            )
        if query:
            pattern = f"%{query}%"
            stmt = stmt.where(
                or_(
                    Product.name.ilike(pattern),
                    Product.description.ilike(pattern),
                    Product.tagline.ilike(pattern),
                )
            )
        if active_only:
            stmt = stmt.where(Product.active == True)  # noqa: E712
        stmt = stmt.order_by(Product.updated_at.desc())
        if limit:
            stmt = stmt.limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def detach_category(self, category_id: str, subcategory_ids: list[str]) -> None:
        """Clear references to a category (and its subcategories) before it is deleted."""
        await self.session.execute(
            update(Product)
            .where(Product.category_id == category_id)
            .values(category_id=None, sub_category_id=None)
        )
        if subcategory_ids:
            await self.session.execute(
                update(Product)
                .where(Product.sub_category_id.in_(subcategory_ids))
                .values(sub_category_id=None)
            )

    async def delete_all(self) -> None:
        for product in (await self.session.execute(select(Product))).scalars().all():
            await self.session.delete(product)
        await self.session.flush()


class CategoryRepository(BaseRepository[Category]):
    model = Category
    not_found_message = "Kategória neexistuje."

    async def list_ordered(self) -> list[Category]:
        result = await self.session.execute(select(Category).order_by(Category.name))
        return list(result.scalars().all())

    async def get_by_name(self, name: str) -> Category | None:
        result = await self.session.execute(select(Category).where(Category.name == name))
        return result.scalar_one_or_none()

    async def delete_all(self) -> None:
        for category in (await self.session.execute(select(Category))).scalars().all():
            await self.session.delete(category)
        await self.session.flush()


class SubCategoryRepository(BaseRepository[SubCategory]):
    model = SubCategory
    not_found_message = "Podkategória neexistuje."

    async def get_by_name(self, category_id: str, name: str) -> SubCategory | None:
        result = await self.session.execute(
            select(SubCategory).where(
                SubCategory.category_id == category_id,
                SubCategory.name == name,
            )
        )
        return result.scalar_one_or_none()
