"""
Catalog Service.

Products, categories and subcategories for the storefront and the admin.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from eshop.backend.core.exceptions import NotFoundError, ValidationError
from eshop.backend.core.utils import blank_to_none
from eshop.backend.models.catalog import Category, Product
from eshop.backend.repositories.catalog import (
    CategoryRepository,
    ProductRepository,
    SubCategoryRepository,
)
from eshop.backend.schemas.catalog import CategoryCreate, ProductCreate, ProductUpdate
from eshop.backend.services.base import BaseService

_OPTIONAL_TEXT = ("tagline", "description", "badge", "billing_period", "promotion", "image")


class CatalogService(BaseService):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.products = ProductRepository(session)
        self.categories = CategoryRepository(session)
        self.subcategories = SubCategoryRepository(session)

    # -------------------------------------------------------------------------
    # Products
    # -------------------------------------------------------------------------

    async def list_products(
        self,
        category: str | None = None,
        query: str | None = None,
        limit: int | None = None,
        active_only: bool = False,
    ) -> list[Product]:
        return await self.products.search(
            category=category,
            query=query.strip() if query else None,
            limit=limit,
            active_only=active_only,
        )

    async def get_product(self, ref: str) -> Product:
        """Product by id or slug."""
        product = await self.products.get_by_id_or_slug(ref)
        if product is None:
            raise NotFoundError("Produkt neexistuje.")
        return product

    async def _resolve_category(self, category_id: str, sub_category_id: str | None) -> Category:
        category = await self.categories.get_by_id_or_none(category_id)
        if category is None:
            raise ValidationError("Zvoľte kategóriu produktu.")
        if sub_category_id and sub_category_id not in {sub.id for sub in category.subcategories}:
            raise ValidationError("Podkategória nepatrí do zvolenej kategórie.")
        return category

    async def create_product(self, data: ProductCreate) -> Product:
        if not data.slug or not data.slug.strip() or not data.name or not data.name.strip() or data.price is None:
            raise ValidationError("Chýbajú povinné polia.")
        if not data.category_id:
            raise ValidationError("Zvoľte kategóriu produktu.")

        sub_category_id = blank_to_none(data.sub_category_id)
        await self._resolve_category(data.category_id, sub_category_id)

        values: dict[str, Any] = {
            "slug": data.slug.strip(),
            "name": data.name.strip(),
            "price": data.price,
            "currency": (data.currency or "EUR").upper(),
            "stock": data.stock or 0,
            "discount": data.discount or 0,
            "gallery": data.gallery or [],
            "specs": data.specs or [],
            "active": True if data.active is None else data.active,
            "translations": _dump_translations(data.translations),
            "category_id": data.category_id,
            "sub_category_id": sub_category_id,
        }
        for field in _OPTIONAL_TEXT:
            values[field] = blank_to_none(getattr(data, field))

        self._log_operation("Creating product", slug=values["slug"])
        product = await self._execute_db_operation(
            "create_product",
            self.products.create(**values),
            conflict_message="Produkt s týmto slugom už existuje.",
        )
        self._log_debug("Product created", product_id=product.id)
        return product

    async def update_product(self, ref: str, data: ProductUpdate) -> Product:
        product = await self.get_product(ref)
        provided = data.model_dump(exclude_unset=True, by_alias=False)

        changes: dict[str, Any] = {}
        for field in ("slug", "name"):
            if field in provided:
                value = blank_to_none(provided[field])
                if value is None:
                    raise ValidationError("Chýbajú povinné polia.")
                changes[field] = value
        if provided.get("price") is not None:
            changes["price"] = provided["price"]
        if "currency" in provided:
            changes["currency"] = (provided["currency"] or "EUR").upper()
        for field in ("stock", "discount"):
            if field in provided:
                changes[field] = provided[field] or 0
        for field in ("gallery", "specs"):
            if field in provided:
                changes[field] = provided[field] or []
        if "active" in provided:
            changes["active"] = True if provided["active"] is None else provided["active"]
        if "translations" in provided:
            changes["translations"] = _dump_translations(data.translations)
        for field in _OPTIONAL_TEXT:
            if field in provided:
                changes[field] = blank_to_none(provided[field])

        category_id = provided.get("category_id") or product.category_id
        if "sub_category_id" in provided:
            sub_category_id = blank_to_none(provided["sub_category_id"])
        else:
            sub_category_id = product.sub_category_id
        if category_id:
            category = await self._resolve_category(category_id, None)
            sub_ids = {sub.id for sub in category.subcategories}
            if "sub_category_id" not in provided and sub_category_id not in sub_ids:
                # category moved without a new subcategory
                sub_category_id = None
            elif sub_category_id and sub_category_id not in sub_ids:
                raise ValidationError("Podkategória nepatrí do zvolenej kategórie.")
        if "category_id" in provided:
            changes["category_id"] = category_id
        if sub_category_id != product.sub_category_id:
            changes["sub_category_id"] = sub_category_id

        self._log_operation("Updating product", product_id=product.id, fields=sorted(changes))
        return await self._execute_db_operation(
            "update_product",
            self.products.update_instance(product, **changes),
            conflict_message="Produkt s týmto slugom už existuje.",
        )

    async def delete_product(self, ref: str) -> None:
        product = await self.get_product(ref)
        self._log_operation("Deleting product", product_id=product.id, slug=product.slug)
        await self._execute_db_operation("delete_product", self.products.delete(product.id))

    # -------------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------------

    async def list_categories(self) -> list[Category]:
        return await self.categories.list_ordered()

    async def create_category(self, data: CategoryCreate) -> list[Category]:
        """Create a category, or a subcategory under `category_id`. Returns the refreshed tree."""
        name = data.name.strip()
        if not name:
            raise ValidationError("Zadajte názov.")

        if data.category_id:
            parent = await self.categories.get_by_id(data.category_id)
            self._log_operation("Creating subcategory", name=name, category_id=parent.id)
            await self._execute_db_operation(
                "create_subcategory",
                self.subcategories.create(name=name, category_id=parent.id),
                conflict_message="Podkategória s týmto názvom už existuje.",
            )
            # the parent's selectin collection was loaded before the insert
            await self.session.refresh(parent)
        else:
            self._log_operation("Creating category", name=name)
            await self._execute_db_operation(
                "create_category",
                self.categories.create(name=name),
                conflict_message="Kategória s týmto názvom už existuje.",
            )
        return await self.list_categories()

    async def delete_category(self, category_id: str) -> None:
        category = await self.categories.get_by_id(category_id)
        sub_ids = [sub.id for sub in category.subcategories]
        self._log_operation("Deleting category", category_id=category.id, subcategories=len(sub_ids))
        await self.products.detach_category(category.id, sub_ids)
        await self._execute_db_operation("delete_category", self.categories.delete(category.id))


def _dump_translations(translations: dict[str, Any] | None) -> dict[str, Any]:
    if not translations:
        return {}
    return {
        lang: value.model_dump(mode="json", by_alias=True, exclude_none=True)
        for lang, value in translations.items()
    }
