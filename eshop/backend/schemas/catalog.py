"""
Catalog Schemas.

Request and response models for products and categories.
"""

from datetime import datetime

from pydantic import AliasChoices, Field, field_validator

from eshop.backend.schemas.base import CamelModel


class ProductTranslation(CamelModel):
    """Per-language overrides. Unset fields fall back to the base product."""

    name: str | None = None
    tagline: str | None = None
    description: str | None = None
    promotion: str | None = None
    badge: str | None = None
    specs: list[str] | None = None


class _ProductFields(CamelModel):
    tagline: str | None = None
    description: str | None = None
    currency: str | None = None
    badge: str | None = None
    billing_period: str | None = None
    stock: int | None = Field(default=None, ge=0)
    discount: int | None = Field(default=None, ge=0, le=100)
    promotion: str | None = None
    image: str | None = None
    gallery: list[str] | None = None
    specs: list[str] | None = None
    active: bool | None = None
    sub_category_id: str | None = None
    translations: dict[str, ProductTranslation] | None = None


class ProductCreate(_ProductFields):
    """New product. Slug, name, price and category are checked by the service."""

    slug: str | None = Field(default=None, examples=["fortiedge-x5"])
    name: str | None = Field(default=None, examples=["2PN FortiEdge X5"])
    price: float | None = Field(default=None, ge=0, examples=[3490])
    category_id: str | None = None


class ProductUpdate(_ProductFields):
    """Partial update. Omitting subCategoryId removes the subcategory."""

    slug: str | None = None
    name: str | None = None
    price: float | None = Field(default=None, ge=0)
    category_id: str | None = None


class ProductResponse(CamelModel):
    id: str
    slug: str
    name: str
    tagline: str | None = None
    description: str | None = None
    price: float
    currency: str
    discount: int
    stock: int
    badge: str | None = None
    promotion: str | None = None
    billing_period: str | None = None
    image: str | None = None
    gallery: list[str] = Field(default_factory=list)
    specs: list[str] = Field(default_factory=list)
    translations: dict[str, ProductTranslation] | None = None
    active: bool
    category: str = Field(validation_alias=AliasChoices("category_name", "category"))
    category_id: str | None = None
    sub_category: str | None = Field(
        default=None,
        validation_alias=AliasChoices("sub_category_name", "subCategory"),
        serialization_alias="subCategory",
    )
    sub_category_id: str | None = None
    created_at: datetime
    updated_at: datetime

    @field_validator("translations", mode="before")
    @classmethod
    def _empty_translations_as_none(cls, value: object) -> object:
        return value or None


class SubCategoryResponse(CamelModel):
    id: str
    name: str


class CategoryResponse(CamelModel):
    id: str
    name: str
    subcategories: list[SubCategoryResponse] = Field(default_factory=list)


class CategoryCreate(CamelModel):
    """Creates a subcategory when categoryId is given, a category otherwise."""

    name: str = ""
    category_id: str | None = None
