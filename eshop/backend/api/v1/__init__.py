"""
API Version 1 Router.

Aggregates all v1 endpoint routers.
"""

from fastapi import APIRouter

from eshop.backend.api.v1.endpoints import (
    auth,
    categories,
    chat,
    checkout,
    flexibee,
    invoices,
    orders,
    products,
    site,
    users,
)

router = APIRouter()

# Catalog
router.include_router(products.router, prefix="/products", tags=["products"])
router.include_router(categories.router, prefix="/categories", tags=["categories"])

# Orders and documents
router.include_router(orders.router, prefix="/orders", tags=["orders"])
router.include_router(checkout.router, prefix="/checkout", tags=["checkout"])
router.include_router(invoices.router, prefix="/invoices", tags=["invoices"])
router.include_router(flexibee.router, prefix="/flexibee", tags=["flexibee"])

# Accounts
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(users.router, prefix="/users", tags=["users"])

# Chat and site content
router.include_router(chat.router, prefix="/chat", tags=["chat"])
router.include_router(site.router, prefix="/site", tags=["site"])
