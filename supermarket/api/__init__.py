# supermarket/api/__init__.py
from fastapi import FastAPI
from supermarket.api.routers import carts, checkout, health, orders, products, users


def register_routers(app: FastAPI):
    app.include_router(health.router)
    app.include_router(products.router)
    app.include_router(users.router)
    app.include_router(carts.router)
    app.include_router(checkout.router)
    app.include_router(orders.router)
