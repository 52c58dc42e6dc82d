# order_engine/api/__init__.py
from fastapi import FastAPI

from order_engine.api.routers import carts, coupons, health, loyalty, orders


def create_app(lifespan=None) -> FastAPI:
    app = FastAPI(title="Order Engine", version="1.0.0", lifespan=lifespan)

    app.include_router(health.router)
    app.include_router(carts.router)
    app.include_router(coupons.router)
    app.include_router(loyalty.router)
    app.include_router(orders.router)

    return app
