# order_engine/main.py
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from order_engine.api import create_app
from order_engine.data.database import Base, engine
from order_engine.utils.logging import get_logger

# every model must be registered on Base before create_all
import order_engine.data.models  # noqa: F401

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Creating tables: {list(Base.metadata.tables.keys())}")
    try:
        Base.metadata.create_all(bind=engine)
    except Exception as e:
        logger.error(f"Failed to create tables: {e}")
        raise
    yield


app = create_app(lifespan=lifespan)

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
