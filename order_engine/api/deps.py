# order_engine/api/deps.py
import redis
from fastapi import Depends
from sqlalchemy.orm import Session

from order_engine.data.database import get_db
from order_engine.repos.cart_repo import CartStore
from order_engine.repos.catalog_repo import CatalogRepo
from order_engine.services.cart_service import CartService
from order_engine.services.dispatch_client import DispatchClient
from order_engine.services.lock_service import LockService
from order_engine.services.notification_service import NotificationService
from order_engine.services.order_service import OrderService
from order_engine.services.realtime import ChangeBus, RedisChangeBus
from order_engine.services.status_machine import OrderStatusMachine
from order_engine.tasks.printing import auto_print_order_task
from order_engine.utils.settings import REDIS_URL


def get_redis() -> redis.Redis:
    return redis.Redis.from_url(REDIS_URL, decode_responses=True)


def get_bus(client: redis.Redis = Depends(get_redis)) -> ChangeBus:
    return RedisChangeBus(client)


def get_dispatcher() -> DispatchClient:
    return DispatchClient()


def get_notifier(db: Session = Depends(get_db), dispatcher: DispatchClient = Depends(get_dispatcher)) -> NotificationService:
    return NotificationService(db, dispatcher)


def get_print_queue():
    return auto_print_order_task.delay


def get_cart_service(db: Session = Depends(get_db), client: redis.Redis = Depends(get_redis)) -> CartService:
    return CartService(store=CartStore(client), catalog_repo=CatalogRepo(db))


def get_order_service(
    db: Session = Depends(get_db),
    carts: CartService = Depends(get_cart_service),
    bus: ChangeBus = Depends(get_bus),
    notifier: NotificationService = Depends(get_notifier),
    enqueue_print=Depends(get_print_queue),
) -> OrderService:
    return OrderService(db, carts=carts, bus=bus, notifier=notifier, enqueue_print=enqueue_print)


def get_status_machine(
    db: Session = Depends(get_db),
    client: redis.Redis = Depends(get_redis),
    bus: ChangeBus = Depends(get_bus),
    notifier: NotificationService = Depends(get_notifier),
    dispatcher: DispatchClient = Depends(get_dispatcher),
) -> OrderStatusMachine:
    return OrderStatusMachine(
        db=db,
        lock=LockService(client=client),
        bus=bus,
        notifier=notifier,
        dispatcher=dispatcher,
    )
