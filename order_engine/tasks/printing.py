# order_engine/tasks/printing.py
from order_engine.celery_worker import celery_app
from order_engine.data.database import SessionLocal
from order_engine.domain.errors import EngineError
from order_engine.services.status_machine import create_status_machine
from order_engine.utils.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(name="order_engine.tasks.printing.auto_print_order_task")
def auto_print_order_task(order_id: str):
    logger.info(f"Auto-print task started for order {order_id}")

    db = SessionLocal()
    try:
        row = create_status_machine(db).auto_print(order_id)
    except EngineError as e:
        # the order stays pending; the operator can print from the board
        logger.error(f"Auto-print failed for order {order_id}: {e.message}")
        return {"order_id": order_id, "printed": False, "reason": e.message}
    finally:
        db.close()

    return {"order_id": order_id, "printed": True, "status": row["status"] if row else None}
