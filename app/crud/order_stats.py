from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.order_stats import OrderStats
from app.schemas.customer import OrderPayload


async def create_or_update_order_stats(db: AsyncSession, order: OrderPayload, customer_id: Optional[int]) -> OrderStats:
    """Records the reporting row of an order, keyed by its order id."""
    db_order = await db.get(OrderStats, order.order_id)

    if db_order is None:
        db_order = OrderStats(order_id=order.order_id)
        db.add(db_order)

    db_order.customer_id = customer_id
    db_order.date_created = order.date_created
    db_order.status = order.status
    db_order.num_items_sold = order.num_items_sold
    db_order.gross_total = order.gross_total
    db_order.net_total = order.net_total

    await db.commit()
    return db_order
