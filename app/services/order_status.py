"""Forward-only order status transitions (CREATED -> REQUESTED -> FULFILLED)."""
import logging

from app.models import ORDER_STATUS_RANK, Order, OrderStatus

logger = logging.getLogger(__name__)


def advance_order_status(order: Order, target: OrderStatus) -> bool:
    """
    Move order to target if that is a step forward. Returns True when the status changed.
    Same or earlier targets leave the order untouched. Caller commits.
    """
    current = OrderStatus(order.status) if order.status else OrderStatus.CREATED
    if ORDER_STATUS_RANK[target] <= ORDER_STATUS_RANK[current]:
        if target != current:
            logger.warning("Order %s: ignoring status regression %s -> %s", order.id, current.value, target.value)
        return False
    order.status = target
    logger.info("Order %s: %s -> %s", order.id, current.value, target.value)
    return True
