from . import delivery_state, order_state
from .order_state import HAPPY_PATH, ORDER_STATUS_FOR_DELIVERY, OrderStateMachine

__all__ = ["order_state", "delivery_state", "HAPPY_PATH", "ORDER_STATUS_FOR_DELIVERY", "OrderStateMachine"]
