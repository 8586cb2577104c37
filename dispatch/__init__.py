#Expose the high-level pieces:
#Exclusive assignment (system and driver initiated)
#Delivery tracking (delivery drives order)
#Dispatcher orchestrator (the "one call" entry point)

from .assignment import AssignmentEngine
from .dispatcher import Dispatcher, Placement #the main object to place, track and cancel orders
from .errors import (
    AssignmentConflict,
    DeliveryNotFound,
    DispatchError,
    DriverUnavailable,
    InvalidTransition,
    LockTimeout,
    OrderNotFound,
    OrderValidationError,
    RatingRejected,
    StoreTimeout,
    TransportUnavailable,
    Unauthorized,
)
from .locks import LockManager
from .models import Actor, ActorRole, Assignment, AssignmentOutcome, TrackingResult, Unassigned
from .policy import DispatchPolicy, default_policy, policy_from_env
from .store import DispatchStore
from .tracker import DeliveryTracker

__all__ = [
    "AssignmentEngine",
    "DeliveryTracker",
    "Dispatcher",
    "Placement",
    "DispatchStore",
    "LockManager",
    "DispatchPolicy",
    "default_policy",
    "policy_from_env",
    "Actor",
    "ActorRole",
    "Assignment",
    "AssignmentOutcome",
    "Unassigned",
    "TrackingResult",
    "DispatchError",
    "InvalidTransition",
    "Unauthorized",
    "AssignmentConflict",
    "TransportUnavailable",
    "OrderNotFound",
    "OrderValidationError",
    "DeliveryNotFound",
    "DriverUnavailable",
    "RatingRejected",
    "LockTimeout",
    "StoreTimeout",
]
