from .service import PaymentCollaborator, PaymentResult, PaymentService

__all__ = [
    "PaymentCollaborator",
    "PaymentResult",
    "PaymentService",
]
