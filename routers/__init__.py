from .invoices import router as invoices_router
from .orders import router as orders_router
from .credit_notes import router as credit_notes_router

__all__ = [
     "invoices_router",
     "orders_router",
     "credit_notes_router",
]
