from .billing import router as billing_router

__all__ = [
     "billing_router",
]
