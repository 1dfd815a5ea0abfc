"""API routers."""

from admissions.routers.internal import router as internal_router
from admissions.routers.leads import router as leads_router
from admissions.routers.management import router as management_router
from admissions.routers.presence import router as presence_router

__all__ = [
    "internal_router",
    "leads_router",
    "management_router",
    "presence_router",
]
