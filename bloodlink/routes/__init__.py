from fastapi import APIRouter

from .admin import router as admin_router
from .auth import router as auth_router
from .camp import router as camp_router
from .certificate import router as certificate_router
from .chat import router as chat_router
from .donor import router as donor_router
from .inventory import router as inventory_router
from .notification import router as notification_router
from .request import router as request_router
from .users import router as users_router


router = APIRouter()

router.include_router(auth_router)
router.include_router(users_router)
router.include_router(inventory_router)
router.include_router(request_router)
router.include_router(camp_router)
router.include_router(donor_router)
router.include_router(certificate_router)
router.include_router(notification_router)
router.include_router(chat_router)
router.include_router(admin_router)
