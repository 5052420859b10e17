from bloodlink.admin.user_admin import UserAdmin
from bloodlink.admin.inventory import InventoryLotAdmin, InventoryTransactionAdmin
from bloodlink.admin.request_admin import BloodRequestAdmin
from bloodlink.admin.camp_admin import CampAdmin, DonationAdmin

ADMIN_VIEWS = [
    UserAdmin,
    InventoryLotAdmin,
    InventoryTransactionAdmin,
    BloodRequestAdmin,
    CampAdmin,
    DonationAdmin,
]

__all__ = ["ADMIN_VIEWS"]
