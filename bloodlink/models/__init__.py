from bloodlink.models.user import User, Administrator, BloodBank, Hospital, Donor
from bloodlink.models.inventory import InventoryLot, InventoryTransaction
from bloodlink.models.request import BloodRequest
from bloodlink.models.camp import Camp, CampRegistration
from bloodlink.models.donation import Donation
from bloodlink.models.notification import Notification
from bloodlink.models.message import Message

__all__ = [
    "User",
    "Administrator",
    "BloodBank",
    "Hospital",
    "Donor",
    "InventoryLot",
    "InventoryTransaction",
    "BloodRequest",
    "Camp",
    "CampRegistration",
    "Donation",
    "Notification",
    "Message",
]
