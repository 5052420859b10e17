from sqladmin import ModelView
from bloodlink.models import BloodRequest


class BloodRequestAdmin(ModelView, model=BloodRequest):
    column_list = [
        BloodRequest.id,
        "hospital",
        "blood_bank",
        BloodRequest.blood_group,
        BloodRequest.quantity,
        BloodRequest.urgency,
        BloodRequest.status,
        BloodRequest.created_at,
    ]

    column_labels = {"hospital": "Hospital", "blood_bank": "Blood Bank"}

    column_formatters = {
        "hospital": lambda m, c: m.hospital.name if m.hospital else "N/A",
        "blood_bank": lambda m, c: m.blood_bank.name if m.blood_bank else "N/A",
    }
    column_formatters_detail = column_formatters

    column_default_sort = ("created_at", True)

    # Status changes go through the approve/reject/fulfill workflow
    can_create = False
    can_edit = False
    can_delete = False
    can_view_details = True

    name = "Blood Request"
    name_plural = "Blood Requests"
    icon = "fa-solid fa-truck-medical"
