from sqladmin import ModelView
from bloodlink.models import InventoryLot, InventoryTransaction


class InventoryLotAdmin(ModelView, model=InventoryLot):
    column_list = [
        InventoryLot.id,
        InventoryLot.blood_group,
        "blood_bank",
        InventoryLot.quantity,
        InventoryLot.expiry_date,
        InventoryLot.source,
        InventoryLot.created_at,
    ]

    column_labels = {"blood_bank": "Blood Bank"}

    column_formatters = {
        "blood_bank": lambda m, c: m.blood_bank.name if m.blood_bank else "N/A"
    }
    column_formatters_detail = column_formatters

    column_sortable_list = [InventoryLot.expiry_date, InventoryLot.created_at]

    # Stock only moves through the ledger so every change leaves a transaction
    can_create = False
    can_edit = False
    can_delete = False
    can_view_details = True

    name = "Inventory Lot"
    name_plural = "Inventory Lots"
    icon = "fa-solid fa-droplet"


class InventoryTransactionAdmin(ModelView, model=InventoryTransaction):
    column_list = [
        InventoryTransaction.id,
        "blood_bank",
        InventoryTransaction.blood_group,
        InventoryTransaction.direction,
        InventoryTransaction.quantity,
        InventoryTransaction.reason,
        InventoryTransaction.created_at,
    ]

    column_labels = {"blood_bank": "Blood Bank"}

    column_formatters = {
        "blood_bank": lambda m, c: m.blood_bank.name if m.blood_bank else "N/A"
    }

    column_default_sort = ("created_at", True)

    can_create = False
    can_edit = False
    can_delete = False
    can_view_details = True

    name = "Inventory Transaction"
    name_plural = "Inventory Transactions"
    icon = "fa-solid fa-right-left"
