from sqladmin import ModelView
from bloodlink.models import Camp, Donation


class CampAdmin(ModelView, model=Camp):
    icon = "fa-solid fa-tent"
    name = "Camp"
    name_plural = "Camps"

    column_list = [
        Camp.id,
        Camp.name,
        "blood_bank",
        Camp.date,
        Camp.city,
        Camp.target_donors,
        Camp.is_active,
    ]

    form_columns = [
        Camp.name,
        Camp.description,
        Camp.date,
        Camp.start_time,
        Camp.end_time,
        Camp.address,
        Camp.city,
        Camp.state,
        Camp.zip_code,
        Camp.target_donors,
        Camp.is_active,
    ]

    column_labels = {"blood_bank": "Blood Bank"}

    column_formatters = {
        "blood_bank": lambda m, c: m.blood_bank.name if m.blood_bank else "N/A"
    }

    column_searchable_list = [Camp.name, Camp.city]

    can_create = False
    can_edit = True
    can_delete = False
    can_view_details = True


class DonationAdmin(ModelView, model=Donation):
    icon = "fa-solid fa-hand-holding-medical"
    name = "Donation"
    name_plural = "Donations"

    column_list = [
        Donation.id,
        "donor",
        "blood_bank",
        Donation.blood_group,
        Donation.quantity,
        Donation.donation_date,
        Donation.certificate_generated,
    ]

    column_labels = {"donor": "Donor", "blood_bank": "Blood Bank"}

    column_formatters = {
        "donor": lambda m, c: m.donor.name if m.donor else "N/A",
        "blood_bank": lambda m, c: m.blood_bank.name if m.blood_bank else "N/A",
    }

    can_create = False
    can_edit = False
    can_delete = False
    can_view_details = True
