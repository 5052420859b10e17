from sqladmin import ModelView
from bloodlink.models import User


class UserAdmin(ModelView, model=User):

    icon = "fa-solid fa-user"

    column_list = [
        User.id,
        User.name,
        User.email,
        User.role,
        User.phone,
        User.city,
        User.is_verified,
        User.is_active,
        User.created_at,
    ]

    column_searchable_list = [User.name, User.email]
    column_sortable_list = [User.created_at, User.name]

    # The password hash and the role discriminator are never edited by hand
    form_columns = [
        User.name,
        User.phone,
        User.street,
        User.city,
        User.state,
        User.zip_code,
        User.is_verified,
        User.is_active,
    ]
    column_details_exclude_list = [User.password]

    can_create = False
    can_edit = True
    can_delete = False
    can_view_details = True
