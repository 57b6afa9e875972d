from enum import Enum


class Role(str, Enum):
    owner = "owner"
    admin = "admin"
    professional = "professional"
    client = "client"


ADMIN_ROLES = {Role.owner, Role.admin}
STAFF_ROLES = {Role.owner, Role.admin, Role.professional}
