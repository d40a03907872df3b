from repositories import get_repositories

DEFAULT_ROLE = "User"
DEFAULT_ROLES = ["User", "Moderator", "Admin"]


def seed_roles():
    return get_repositories().roles.ensure(DEFAULT_ROLES)
