from flask import current_app

from cache.query_cache import QueryCache
from repositories.codes import OneTimeCodeRepository
from repositories.organizations import OrganizationRepository, OrganizationMemberRepository
from repositories.tokens import SessionTokenRepository
from repositories.users import UserRepository, RoleRepository


class Repositories:
    """One repository per entity, all sharing the app's query cache."""

    def __init__(self, cache: QueryCache):
        self.cache = cache
        self.users = UserRepository(cache)
        self.roles = RoleRepository(cache)
        self.tokens = SessionTokenRepository(cache)
        self.codes = OneTimeCodeRepository(cache)
        self.organizations = OrganizationRepository(cache)
        self.members = OrganizationMemberRepository(cache)


def get_repositories() -> Repositories:
    return current_app.extensions["repositories"]
