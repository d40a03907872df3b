from .db import db
from .user import User, Role
from .user_token import UserToken
from .one_time_code import OneTimeCode
from .throttle import LoginAttempt, RequestWindow
from .audit_log import AuditLog
from .organization import Organization, OrganizationMember
