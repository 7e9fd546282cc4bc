from wanshiwu.models.user import User
from wanshiwu.models.request import Request
from wanshiwu.models.application import Application
from wanshiwu.models.activity_log import ActivityLog

__all__ = [
    "User",
    "Request",
    "Application",
    "ActivityLog",
]
