from wanshiwu.schemas.request import (
    RequesterInfo,
    PublicRequestCreate,
    RequestCreate,
    RequestAdminUpdate,
    FollowUpCreate,
    MergeRequestsBody,
    RequestResponse,
    PublicRequestCreatedResponse,
    PaginatedRequests,
)
from wanshiwu.schemas.application import (
    ApplicationCreate,
    ApplicationUpdate,
    ApplicationResponse,
    PaginatedApplications,
)
from wanshiwu.schemas.user import (
    VolunteerRegister,
    UserUpdate,
    VolunteerStatusUpdate,
    UserResponse,
    PaginatedUsers,
)
from wanshiwu.schemas.activity_log import (
    ActivityLogResponse,
    PaginatedActivityLogs,
)

__all__ = [
    # Request
    "RequesterInfo",
    "PublicRequestCreate",
    "RequestCreate",
    "RequestAdminUpdate",
    "FollowUpCreate",
    "MergeRequestsBody",
    "RequestResponse",
    "PublicRequestCreatedResponse",
    "PaginatedRequests",
    # Application
    "ApplicationCreate",
    "ApplicationUpdate",
    "ApplicationResponse",
    "PaginatedApplications",
    # User
    "VolunteerRegister",
    "UserUpdate",
    "VolunteerStatusUpdate",
    "UserResponse",
    "PaginatedUsers",
    # Activity log
    "ActivityLogResponse",
    "PaginatedActivityLogs",
]
