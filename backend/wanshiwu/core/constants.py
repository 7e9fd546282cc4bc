import enum


class UserRole(str, enum.Enum):
    """用戶角色"""
    ADMIN = "admin"               # 管理員
    VOLUNTEER = "volunteer"       # 義工


class UserStatus(str, enum.Enum):
    """用戶狀態"""
    PENDING = "pending"           # 等待面試/審核
    APPROVED = "approved"
    REJECTED = "rejected"
    SUSPENDED = "suspended"


class ServiceField(str, enum.Enum):
    """服務範疇"""
    LIFE_HELPER = "生活助手"
    COMMUNITY_PARTNER = "社區拍檔"
    NEIGHBOUR_TREE_HOLE = "街坊樹窿"


class RequestStatus(str, enum.Enum):
    """委托狀態"""
    PENDING = "pending"           # 待審核
    OPEN = "open"                 # 已審核
    PUBLISHED = "published"       # 已發布，義工可報名
    MATCHED = "matched"           # 已配對
    IN_PROGRESS = "in-progress"   # 進行中
    COMPLETED = "completed"       # 已完成
    CANCELLED = "cancelled"       # 已取消


class ApplicationStatus(str, enum.Enum):
    """報名狀態"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


class TargetType(str, enum.Enum):
    """操作日誌目標類型"""
    USER = "user"
    REQUEST = "request"
    APPLICATION = "application"
    SYSTEM = "system"


# 非管理員看到的委托者資料
MASKED_VALUE = "***"

# 義工可以瀏覽及報名的委托狀態
APPLYABLE_REQUEST_STATUSES = (RequestStatus.OPEN, RequestStatus.PUBLISHED)

TRACKING_NUMBER_LENGTH = 8
