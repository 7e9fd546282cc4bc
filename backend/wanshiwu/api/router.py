"""
所有 API 路由
"""
from fastapi import APIRouter

from wanshiwu.api.v1 import requests, applications, users, admin

api_router = APIRouter(prefix="/api/v1")

# 委托 (公開提交 + 瀏覽 + 管理)
api_router.include_router(requests.router)

# 義工報名
api_router.include_router(applications.router)

# 我的帳戶
api_router.include_router(users.router)

# 管理後台
api_router.include_router(admin.router)
