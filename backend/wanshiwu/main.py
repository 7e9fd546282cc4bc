"""
萬事屋平台 - 社區互助委托配對
"""
import asyncio
import logging
import traceback
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError, OperationalError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from wanshiwu.config import settings
from wanshiwu.api.router import api_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """應用程式生命週期"""
    logger.info("萬事屋 backend is starting (auth provider: %s)", settings.AUTH_PROVIDER)
    yield
    logger.info("萬事屋 backend is shutting down")


app = FastAPI(
    title="萬事屋平台",
    description="""
    ## 社區互助委托配對平台

    ### 功能:
    - **提交委托**: 街坊無需登入即可提交委托
    - **義工報名**: 已審核的義工瀏覽並報名已發布的委托
    - **管理後台**: 審核、發布、配對、跟進、合併重複委托及操作日誌

    ### 角色:
    - **公眾**: 提交委托
    - **義工**: 瀏覽委托、報名、撤回待審核的報名
    - **管理員**: 完整管理權限
    """,
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

_CORS_ORIGINS = settings.allowed_origins_list


def _cors_headers(origin: str) -> dict:
    """CORS 標頭: 來源在允許列表內就原樣返回，否則返回第一個允許的來源"""
    h = {
        "Access-Control-Allow-Methods": "GET, POST, PUT, PATCH, DELETE, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type, Authorization, Accept, Accept-Language",
        "Access-Control-Max-Age": "86400",
        "Access-Control-Allow-Credentials": "true",
    }
    if origin and origin in _CORS_ORIGINS:
        h["Access-Control-Allow-Origin"] = origin
    elif _CORS_ORIGINS:
        h["Access-Control-Allow-Origin"] = _CORS_ORIGINS[0]
    return h


# Preflight (OPTIONS) middleware: 最後加入，最先執行
class PreflightCORSMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS":
            origin = request.headers.get("origin", "")
            return Response(status_code=200, headers=_cors_headers(origin))
        response = await call_next(request)
        if "Access-Control-Allow-Origin" not in response.headers:
            origin = request.headers.get("origin", "")
            for k, v in _cors_headers(origin).items():
                response.headers[k] = v
        return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)
app.add_middleware(PreflightCORSMiddleware)


# 請求資料驗證錯誤 -> 400
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(
        "Validation error on %s %s\nBody received: %s\nErrors: %s",
        request.method,
        request.url.path,
        exc.body,
        exc.errors(),
    )
    origin = request.headers.get("origin", "")
    return JSONResponse(
        status_code=400,
        content={
            "detail": {
                "error": {
                    "code": "VALIDATION_ERROR",
                    "message": "缺少必要欄位或格式不正確",
                    "details": {"errors": jsonable_encoder(exc.errors())},
                }
            }
        },
        headers=_cors_headers(origin),
    )


# 資料庫錯誤: 不向用戶透露內部細節
@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error(
        "Database error on %s %s: %s\n%s",
        request.method,
        request.url.path,
        exc,
        traceback.format_exc(),
    )
    origin = request.headers.get("origin", "")
    if isinstance(exc, OperationalError):
        return JSONResponse(
            status_code=503,
            content={"detail": {"error": {"code": "SERVICE_UNAVAILABLE", "message": "服務暫時無法使用，請稍後再試", "details": None}}},
            headers=_cors_headers(origin),
        )
    return JSONResponse(
        status_code=500,
        content={"detail": {"error": {"code": "INTERNAL", "message": "系統發生錯誤，請稍後再試", "details": None}}},
        headers=_cors_headers(origin),
    )


@app.exception_handler(asyncio.TimeoutError)
async def timeout_exception_handler(request: Request, exc: asyncio.TimeoutError):
    logger.error("Timeout on %s %s", request.method, request.url.path)
    origin = request.headers.get("origin", "")
    return JSONResponse(
        status_code=503,
        content={"detail": {"error": {"code": "SERVICE_UNAVAILABLE", "message": "服務暫時無法使用，請稍後再試", "details": None}}},
        headers=_cors_headers(origin),
    )


# 其他未處理錯誤 (500 時亦返回 CORS 標頭)
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(
        "Unhandled exception on %s %s: %s\n%s",
        request.method,
        request.url.path,
        exc,
        traceback.format_exc(),
    )
    origin = request.headers.get("origin", "")
    return JSONResponse(
        status_code=500,
        content={"detail": {"error": {"code": "INTERNAL", "message": "系統發生錯誤，請稍後再試", "details": None}}},
        headers=_cors_headers(origin),
    )


# Health check
@app.get("/health")
async def health_check():
    """健康檢查"""
    return {"status": "healthy", "service": "wanshiwu-backend", "version": "1.0.0"}


app.include_router(api_router)


@app.get("/")
async def root():
    return {
        "name": "萬事屋平台",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
    }
