"""
建立資料庫表格及第一個管理員
"""
import asyncio
import os

from sqlalchemy import select

from wanshiwu.config import settings
from wanshiwu.database import engine, async_session, Base
from wanshiwu.models import User
from wanshiwu.core.constants import UserRole, UserStatus
from wanshiwu.core.security import create_access_token


async def init_database():
    """建立表格"""
    print("🔄 正在建立表格...")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    print("✅ 表格建立完成")


async def create_admin_user():
    """建立預設管理員 (主鍵為身份提供者的 uid)"""
    admin_uid = os.environ.get("ADMIN_UID", "local-admin")
    admin_email = os.environ.get("ADMIN_EMAIL", "admin@wanshiwu.local")

    async with async_session() as session:
        result = await session.execute(
            select(User).where(User.role == UserRole.ADMIN)
        )
        existing = result.scalars().first()

        if existing:
            print(f"⚠️  已有管理員: {existing.id}")
            return

        admin = User(
            id=admin_uid,
            email=admin_email,
            display_name="系統管理員",
            role=UserRole.ADMIN,
            status=UserStatus.APPROVED,
            completed_tasks=0,
        )
        session.add(admin)
        await session.commit()

        print("✅ 已建立管理員:")
        print(f"   🆔 uid: {admin_uid}")
        print(f"   📧 電郵: {admin_email}")
        if settings.AUTH_PROVIDER == "local":
            token = create_access_token({"sub": admin_uid, "role": UserRole.ADMIN.value})
            print(f"   🔑 登入憑證: {token}")


async def main():
    print("=" * 50)
    print("   🏠 萬事屋 - 資料庫設定")
    print("=" * 50)

    await init_database()
    await create_admin_user()

    print("=" * 50)
    print("   ✅ 設定完成!")
    print("=" * 50)


if __name__ == "__main__":
    asyncio.run(main())
