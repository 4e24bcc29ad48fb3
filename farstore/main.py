"""FastAPI 应用入口"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from farstore import __version__
from farstore.core.config import settings
from farstore.core.database import init_db
from farstore.core.db import close_database_provider
from farstore.core.dependencies import create_sync_container
from farstore.core.errors import AppError, SyncError, create_error_response
from farstore.core.logging import logger
from farstore.routers import apps, notification, onchain, status
from farstore.scheduler import task_registry, task_scheduler
from farstore.scheduler.routers import router as scheduler_router
from farstore.scheduler.tasks import build_sync_tasks


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理

    启动顺序：日志 -> 数据库 -> 同步组件 -> 注册任务 -> bootstrap（每个任务同步执行一次）-> 开始调度。
    bootstrap 结束后才开始接收请求，读路径第一次访问时缓存已加载。
    """
    # 启动时配置日志（确保最先执行）
    logger.configure()

    logger.info("启动应用...", module="app", version=__version__)
    await init_db()

    container = create_sync_container(settings)
    app.state.sync_service = container.service

    for task in build_sync_tasks(container.service):
        task_registry.register(task, replace=True)

    await task_scheduler.start(bootstrap=True)
    logger.info(
        "应用启动完成",
        module="app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        task_count=len(task_registry),
    )

    yield

    logger.info("正在关闭应用...", module="app")

    await task_scheduler.stop()
    task_registry.clear()
    logger.debug("任务调度器已关闭", module="app")

    await container.close()
    app.state.sync_service = None

    await close_database_provider()
    logger.info("应用已关闭", module="app")


app = FastAPI(
    title="Farstore Sync",
    description="注册表同步与缓存重建服务",
    version=__version__,
    lifespan=lifespan,
)

# CORS 配置
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SyncError)
async def sync_error_handler(request: Request, exc: SyncError) -> JSONResponse:
    """同步引擎异常（manifest 拉取失败、注册表 / 存储不可用）"""
    logger.warning(
        "请求失败",
        module="app",
        path=request.url.path,
        error_code=exc.code,
        error=exc.message,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(exc.code, exc.message, exc.data),
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(exc.code, exc.error_message, exc.data),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content=create_error_response(
            "validation_error", "请求参数不合法", {"errors": exc.errors()}
        ),
    )


# 注册路由
app.include_router(status.router)
app.include_router(apps.router)
app.include_router(onchain.router)
app.include_router(notification.router)
app.include_router(scheduler_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "farstore.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
    )
