"""统一错误处理

两类异常：
- SyncError 及其子类：同步引擎内部的失败分类（注册表不可用、manifest 拉取失败、存储不可用）
- AppError：读路径（HTTP）上的业务错误

两者都会被 main.py 注册的异常处理器渲染成标准错误响应。
"""

from datetime import datetime, timezone
from typing import Any

from fastapi import HTTPException, status
from pydantic import BaseModel


class ErrorPayload(BaseModel):
    """标准错误响应结构"""

    code: str
    message: str
    data: dict[str, Any] | None = None
    timestamp: str


class SyncError(Exception):
    """同步引擎异常基类

    Attributes:
        code: 错误码
        message: 错误描述
        data: 附加上下文
        status_code: 暴露到读路径时使用的 HTTP 状态码
    """

    code = "sync_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, *, data: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.data = data or {}

    def __str__(self) -> str:
        return self.message


class LedgerUnavailable(SyncError):
    """注册表或辅助合约的 RPC 调用失败

    中止当前任务周期，等待下一次调度重试。
    """

    code = "ledger_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, method: str, detail: str):
        super().__init__(f"RPC 调用失败: {method}: {detail}", data={"method": method})
        self.method = method
        self.detail = detail


class LiquiditySourceUnavailable(LedgerUnavailable):
    """流动性数据源（池合约或行情聚合器）不可用"""

    code = "liquidity_source_unavailable"


class ManifestFetchFailed(SyncError):
    """manifest 拉取或校验失败

    stage 记录失败所在阶段：
    - transport: 网络错误、超时、非 2xx 响应
    - parse: 响应不是 JSON 对象
    - validation: 缺少 frame.name
    """

    code = "manifest_fetch_failed"
    status_code = status.HTTP_502_BAD_GATEWAY

    STAGE_TRANSPORT = "transport"
    STAGE_PARSE = "parse"
    STAGE_VALIDATION = "validation"

    _STAGE_MESSAGES = {
        STAGE_TRANSPORT: "Unable to fetch",
        STAGE_PARSE: "Unable to parse",
        STAGE_VALIDATION: "Missing metadata in",
    }

    def __init__(self, domain: str, stage: str, url: str, detail: str = ""):
        prefix = self._STAGE_MESSAGES.get(stage, "Invalid manifest at")
        super().__init__(f"{prefix} {url}", data={"domain": domain, "stage": stage})
        self.domain = domain
        self.stage = stage
        self.url = url
        self.detail = detail


class StoreUnavailable(SyncError):
    """关系存储不可用，中止当前任务周期"""

    code = "store_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, operation: str, detail: str):
        super().__init__(f"存储操作失败: {operation}: {detail}", data={"operation": operation})
        self.operation = operation
        self.detail = detail


class AppError(HTTPException):
    """应用自定义异常

    使用示例:
        raise AppError(
            code="app_not_found",
            message="App 不存在",
            status_code=404,
            data={"domain": domain}
        )
    """

    def __init__(
        self,
        *,
        code: str,
        message: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        data: dict[str, Any] | None = None,
    ):
        self.code = code
        self.error_message = message
        self.data = data
        super().__init__(status_code=status_code, detail=message)


def create_error_response(
    code: str,
    message: str,
    data: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """创建标准错误响应"""
    return {
        "error": {
            "code": code,
            "message": message,
            "data": data,
            "timestamp": datetime.now(timezone.utc).replace(tzinfo=None).isoformat() + "Z",
        }
    }


def raise_not_found(resource: str, resource_id: str | None = None) -> None:
    """抛出资源不存在错误"""
    raise AppError(
        code=f"{resource}_not_found",
        message=f"{resource.capitalize()} 不存在",
        status_code=status.HTTP_404_NOT_FOUND,
        data={"resource": resource, "id": resource_id} if resource_id else {"resource": resource},
    )


def raise_unauthorized(message: str = "Unauthorized - Invalid API Key") -> None:
    """抛出未授权错误"""
    raise AppError(
        code="unauthorized",
        message=message,
        status_code=status.HTTP_401_UNAUTHORIZED,
    )


def raise_bad_request(code: str, message: str, data: dict[str, Any] | None = None) -> None:
    """抛出请求参数错误"""
    raise AppError(
        code=code,
        message=message,
        status_code=status.HTTP_400_BAD_REQUEST,
        data=data,
    )


def raise_service_unavailable(
    service: str,
    message: str | None = None,
    *,
    cause: Exception | None = None,
) -> None:
    """抛出服务不可用错误"""
    raise AppError(
        code="service_unavailable",
        message=message or f"{service} 服务不可用",
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        data={"service": service},
    ) from cause
