"""
错误类型 — 对比引擎 / 配置 / 截图采集三类异常，与业务逻辑解耦

只有像素对比引擎会抛出 ComparisonError；样式对比、质量门禁、修复建议
对合法输入永不抛异常，无法判断的字段以 None 表示。
"""
from typing import Any, Optional


class FidelityError(Exception):
    """所有还原度检查异常的基类，携带机器可读的错误码。"""

    code: str = "FIDELITY_ERROR"

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class ComparisonError(FidelityError):
    """图片对比失败（尺寸不匹配 / 图片无法解码 / 其他对比错误）"""

    DIMENSION_MISMATCH = "COMPARISON_DIMENSION_MISMATCH"
    INVALID_IMAGE = "COMPARISON_INVALID_IMAGE"
    FAILED = "COMPARISON_FAILED"

    code = FAILED

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code)
        self.details = details

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.details:
            data["details"] = self.details
        return data


class ConfigError(FidelityError):
    """配置校验失败或取值非法"""

    VALIDATION_FAILED = "CONFIG_VALIDATION_FAILED"
    INVALID_VALUE = "CONFIG_INVALID_VALUE"

    code = VALIDATION_FAILED

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        field: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code)
        self.field = field
        self.details = details

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.field:
            data["field"] = self.field
        if self.details:
            data["details"] = self.details
        return data


class CaptureError(FidelityError):
    """外部截图采集器报告的错误（本包只定义接口，不实现浏览器采集）"""

    MISSING_INPUT = "CAPTURE_MISSING_INPUT"
    ELEMENT_NOT_FOUND = "CAPTURE_ELEMENT_NOT_FOUND"
    TIMEOUT = "CAPTURE_TIMEOUT"
    FAILED = "CAPTURE_FAILED"

    code = FAILED

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        selector: Optional[str] = None,
        url: Optional[str] = None,
    ) -> None:
        super().__init__(message, code)
        self.selector = selector
        self.url = url
