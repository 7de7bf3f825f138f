"""
截图采集接口 — 浏览器采集器的输入输出约定

对比核心只消费采集结果（截图 + 样式表 + 元数据），
不关心采集方式（URL / HTML、视口、DPR、超时等）。
"""
from dataclasses import dataclass, field
from typing import Optional, Protocol

from figma_fidelity.messages.style_messages import ElementMeta


@dataclass
class CaptureOptions:
    """采集参数，url 与 html 二选一"""

    selector: str
    url: Optional[str] = None
    html: Optional[str] = None
    viewport_width: int = 1440
    viewport_height: int = 900
    dpr: float = 2
    max_children: int = 24
    idle_wait_ms: int = 150
    reuse_browser: bool = False


@dataclass
class BoundingBox:
    x: float
    y: float
    width: float
    height: float


@dataclass
class CaptureResult:
    """采集结果

    styles 的键为 `__self__`、`__self__ > :nth-child(n)` 或 `[data-testid="..."]`。
    """

    impl_png: bytes
    styles: dict[str, dict[str, str]]
    box: BoundingBox
    meta: dict[str, ElementMeta] = field(default_factory=dict)


class BrowserAdapter(Protocol):
    """浏览器自动化适配器（Playwright 等）"""

    async def capture_target(self, options: CaptureOptions) -> CaptureResult:
        ...
