"""
图片对比相关数据类 — 尺寸处理模式、尺寸信息、内容区域、对比结果
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from figma_fidelity.messages.style_messages import StyleDiff, StyleSummary


# ============================================================
# 枚举
# ============================================================


class SizeMode(Enum):
    """尺寸不一致时的处理方式"""

    STRICT = "strict"    # 尺寸必须完全一致，否则报错
    PAD = "pad"          # 以背景色补齐到较大尺寸
    CROP = "crop"        # 裁剪到公共区域
    SCALE = "scale"      # 最近邻缩放实现图到设计稿尺寸


class ImageAlignment(Enum):
    """补齐 / 裁剪时原图在画布中的对齐位置"""

    CENTER = "center"
    TOP_LEFT = "top-left"
    TOP = "top"
    LEFT = "left"
    RIGHT = "right"
    BOTTOM = "bottom"
    TOP_RIGHT = "top-right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM_RIGHT = "bottom-right"


class ContentBasis(Enum):
    """内容区域差异率的分母口径"""

    UNION = "union"
    INTERSECTION = "intersection"
    FIGMA = "figma"
    IMPL = "impl"


# ============================================================
# 尺寸 / 区域
# ============================================================


@dataclass(frozen=True)
class Size:
    width: int
    height: int

    @property
    def area(self) -> int:
        return self.width * self.height

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"

    def to_dict(self) -> dict[str, int]:
        return {"width": self.width, "height": self.height}


@dataclass(frozen=True)
class ContentRect:
    """补齐画布上真实内容所在的矩形 [x1, x2) × [y1, y2)"""

    x1: int
    y1: int
    x2: int
    y2: int

    @property
    def width(self) -> int:
        return max(0, self.x2 - self.x1)

    @property
    def height(self) -> int:
        return max(0, self.y2 - self.y1)

    @property
    def area(self) -> int:
        return self.width * self.height

    def to_dict(self) -> dict[str, int]:
        return {"x1": self.x1, "y1": self.y1, "x2": self.x2, "y2": self.y2}


@dataclass(frozen=True)
class DimensionInfo:
    """尺寸信息：原始尺寸、实际对比尺寸、处理模式"""

    figma: Size
    impl: Size
    compared: Size
    size_mode: SizeMode
    adjusted: bool
    content_rect: Optional[ContentRect] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "figma": self.figma.to_dict(),
            "impl": self.impl.to_dict(),
            "compared": self.compared.to_dict(),
            "sizeMode": self.size_mode.value,
            "adjusted": self.adjusted,
        }
        if self.content_rect is not None:
            data["contentRect"] = self.content_rect.to_dict()
        return data


# ============================================================
# 对比结果
# ============================================================


@dataclass
class CompareImageResult:
    """compare_images 的完整输出"""

    pixel_diff_ratio: float
    diff_pixel_count: int
    total_pixels: int
    diff_png_b64: str
    dimensions: DimensionInfo
    pixel_diff_ratio_content: Optional[float] = None
    content_coverage: Optional[float] = None
    content_pixels: Optional[int] = None
    ssim: Optional[float] = None
    style_diffs: Optional[list[StyleDiff]] = None
    color_delta_e_avg: Optional[float] = None
    style_fidelity_score: Optional[int] = None
    style_coverage: Optional[float] = None
    style_summary: Optional[StyleSummary] = None

    def to_dict(self, include_image: bool = True) -> dict[str, Any]:
        data: dict[str, Any] = {
            "pixelDiffRatio": self.pixel_diff_ratio,
            "diffPixelCount": self.diff_pixel_count,
            "totalPixels": self.total_pixels,
            "dimensions": self.dimensions.to_dict(),
        }
        if include_image:
            data["diffPngB64"] = self.diff_png_b64
        for key, value in (
            ("pixelDiffRatioContent", self.pixel_diff_ratio_content),
            ("contentCoverage", self.content_coverage),
            ("contentPixels", self.content_pixels),
            ("ssim", self.ssim),
            ("colorDeltaEAvg", self.color_delta_e_avg),
            ("styleFidelityScore", self.style_fidelity_score),
            ("styleCoverage", self.style_coverage),
        ):
            if value is not None:
                data[key] = value
        if self.style_diffs is not None:
            data["styleDiffs"] = [d.to_dict() for d in self.style_diffs]
        return data


@dataclass
class PixelmatchOptions:
    """像素匹配调参"""

    threshold: float = 0.1
    include_aa: bool = False
