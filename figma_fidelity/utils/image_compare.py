"""
图片对比工具 — 设计稿截图 vs 实现截图

流程：
  1. 解码两张 PNG（base64），把半透明像素按补齐色压平为不透明
  2. 尺寸不一致时按 size_mode 处理：strict 报错 / pad 补齐 / crop 裁剪 / scale 最近邻缩放
  3. pixelmatch 逐像素感知对比，得到差异像素数与差异图
  4. pad 模式下按 content_basis 计算内容区域，得到内容区域差异率
  5. 可选：SSIM 结构相似度、样式差异、平均色差、样式还原度（SFS）
"""
import base64
import binascii
import io
import logging
from typing import Any, Mapping, Optional

import numpy as np
from PIL import Image, UnidentifiedImageError
from skimage.metrics import structural_similarity as ssim

from figma_fidelity.diff.builder import build_style_diffs
from figma_fidelity.diff.style_score import compute_style_summary
from figma_fidelity.messages.capture_messages import CaptureResult
from figma_fidelity.messages.compare_messages import (
    CompareImageResult,
    ContentBasis,
    ContentRect,
    DimensionInfo,
    ImageAlignment,
    PixelmatchOptions,
    Size,
    SizeMode,
)
from figma_fidelity.messages.errors import ComparisonError
from figma_fidelity.messages.style_messages import RGB, DiffOptions, ElementMeta, StyleDiff, TokenMap
from figma_fidelity.utils.normalize import parse_css_color_to_rgb
from figma_fidelity.utils.pixelmatch import pixelmatch

logger = logging.getLogger(__name__)

WHITE = RGB(255, 255, 255)

# SSIM 默认窗口 7×7，更小的图无法计算
SSIM_MIN_SIDE = 7

# 参与平均色差统计的属性
COLOR_DELTA_PROPERTIES = ("color", "background-color", "border-color", "box-shadow")

PadColor = str | RGB | tuple[int, int, int]


# ============================================================
# 编解码
# ============================================================


def decode_png_b64(data_b64: str, label: str) -> np.ndarray:
    """base64 PNG → uint8 RGBA 数组 (H, W, 4)。

    Raises:
        ComparisonError: 数据无法解码
    """
    try:
        raw = base64.b64decode(data_b64, validate=False)
        with Image.open(io.BytesIO(raw)) as img:
            rgba = img.convert("RGBA")
        return np.array(rgba, dtype=np.uint8)
    except (binascii.Error, ValueError, UnidentifiedImageError, OSError) as e:
        raise ComparisonError(
            f"Failed to decode {label} image: {e}",
            code=ComparisonError.INVALID_IMAGE,
            details={"image": label},
        ) from e


def encode_png_b64(pixels: np.ndarray) -> str:
    buffer = io.BytesIO()
    Image.fromarray(pixels).save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode("ascii")


def _size_of(pixels: np.ndarray) -> Size:
    return Size(width=int(pixels.shape[1]), height=int(pixels.shape[0]))


# ============================================================
# 尺寸处理
# ============================================================


def resolve_pad_color(
    pad_color: PadColor, styles: Optional[Mapping[str, Mapping[str, str]]] = None
) -> RGB:
    """确定补齐色：显式颜色直接使用；'auto' 取根元素 background-color，失败则为白色。"""
    if isinstance(pad_color, RGB):
        return RGB(pad_color.r, pad_color.g, pad_color.b)
    if isinstance(pad_color, tuple):
        r, g, b = pad_color[:3]
        return RGB(int(r), int(g), int(b))
    if pad_color != "auto":
        parsed = parse_css_color_to_rgb(pad_color)
        return RGB(parsed.r, parsed.g, parsed.b) if parsed else WHITE

    background = ((styles or {}).get("__self__") or {}).get("background-color")
    rgb = parse_css_color_to_rgb(background) if background else None
    if rgb is not None:
        return RGB(rgb.r, rgb.g, rgb.b)
    return WHITE


def flatten_to_opaque(pixels: np.ndarray, background: RGB) -> np.ndarray:
    """把非完全不透明的像素与背景色混合：out = src·a + bg·(1-a)，alpha 置 255。"""
    out = pixels.copy()
    translucent = out[..., 3] < 255
    if not translucent.any():
        return out

    alpha = out[translucent, 3:4].astype(np.float64) / 255.0
    src = out[translucent, :3].astype(np.float64)
    bg = np.array([background.r, background.g, background.b], dtype=np.float64)
    blended = np.floor(src * alpha + bg * (1.0 - alpha) + 0.5)
    out[translucent, :3] = np.clip(blended, 0, 255).astype(np.uint8)
    out[translucent, 3] = 255
    return out


def calculate_offset(size: Size, container: Size, alignment: ImageAlignment) -> tuple[int, int]:
    """计算 size 在 container 中按对齐方式放置时的左上角偏移 (x, y)。"""
    center_x = (container.width - size.width) // 2
    center_y = (container.height - size.height) // 2
    end_x = container.width - size.width
    end_y = container.height - size.height

    offsets = {
        ImageAlignment.CENTER: (center_x, center_y),
        ImageAlignment.TOP_LEFT: (0, 0),
        ImageAlignment.TOP: (center_x, 0),
        ImageAlignment.LEFT: (0, center_y),
        ImageAlignment.RIGHT: (end_x, center_y),
        ImageAlignment.BOTTOM: (center_x, end_y),
        ImageAlignment.TOP_RIGHT: (end_x, 0),
        ImageAlignment.BOTTOM_LEFT: (0, end_y),
        ImageAlignment.BOTTOM_RIGHT: (end_x, end_y),
    }
    return offsets[alignment]


def pad_image(pixels: np.ndarray, target: Size, background: RGB, alignment: ImageAlignment) -> np.ndarray:
    canvas = np.empty((target.height, target.width, 4), dtype=np.uint8)
    canvas[..., 0] = background.r
    canvas[..., 1] = background.g
    canvas[..., 2] = background.b
    canvas[..., 3] = 255

    x, y = calculate_offset(_size_of(pixels), target, alignment)
    h, w = pixels.shape[:2]
    canvas[y:y + h, x:x + w] = pixels
    return canvas


def crop_image(pixels: np.ndarray, target: Size, alignment: ImageAlignment) -> np.ndarray:
    x, y = calculate_offset(target, _size_of(pixels), alignment)
    return pixels[y:y + target.height, x:x + target.width].copy()


def scale_image(pixels: np.ndarray, target: Size) -> np.ndarray:
    """最近邻缩放：src = floor(dst × 原尺寸 / 目标尺寸)"""
    src_h, src_w = pixels.shape[:2]
    src_x = (np.arange(target.width) * src_w) // target.width
    src_y = (np.arange(target.height) * src_h) // target.height
    return pixels[src_y][:, src_x].copy()


# ============================================================
# 内容区域
# ============================================================


def _rect_at(size: Size, canvas: Size, alignment: ImageAlignment) -> ContentRect:
    x, y = calculate_offset(size, canvas, alignment)
    return ContentRect(x1=x, y1=y, x2=x + size.width, y2=y + size.height)


def calculate_content_rect(
    figma: Size, impl: Size, canvas: Size, alignment: ImageAlignment, basis: ContentBasis
) -> ContentRect:
    """按内容口径计算补齐画布上的内容矩形。

    Args:
        figma: 设计稿原始尺寸
        impl: 实现截图原始尺寸
        canvas: 补齐后的画布尺寸
        alignment: 补齐时的对齐方式
        basis: union 并集 / intersection 交集 / figma / impl

    Returns:
        内容矩形；交集为空时宽高为 0
    """
    figma_rect = _rect_at(figma, canvas, alignment)
    impl_rect = _rect_at(impl, canvas, alignment)

    if basis is ContentBasis.UNION:
        return ContentRect(
            x1=min(figma_rect.x1, impl_rect.x1),
            y1=min(figma_rect.y1, impl_rect.y1),
            x2=max(figma_rect.x2, impl_rect.x2),
            y2=max(figma_rect.y2, impl_rect.y2),
        )
    if basis is ContentBasis.INTERSECTION:
        return ContentRect(
            x1=max(figma_rect.x1, impl_rect.x1),
            y1=max(figma_rect.y1, impl_rect.y1),
            x2=min(figma_rect.x2, impl_rect.x2),
            y2=min(figma_rect.y2, impl_rect.y2),
        )
    if basis is ContentBasis.FIGMA:
        return figma_rect
    return impl_rect


def count_diff_pixels_in_rect(diff_mask: np.ndarray, rect: ContentRect) -> int:
    if rect.area == 0:
        return 0
    return int(diff_mask[rect.y1:rect.y2, rect.x1:rect.x2].sum())


# ============================================================
# 结构相似度
# ============================================================


def structural_similarity(figma: np.ndarray, impl: np.ndarray) -> Optional[float]:
    """两张同尺寸画布的灰度 SSIM；任一边小于 7 像素时返回 None"""
    if min(figma.shape[0], figma.shape[1]) < SSIM_MIN_SIDE:
        return None
    arr1 = np.array(Image.fromarray(figma).convert("L"))
    arr2 = np.array(Image.fromarray(impl).convert("L"))
    return float(ssim(arr1, arr2))


# ============================================================
# 样式差异汇总
# ============================================================


def average_color_delta_e(style_diffs: list[StyleDiff]) -> Optional[float]:
    """颜色类属性（含阴影颜色）非零 ΔE 的平均值；没有时返回 None"""
    deltas = []
    for diff in style_diffs:
        for prop in COLOR_DELTA_PROPERTIES:
            prop_diff = diff.properties.get(prop)
            if prop_diff and prop_diff.unit == "ΔE" and prop_diff.delta:
                deltas.append(prop_diff.delta)
    if not deltas:
        return None
    return sum(deltas) / len(deltas)


# ============================================================
# 对比入口
# ============================================================


def compare_images(
    figma_png_b64: str,
    impl_png_b64: str,
    size_mode: SizeMode | str = SizeMode.STRICT,
    align: ImageAlignment | str = ImageAlignment.CENTER,
    pad_color: PadColor = "auto",
    content_basis: ContentBasis | str = ContentBasis.UNION,
    pixelmatch_options: Optional[PixelmatchOptions] = None,
    styles: Optional[dict[str, dict[str, str]]] = None,
    expected_spec: Optional[dict[str, dict[str, str]]] = None,
    meta: Optional[Mapping[str, ElementMeta | dict[str, Any]]] = None,
    tokens: Optional[TokenMap | dict[str, Any]] = None,
    diff_options: Optional[DiffOptions] = None,
) -> CompareImageResult:
    """对比设计稿与实现截图，返回像素差异指标（可选附带样式差异）。

    Args:
        figma_png_b64: 设计稿 PNG（base64）
        impl_png_b64: 实现截图 PNG（base64）
        size_mode: 尺寸不一致时的处理方式，默认 strict
        align: pad / crop 时的对齐方式，默认 center
        pad_color: 'auto' 或显式颜色（RGB / (r, g, b) / CSS 颜色字符串）
        content_basis: 内容区域差异率的分母口径，默认 union
        pixelmatch_options: 匹配阈值与抗锯齿开关
        styles: 实现侧采集到的样式表（选择器 → 属性 → 值）
        expected_spec: 期望样式表，与 styles 同时提供时计算样式差异
        meta: 选择器 → DOM 元数据
        tokens: 设计令牌表
        diff_options: 样式对比选项（容差 / 忽略属性 / 权重 / 阶段）

    Returns:
        CompareImageResult

    Raises:
        ComparisonError: 图片无法解码，或 strict 模式下尺寸不一致
    """
    size_mode = SizeMode(size_mode)
    align = ImageAlignment(align)
    content_basis = ContentBasis(content_basis)
    options = pixelmatch_options or PixelmatchOptions()

    figma = decode_png_b64(figma_png_b64, "figma")
    impl = decode_png_b64(impl_png_b64, "implementation")
    figma_size = _size_of(figma)
    impl_size = _size_of(impl)

    background = resolve_pad_color(pad_color, styles)
    figma = flatten_to_opaque(figma, background)
    impl = flatten_to_opaque(impl, background)

    adjusted = False
    if figma_size != impl_size:
        if size_mode is SizeMode.STRICT:
            raise ComparisonError(
                f"Image dimensions do not match: "
                f"Figma ({figma_size}) vs Implementation ({impl_size})",
                code=ComparisonError.DIMENSION_MISMATCH,
                details={"figma": figma_size.to_dict(), "impl": impl_size.to_dict()},
            )

        adjusted = True
        if size_mode is SizeMode.PAD:
            target = Size(
                max(figma_size.width, impl_size.width), max(figma_size.height, impl_size.height)
            )
            if figma_size != target:
                figma = pad_image(figma, target, background, align)
            if impl_size != target:
                impl = pad_image(impl, target, background, align)
        elif size_mode is SizeMode.CROP:
            target = Size(
                min(figma_size.width, impl_size.width), min(figma_size.height, impl_size.height)
            )
            if figma_size != target:
                figma = crop_image(figma, target, align)
            if impl_size != target:
                impl = crop_image(impl, target, align)
        else:
            impl = scale_image(impl, figma_size)

        logger.debug(
            "尺寸不一致 %s vs %s，%s 处理后对比尺寸 %s",
            figma_size, impl_size, size_mode.value, _size_of(figma),
        )

    compared = _size_of(figma)
    total_pixels = compared.area

    diff_count, diff_rgba, diff_mask = pixelmatch(
        figma, impl, threshold=options.threshold, include_aa=options.include_aa
    )
    pixel_diff_ratio = diff_count / total_pixels if total_pixels > 0 else 0.0

    content_rect = None
    content_pixels = None
    content_coverage = None
    pixel_diff_ratio_content = None
    if size_mode is SizeMode.PAD and adjusted:
        content_rect = calculate_content_rect(figma_size, impl_size, compared, align, content_basis)
        content_pixels = content_rect.area
        content_coverage = content_pixels / total_pixels if total_pixels > 0 else 0.0
        if content_pixels > 0:
            pixel_diff_ratio_content = (
                count_diff_pixels_in_rect(diff_mask, content_rect) / content_pixels
            )

    result = CompareImageResult(
        pixel_diff_ratio=pixel_diff_ratio,
        diff_pixel_count=diff_count,
        total_pixels=total_pixels,
        diff_png_b64=encode_png_b64(diff_rgba),
        dimensions=DimensionInfo(
            figma=figma_size,
            impl=impl_size,
            compared=compared,
            size_mode=size_mode,
            adjusted=adjusted,
            content_rect=content_rect,
        ),
        pixel_diff_ratio_content=pixel_diff_ratio_content,
        content_coverage=content_coverage,
        content_pixels=content_pixels,
        ssim=structural_similarity(figma, impl),
    )

    if styles and expected_spec:
        diff_options = diff_options or DiffOptions()
        style_diffs = build_style_diffs(
            styles, expected_spec, options=diff_options, tokens=tokens, meta=meta
        )
        summary = compute_style_summary(
            style_diffs, thresholds=diff_options.thresholds, weights=diff_options.weights
        )
        result.style_diffs = style_diffs
        result.color_delta_e_avg = average_color_delta_e(style_diffs)
        result.style_fidelity_score = summary.style_fidelity_score
        result.style_coverage = summary.coverage
        result.style_summary = summary

    logger.debug(
        "像素差异 %d/%d (%.4f)，尺寸处理 %s", diff_count, total_pixels, pixel_diff_ratio, size_mode.value
    )
    return result


def compare_capture(
    figma_png_b64: str,
    capture: CaptureResult,
    expected_spec: Optional[dict[str, dict[str, str]]] = None,
    tokens: Optional[TokenMap | dict[str, Any]] = None,
    **kwargs: Any,
) -> CompareImageResult:
    """用采集器的输出（截图 + 样式 + 元数据）直接对比设计稿。"""
    return compare_images(
        figma_png_b64,
        base64.b64encode(capture.impl_png).decode("ascii"),
        styles=capture.styles,
        expected_spec=expected_spec,
        meta=capture.meta,
        tokens=tokens,
        **kwargs,
    )
