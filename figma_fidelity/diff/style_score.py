"""
样式还原度评分（SFS，Style Fidelity Score）

把每个属性差异按容差归一化到 [0,1]（0 = 一致，1 = 达到或超出容差），
再按类别加权平均得到 0-100 的分数：SFS = round(100 × (1 − 加权平均偏差))。
"""
import logging
from collections import OrderedDict
from typing import Mapping, Optional

from figma_fidelity.diff.scoring import AUXILIARY_PREFIX, leading_float
from figma_fidelity.messages.style_messages import (
    CategoryBreakdown,
    DiffThresholds,
    NormalizedStyleDiff,
    StyleDiff,
    StyleSummary,
)

logger = logging.getLogger(__name__)

DEFAULT_WEIGHTS: dict[str, float] = {
    "color": 1.2,
    "spacing": 1.0,
    "typography": 1.0,
    "layout": 1.2,
    "radius": 0.8,
    "border": 0.8,
    "shadow": 0.8,
    "pixel": 1.0,
}

_LAYOUT_EXACT = frozenset(["display", "position"])


def infer_category(prop: str) -> str:
    """按属性名推断类别；判断顺序决定归属（如 border-color 归为 color）"""
    p = prop.lower()
    if "color" in p or "background" in p or p in ("fill", "stroke"):
        return "color"
    if (
        p in _LAYOUT_EXACT
        or "flex-" in p
        or p.startswith(("justify-", "align-"))
        or "grid-" in p
        or "place-" in p
    ):
        return "layout"
    if "padding" in p or "margin" in p or p == "inset" or "gap" in p:
        return "spacing"
    if "font" in p or "line-height" in p or "letter-spacing" in p or "text" in p:
        return "typography"
    if "radius" in p:
        return "radius"
    if "border" in p:
        return "border"
    if "shadow" in p:
        return "shadow"
    return "other"


def _px_tolerance_ratio(prop: str, category: str, t: DiffThresholds) -> float:
    if category == "spacing":
        return t.layout_gap if "gap" in prop else t.spacing
    if category == "radius":
        return t.radius
    if category == "border" and "width" in prop:
        return t.border_width
    if category == "shadow" and "blur" in prop:
        return t.shadow_blur
    if category == "typography":
        return 0.08
    if "width" in prop or "height" in prop:
        return t.dimension
    return 0.15


def normalize_property_diff(
    prop: str,
    actual: str,
    expected: str,
    delta: float,
    unit: str,
    thresholds: DiffThresholds,
) -> float:
    """单个属性偏差归一化到 [0,1]"""
    category = infer_category(prop)

    if unit == "ΔE":
        tolerance = thresholds.delta_e
        if category == "shadow":
            tolerance += thresholds.shadow_color_extra_de
        return min(abs(delta) / tolerance, 1.0)

    if unit == "px":
        ratio = _px_tolerance_ratio(prop, category, thresholds)
        expected_value = leading_float(expected) or 0.0
        tolerance_px = max(1.0, abs(expected_value * ratio))
        return min(abs(delta) / tolerance_px, 1.0)

    if unit == "categorical":
        return 1.0 if actual != expected else 0.0

    return 0.0


def normalize_style_diffs(
    style_diffs: list[StyleDiff],
    thresholds: Optional[DiffThresholds] = None,
) -> list[NormalizedStyleDiff]:
    """展开所有选择器的属性差异并归一化；缺少实际值/期望值/差值/单位的条目不参与评分"""
    thresholds = thresholds or DiffThresholds()
    normalized: list[NormalizedStyleDiff] = []
    for diff in style_diffs:
        for prop, data in diff.properties.items():
            if data.actual is None or data.expected is None or data.delta is None or data.unit is None:
                continue
            normalized.append(
                NormalizedStyleDiff(
                    selector=diff.selector,
                    property=prop,
                    severity=diff.severity,
                    category=infer_category(prop),
                    normalized_score=normalize_property_diff(
                        prop, data.actual, data.expected, data.delta, data.unit, thresholds
                    ),
                    actual=data.actual,
                    expected=data.expected,
                    delta=data.delta,
                    unit=data.unit,
                )
            )
    return normalized


def calculate_style_fidelity_score(
    normalized: list[NormalizedStyleDiff],
    weights: Optional[Mapping[str, float]] = None,
    expected_property_count: Optional[int] = None,
) -> StyleSummary:
    """由归一化差异计算 SFS、类别明细与覆盖率。

    Args:
        normalized: normalize_style_diffs 的结果
        weights: 类别权重覆盖项，未给出的类别使用 DEFAULT_WEIGHTS，未知类别权重为 1.0
        expected_property_count: 有期望值的属性总数，用于计算覆盖率

    Returns:
        StyleSummary；没有可评分条目时 SFS 为 100
    """
    final_weights = {**DEFAULT_WEIGHTS, **(weights or {})}

    compared = len(normalized)
    if expected_property_count:
        coverage = min(1.0, compared / expected_property_count)
    else:
        coverage = 1.0 if compared > 0 else 0.0

    if not normalized:
        return StyleSummary(style_fidelity_score=100, coverage=coverage)

    by_category: "OrderedDict[str, list[NormalizedStyleDiff]]" = OrderedDict()
    for item in normalized:
        by_category.setdefault(item.category, []).append(item)

    breakdown: list[CategoryBreakdown] = []
    weighted_sum = 0.0
    total_weight = 0.0
    for category, items in by_category.items():
        avg = sum(i.normalized_score for i in items) / len(items)
        weight = final_weights.get(category, 1.0)
        breakdown.append(
            CategoryBreakdown(category=category, count=len(items), avg_normalized_score=avg, weight=weight)
        )
        weighted_sum += avg * weight * len(items)
        total_weight += weight * len(items)

    avg_weighted = weighted_sum / total_weight if total_weight > 0 else 0.0

    autofixable = sum(
        1
        for i in normalized
        if (i.category == "color" and i.unit == "ΔE") or (i.unit == "px" and i.normalized_score < 0.3)
    )

    return StyleSummary(
        style_fidelity_score=int(100 * (1 - avg_weighted) + 0.5),
        high_count=sum(1 for i in normalized if i.severity.value == "high"),
        medium_count=sum(1 for i in normalized if i.severity.value == "medium"),
        low_count=sum(1 for i in normalized if i.severity.value == "low"),
        total_diffs=compared,
        category_breakdown=breakdown,
        coverage=coverage,
        autofixable_count=autofixable,
    )


def compute_style_summary(
    style_diffs: list[StyleDiff],
    thresholds: Optional[DiffThresholds] = None,
    weights: Optional[Mapping[str, float]] = None,
) -> StyleSummary:
    """样式差异 → SFS 汇总（阴影偏移等辅助条目不计入期望属性数）"""
    expected_count = sum(
        1
        for diff in style_diffs
        for prop, data in diff.properties.items()
        if not prop.startswith(AUXILIARY_PREFIX) and data.expected is not None
    )
    summary = calculate_style_fidelity_score(
        normalize_style_diffs(style_diffs, thresholds), weights, expected_count
    )
    logger.debug(
        "SFS=%d coverage=%.2f diffs=%d", summary.style_fidelity_score, summary.coverage, summary.total_diffs
    )
    return summary
