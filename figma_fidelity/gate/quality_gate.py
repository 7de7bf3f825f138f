"""
质量门禁 — 把对比结果、样式差异与阈值转换为一个通过 / 不通过结论

流程：
  1. 硬门禁：面积差超限 / 可疑结果 / 需要重新评估 / 存在 high 样式差异
     任意一条触发即不通过，原因带 [CRITICAL] / [HIGH] 前缀
  2. 计算综合质量指数 CQI（0-100，越高越好）
  3. 无硬门禁违规时，再做阈值检查：样式覆盖率、像素差异率、平均 ΔE，
     面积差超过警告阈值只追加提示，不影响结论
"""
import logging
from typing import Optional, Sequence

from figma_fidelity.config.profiles import QualityGateProfile
from figma_fidelity.messages.compare_messages import CompareImageResult, ContentBasis, Size, SizeMode
from figma_fidelity.messages.gate_messages import (
    CQIParams,
    HardGateViolation,
    OriginalMetrics,
    QualityGateResult,
    QualityGateThresholds,
    SuspicionDetection,
    ViolationSeverity,
    ViolationType,
)
from figma_fidelity.messages.style_messages import Severity, StyleDiff, StyleSummary

logger = logging.getLogger(__name__)

LOW_PIXEL_DIFF = 0.03             # 低于该差异率的结果才会被怀疑
SUSPICIOUS_AREA_GAP = 0.2
FULL_COVERAGE = 0.95
EDGE_TOLERANCE_PX = 2

# 结构类布局属性，用于预设的 layoutHighCount 限额
LAYOUT_KEYS = frozenset(
    [
        "display",
        "position",
        "flex-direction",
        "flex-wrap",
        "justify-content",
        "align-items",
        "align-content",
        "grid-template-columns",
        "grid-template-rows",
        "grid-auto-flow",
        "place-items",
        "place-content",
    ]
)


# ============================================================
# 基础指标
# ============================================================


def calculate_area_gap(figma: Size, impl: Size) -> float:
    """面积差比例 |A1 − A2| / max(A1, A2)，取值 [0,1]"""
    area_figma = figma.width * figma.height
    area_impl = impl.width * impl.height
    larger = max(area_figma, area_impl)
    if larger == 0:
        return 0.0
    return abs(area_figma - area_impl) / larger


def detect_suspicions(result: CompareImageResult, style_diffs: Sequence[StyleDiff]) -> SuspicionDetection:
    """检测"差异率很低但对比条件可能失真"的情况"""
    reasons: list[str] = []
    dims = result.dimensions
    content_ratio = result.pixel_diff_ratio_content
    area_gap = calculate_area_gap(dims.figma, dims.impl)
    low_diff = content_ratio is not None and content_ratio < LOW_PIXEL_DIFF

    # 只有根元素有样式差异：子元素很可能没有被采集
    only_root = len(style_diffs) == 1 and style_diffs[0].selector in ("__self__", "self")
    if only_root and low_diff:
        reasons.append(
            "Only root style diff present despite low pixel difference - possible incomplete comparison"
        )

    if low_diff and area_gap > SUSPICIOUS_AREA_GAP and dims.adjusted:
        reasons.append(
            f"Low pixel diff ({content_ratio * 100:.2f}%) but high area gap "
            f"({area_gap * 100:.1f}%) - possible scale mismatch"
        )

    rect = dims.content_rect
    if (
        dims.adjusted
        and rect is not None
        and result.content_coverage is not None
        and result.content_coverage >= FULL_COVERAGE
    ):
        width, height = dims.compared.width, dims.compared.height
        touches_all_edges = (
            rect.x1 <= EDGE_TOLERANCE_PX
            and rect.y1 <= EDGE_TOLERANCE_PX
            and rect.x2 >= width - EDGE_TOLERANCE_PX
            and rect.y2 >= height - EDGE_TOLERANCE_PX
        )
        if touches_all_edges:
            reasons.append(
                "Content rect spans entire canvas despite adjusted dimensions - "
                "union basis inflating denominator"
            )

    return SuspicionDetection(detected=bool(reasons), reasons=reasons)


def should_re_evaluate(result: CompareImageResult, content_basis: ContentBasis | str) -> bool:
    """pad 模式 + union 口径下内容覆盖率接近 100% 且差异率很低时，建议改用 intersection 重跑"""
    dims = result.dimensions
    if dims.size_mode is not SizeMode.PAD or not dims.adjusted:
        return False
    if ContentBasis(content_basis) is not ContentBasis.UNION:
        return False
    return (
        result.content_coverage is not None
        and result.content_coverage > FULL_COVERAGE
        and result.pixel_diff_ratio_content is not None
        and result.pixel_diff_ratio_content < LOW_PIXEL_DIFF
    )


def calculate_cqi(
    pixel_diff_ratio: float,
    color_delta_e_avg: float,
    area_gap: float,
    has_high_severity: bool,
    thresholds: QualityGateThresholds,
    params: Optional[CQIParams] = None,
    pixel_diff_ratio_content: Optional[float] = None,
) -> int:
    """综合质量指数：100 − 加权惩罚。

    像素、颜色惩罚按各自阈值归一化并封顶为 1；面积差本身即为比例；
    存在 high 样式差异时严重程度惩罚为 1。

    Returns:
        0-100 的整数
    """
    params = params or CQIParams()
    effective_ratio = pixel_diff_ratio_content if pixel_diff_ratio_content is not None else pixel_diff_ratio

    if thresholds.pixel_diff_ratio:
        pixel_penalty = min(effective_ratio / thresholds.pixel_diff_ratio, 1.0)
    else:
        # 零容忍阈值：任何差异即满额惩罚
        pixel_penalty = 0.0 if effective_ratio == 0 else 1.0
    color_penalty = min(color_delta_e_avg / thresholds.delta_e, 1.0)
    severity_penalty = 1.0 if has_high_severity else 0.0

    total_penalty = 100 * (
        pixel_penalty * params.pixel_weight
        + color_penalty * params.color_weight
        + area_gap * params.area_weight
        + severity_penalty * params.severity_weight
    )
    return max(0, min(100, int(100 - total_penalty + 0.5)))


# ============================================================
# 门禁判定
# ============================================================


def evaluate_quality_gate(
    result: CompareImageResult,
    style_diffs: Sequence[StyleDiff],
    thresholds: QualityGateThresholds,
    content_basis: ContentBasis | str = ContentBasis.UNION,
    cqi_params: Optional[CQIParams] = None,
    style_summary: Optional[StyleSummary] = None,
) -> QualityGateResult:
    """执行质量门禁判定。

    Args:
        result: compare_images 的结果
        style_diffs: 样式差异（可以为空）
        thresholds: 门禁阈值，可由预设 QualityGateProfile.to_thresholds() 得到
        content_basis: 本次对比使用的内容口径
        cqi_params: CQI 权重
        style_summary: 样式还原度汇总，提供覆盖率时参与 min_style_coverage 检查

    Returns:
        QualityGateResult；reasons 为可读的失败原因与提示
    """
    basis = ContentBasis(content_basis)
    violations: list[HardGateViolation] = []
    reasons: list[str] = []

    area_gap = calculate_area_gap(result.dimensions.figma, result.dimensions.impl)

    # 1. 面积差
    if area_gap > thresholds.area_gap_critical:
        violations.append(
            HardGateViolation(
                type=ViolationType.AREA_GAP,
                reason=(
                    f"Area gap {area_gap * 100:.1f}% exceeds critical threshold "
                    f"{thresholds.area_gap_critical * 100:.1f}%"
                ),
                severity=ViolationSeverity.CRITICAL,
            )
        )

    # 2. 可疑结果
    suspicions = detect_suspicions(result, style_diffs)
    if suspicions.detected:
        violations.append(
            HardGateViolation(
                type=ViolationType.SUSPICION,
                reason="; ".join(suspicions.reasons),
                severity=ViolationSeverity.HIGH,
            )
        )

    # 3. 重新评估（只标记，不在此处重跑）
    re_evaluated = should_re_evaluate(result, basis)
    original_metrics = None
    if re_evaluated:
        original_metrics = OriginalMetrics(
            pixel_diff_ratio_content=result.pixel_diff_ratio_content,
            content_basis=basis.value,
        )
        violations.append(
            HardGateViolation(
                type=ViolationType.RE_EVALUATION,
                reason=(
                    "Pad mode with union basis and high content coverage detected - "
                    "intersection basis recommended"
                ),
                severity=ViolationSeverity.HIGH,
            )
        )

    # 4. high 样式差异
    has_high_severity = any(d.severity is Severity.HIGH for d in style_diffs)
    if has_high_severity:
        violations.append(
            HardGateViolation(
                type=ViolationType.HIGH_SEVERITY,
                reason="High severity style differences present",
                severity=ViolationSeverity.HIGH,
            )
        )

    color_delta_e_avg = result.color_delta_e_avg or 0.0
    content_ratio = result.pixel_diff_ratio_content
    effective_ratio = content_ratio if content_ratio is not None else result.pixel_diff_ratio

    cqi = calculate_cqi(
        pixel_diff_ratio=result.pixel_diff_ratio,
        color_delta_e_avg=color_delta_e_avg,
        area_gap=area_gap,
        has_high_severity=has_high_severity,
        thresholds=thresholds,
        params=cqi_params,
        pixel_diff_ratio_content=content_ratio,
    )

    passed = not violations
    if passed:
        if (
            style_summary is not None
            and thresholds.min_style_coverage is not None
            and style_summary.coverage < thresholds.min_style_coverage
        ):
            passed = False
            reasons.append(
                f"styleCoverage {style_summary.coverage * 100:.1f}% < "
                f"{thresholds.min_style_coverage * 100:.0f}%"
            )

        if effective_ratio > thresholds.pixel_diff_ratio:
            passed = False
            metric = "pixelDiffRatioContent" if content_ratio is not None else "pixelDiffRatio"
            reasons.append(
                f"{metric} {effective_ratio * 100:.2f}% > {thresholds.pixel_diff_ratio * 100:.2f}%"
            )

        if color_delta_e_avg > thresholds.delta_e:
            passed = False
            reasons.append(f"colorDeltaEAvg {color_delta_e_avg:.2f} > {thresholds.delta_e:.2f}")

        if area_gap > thresholds.area_gap_warning:
            reasons.append(
                f"Area gap {area_gap * 100:.1f}% exceeds warning threshold "
                f"{thresholds.area_gap_warning * 100:.1f}%"
            )
    else:
        for violation in violations:
            reasons.append(f"[{violation.severity.value.upper()}] {violation.reason}")
        logger.info("质量门禁硬性违规 %d 项: %s", len(violations), [v.type.value for v in violations])

    logger.info("质量门禁 %s (CQI=%d)", "通过" if passed else "未通过", cqi)
    return QualityGateResult(
        passed=passed,
        cqi=cqi,
        hard_gate_violations=violations,
        suspicions=suspicions,
        re_evaluated=re_evaluated,
        original_metrics=original_metrics,
        reasons=reasons,
        thresholds={
            "pixelDiffRatio": thresholds.pixel_diff_ratio,
            "deltaE": thresholds.delta_e,
        },
    )


# ============================================================
# 预设限额
# ============================================================


def count_layout_high(style_diffs: Sequence[StyleDiff]) -> int:
    """severity 为 high 且包含结构类布局属性的选择器数"""
    return sum(
        1
        for d in style_diffs
        if d.severity is Severity.HIGH and any(p in LAYOUT_KEYS for p in d.properties)
    )


def check_profile_limits(
    style_diffs: Sequence[StyleDiff],
    profile: QualityGateProfile,
    style_summary: Optional[StyleSummary] = None,
) -> list[str]:
    """检查预设的 high 数量限额，返回超限原因（为空表示通过）。

    high 总数优先取 style_summary.high_count（按属性计），否则按选择器计。
    """
    reasons: list[str] = []

    layout_high = count_layout_high(style_diffs)
    if layout_high > profile.max_layout_high_issues:
        reasons.append(f"layoutHighCount {layout_high} > {profile.max_layout_high_issues}")

    if style_summary is not None:
        high_count = style_summary.high_count
    else:
        high_count = sum(1 for d in style_diffs if d.severity is Severity.HIGH)
    if high_count > profile.max_high_severity_issues:
        reasons.append(f"highSeverityCount {high_count} > {profile.max_high_severity_issues}")

    return reasons

