"""质量门禁测试 — 硬门禁、可疑结果、重新评估、CQI、阈值与预设限额"""
import pytest

from figma_fidelity.config.profiles import get_quality_gate_profile
from figma_fidelity.gate.quality_gate import (
    calculate_area_gap,
    calculate_cqi,
    check_profile_limits,
    count_layout_high,
    detect_suspicions,
    evaluate_quality_gate,
    should_re_evaluate,
)
from figma_fidelity.messages.compare_messages import (
    CompareImageResult,
    ContentBasis,
    ContentRect,
    DimensionInfo,
    Size,
    SizeMode,
)
from figma_fidelity.messages.gate_messages import QualityGateThresholds, ViolationType
from figma_fidelity.messages.style_messages import PropertyDiff, Severity, StyleDiff, StyleSummary

T = QualityGateThresholds()


def _result(
    ratio=0.0,
    figma=Size(100, 100),
    impl=Size(100, 100),
    size_mode=SizeMode.STRICT,
    adjusted=False,
    content_ratio=None,
    coverage=None,
    rect=None,
    color_de=None,
):
    compared = Size(max(figma.width, impl.width), max(figma.height, impl.height))
    return CompareImageResult(
        pixel_diff_ratio=ratio,
        diff_pixel_count=int(ratio * compared.area),
        total_pixels=compared.area,
        diff_png_b64="",
        dimensions=DimensionInfo(
            figma=figma,
            impl=impl,
            compared=compared,
            size_mode=size_mode,
            adjusted=adjusted,
            content_rect=rect,
        ),
        pixel_diff_ratio_content=content_ratio,
        content_coverage=coverage,
        color_delta_e_avg=color_de,
    )


def _padded_full_coverage(content_ratio=0.01):
    """pad + union，内容区铺满画布"""
    return _result(
        figma=Size(100, 100),
        impl=Size(99, 99),
        size_mode=SizeMode.PAD,
        adjusted=True,
        content_ratio=content_ratio,
        coverage=1.0,
        rect=ContentRect(0, 0, 100, 100),
    )


class TestAreaGap:
    """面积差"""

    def test_ratio(self):
        """|A1 − A2| / max(A1, A2)"""
        assert calculate_area_gap(Size(100, 100), Size(100, 70)) == pytest.approx(0.3)
        assert calculate_area_gap(Size(10, 10), Size(10, 10)) == 0.0

    def test_zero_area(self):
        """两侧面积为 0 时为 0"""
        assert calculate_area_gap(Size(0, 0), Size(0, 10)) == 0.0

    def test_critical_violation(self):
        """面积差 30% 超过临界阈值 → 硬门禁失败"""
        gate = evaluate_quality_gate(_result(impl=Size(100, 70)), [], T)
        assert gate.passed is False
        assert gate.hard_gate_violations[0].type is ViolationType.AREA_GAP
        assert gate.reasons[0] == "[CRITICAL] Area gap 30.0% exceeds critical threshold 15.0%"

    def test_warning_only(self):
        """面积差超过警告阈值只追加提示"""
        gate = evaluate_quality_gate(_result(impl=Size(100, 90)), [], T)
        assert gate.passed is True
        assert gate.reasons == ["Area gap 10.0% exceeds warning threshold 5.0%"]


class TestSuspicions:
    """可疑结果检测"""

    def test_only_root_diff(self):
        """只有根元素有差异且差异率很低"""
        detection = detect_suspicions(_result(content_ratio=0.01), [StyleDiff(selector="self")])
        assert detection.detected
        assert "Only root style diff" in detection.reasons[0]

    def test_only_root_needs_low_diff(self):
        """没有内容区差异率时不怀疑"""
        assert not detect_suspicions(_result(), [StyleDiff(selector="self")]).detected

    def test_scale_mismatch(self):
        """低差异率 + 大面积差 + 尺寸已调整"""
        result = _result(impl=Size(100, 75), size_mode=SizeMode.PAD, adjusted=True, content_ratio=0.01)
        detection = detect_suspicions(result, [])
        assert detection.reasons == [
            "Low pixel diff (1.00%) but high area gap (25.0%) - possible scale mismatch"
        ]

    def test_content_rect_spans_canvas(self):
        """内容矩形铺满整个画布"""
        detection = detect_suspicions(_padded_full_coverage(), [])
        assert any("spans entire canvas" in r for r in detection.reasons)

    def test_suspicion_fails_gate(self):
        """可疑结果作为 high 硬门禁违规"""
        gate = evaluate_quality_gate(_result(content_ratio=0.01), [StyleDiff(selector="self")], T)
        assert gate.passed is False
        assert gate.suspicions.detected
        assert gate.reasons[0].startswith("[HIGH] Only root style diff")


class TestReEvaluation:
    """重新评估建议"""

    def test_pad_union_full_coverage(self):
        """pad + union + 高覆盖率 + 低差异率 → 建议改用 intersection"""
        result = _padded_full_coverage()
        assert should_re_evaluate(result, ContentBasis.UNION)
        gate = evaluate_quality_gate(result, [], T, content_basis="union")
        assert gate.re_evaluated
        assert gate.original_metrics.content_basis == "union"
        assert gate.original_metrics.pixel_diff_ratio_content == 0.01
        assert ViolationType.RE_EVALUATION in [v.type for v in gate.hard_gate_violations]

    def test_other_bases_do_not_re_evaluate(self):
        """非 union 口径或非 pad 模式不触发"""
        assert not should_re_evaluate(_padded_full_coverage(), "intersection")
        assert not should_re_evaluate(_result(content_ratio=0.0, coverage=1.0), "union")

    def test_high_content_diff_does_not_re_evaluate(self):
        """内容区差异率已经较高时不触发"""
        assert not should_re_evaluate(_padded_full_coverage(content_ratio=0.2), "union")


class TestCqi:
    """综合质量指数"""

    def test_perfect(self):
        """没有任何惩罚时为 100"""
        assert calculate_cqi(0.0, 0.0, 0.0, False, T) == 100

    def test_weighted_penalties(self):
        """像素、颜色满惩罚 + high 差异"""
        assert calculate_cqi(0.01, 5.0, 0.0, True, T) == 15

    def test_partial_pixel_penalty(self):
        """像素惩罚按阈值归一化"""
        assert calculate_cqi(0.005, 0.0, 0.0, False, T) == 70

    def test_prefers_content_ratio(self):
        """有内容区差异率时优先使用"""
        assert calculate_cqi(0.5, 0.0, 0.0, False, T, pixel_diff_ratio_content=0.0) == 100

    def test_zero_pixel_threshold(self):
        """像素阈值为 0 时，完全一致不扣分，任何差异扣满像素权重"""
        strict = QualityGateThresholds(pixel_diff_ratio=0.0)
        assert calculate_cqi(0.0, 0.0, 0.0, False, strict) == 100
        assert calculate_cqi(0.0001, 0.0, 0.0, False, strict) == 40
        assert calculate_cqi(0.5, 0.0, 0.0, False, strict, pixel_diff_ratio_content=0.0) == 100

    def test_clamped(self):
        """结果限制在 [0, 100]"""
        assert calculate_cqi(1.0, 100.0, 1.0, True, T) == 0


class TestThresholds:
    """阈值检查"""

    def test_clean_pass(self):
        """没有差异时通过"""
        gate = evaluate_quality_gate(_result(), [], T)
        assert gate.passed
        assert gate.cqi == 100
        assert gate.reasons == []
        assert gate.thresholds == {"pixelDiffRatio": 0.01, "deltaE": 5.0}

    def test_pixel_ratio_exceeded(self):
        """像素差异率超限"""
        gate = evaluate_quality_gate(_result(ratio=0.02), [], T)
        assert not gate.passed
        assert gate.hard_gate_violations == []
        assert gate.reasons == ["pixelDiffRatio 2.00% > 1.00%"]

    def test_content_ratio_named_in_reason(self):
        """有内容区差异率时以它为准"""
        gate = evaluate_quality_gate(_result(ratio=0.001, content_ratio=0.05), [], T)
        assert gate.reasons == ["pixelDiffRatioContent 5.00% > 1.00%"]

    def test_color_delta_exceeded(self):
        """平均色差超限"""
        gate = evaluate_quality_gate(_result(color_de=6.0), [], T)
        assert not gate.passed
        assert gate.reasons == ["colorDeltaEAvg 6.00 > 5.00"]

    def test_style_coverage(self):
        """样式覆盖率低于下限"""
        thresholds = QualityGateThresholds(min_style_coverage=0.8)
        gate = evaluate_quality_gate(_result(), [], thresholds, style_summary=StyleSummary(coverage=0.5))
        assert not gate.passed
        assert gate.reasons == ["styleCoverage 50.0% < 80%"]

    def test_high_severity_diff(self):
        """存在 high 样式差异即硬门禁失败"""
        diffs = [StyleDiff(selector="a", severity=Severity.HIGH), StyleDiff(selector="b")]
        gate = evaluate_quality_gate(_result(), diffs, T)
        assert not gate.passed
        assert gate.reasons == ["[HIGH] High severity style differences present"]
        assert gate.cqi == 95

    def test_to_dict(self):
        """序列化使用 pass 键"""
        data = evaluate_quality_gate(_result(), [], T).to_dict()
        assert data["pass"] is True
        assert "originalMetrics" not in data


class TestProfileLimits:
    """预设限额"""

    def _layout_high(self, selector):
        return StyleDiff(
            selector=selector,
            properties={"display": PropertyDiff(actual="block", expected="flex", delta=1.0, unit="categorical")},
            severity=Severity.HIGH,
        )

    def test_count_layout_high(self):
        """只统计含结构布局属性的 high 差异"""
        diffs = [self._layout_high("a"), StyleDiff(selector="b", severity=Severity.HIGH)]
        assert count_layout_high(diffs) == 1

    def test_strict_profile_rejects_any_high(self):
        """component/strict 不允许任何 high"""
        profile = get_quality_gate_profile("component/strict")
        reasons = check_profile_limits([self._layout_high("a")], profile)
        assert reasons == ["layoutHighCount 1 > 0", "highSeverityCount 1 > 0"]

    def test_lenient_profile_allows_some(self):
        """lenient 允许少量 high"""
        profile = get_quality_gate_profile("lenient")
        assert check_profile_limits([self._layout_high("a"), self._layout_high("b")], profile) == []

    def test_summary_high_count_preferred(self):
        """提供样式汇总时按属性级 high 数量计"""
        profile = get_quality_gate_profile("page-vs-component")
        reasons = check_profile_limits([], profile, StyleSummary(high_count=3))
        assert reasons == ["highSeverityCount 3 > 2"]
