"""
还原度检查编排器 — 分阶段执行

4 个阶段：
  Stage 1: 图片对比 — 尺寸处理 + 像素差异 (+ 样式差异 / SFS)
  Stage 2: 样式汇总 — 覆盖率、high 数量
  Stage 3: 质量门禁 — 硬门禁 + 阈值检查 + 预设限额
  Stage 4: 修复建议 — 取优先级最高的前 N 个差异

CLI 与智能体工具共用这一流程，只在输出形式上不同。
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from figma_fidelity.config.profiles import QualityGateProfile, get_quality_gate_profile
from figma_fidelity.config.schema import ComparisonConfig
from figma_fidelity.gate.fix_recommendations import generate_fix_recommendations
from figma_fidelity.gate.quality_gate import check_profile_limits, evaluate_quality_gate
from figma_fidelity.messages.compare_messages import CompareImageResult, PixelmatchOptions
from figma_fidelity.messages.gate_messages import FixRecommendation, QualityGateResult
from figma_fidelity.messages.style_messages import StyleSummary
from figma_fidelity.utils.image_compare import compare_images
from figma_fidelity.utils.input_parser import CompareRequest, parse_pad_color

logger = logging.getLogger(__name__)


@dataclass
class FidelityReport:
    """一次完整检查的结果"""

    compare: CompareImageResult
    gate: QualityGateResult
    style_summary: Optional[StyleSummary] = None
    recommendations: list[FixRecommendation] = field(default_factory=list)
    profile_name: Optional[str] = None
    profile_reasons: list[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.gate.passed and not self.profile_reasons

    def to_dict(self, include_image: bool = False) -> dict[str, Any]:
        data: dict[str, Any] = {
            "pass": self.passed,
            "metrics": self.compare.to_dict(include_image=include_image),
            "qualityGate": self.gate.to_dict(),
            "recommendations": [r.to_dict() for r in self.recommendations],
        }
        if self.style_summary is not None:
            data["styleSummary"] = self.style_summary.to_dict()
        if self.profile_name:
            data["profile"] = {"name": self.profile_name, "reasons": list(self.profile_reasons)}
        return data


def apply_profile(
    config: ComparisonConfig,
    profile: QualityGateProfile,
    explicit_content_basis: bool = False,
) -> ComparisonConfig:
    """用预设覆盖门禁阈值；预设指定了内容口径且调用方未显式设置时一并覆盖"""
    acceptance = config.acceptance.model_copy(
        update={
            "pixel_diff_ratio": profile.pixel_diff_ratio,
            "delta_e": profile.delta_e,
            "area_gap_critical": profile.area_gap_critical,
            "area_gap_warning": profile.area_gap_warning,
        }
    )
    update: dict[str, Any] = {"acceptance": acceptance}
    if profile.content_basis is not None and not explicit_content_basis:
        update["content_basis"] = profile.content_basis
    return config.model_copy(update=update)


def run_fidelity_check(
    request: CompareRequest,
    config: Optional[ComparisonConfig] = None,
    profile_name: Optional[str] = None,
    explicit_content_basis: bool = False,
    top: int = 5,
) -> FidelityReport:
    """执行完整的还原度检查。

    Args:
        request: 对比输入
        config: 对比配置，默认全部使用默认值
        profile_name: 质量门禁预设名，为空时使用 config 中的阈值
        explicit_content_basis: 调用方是否显式指定了内容口径（显式值优先于预设）
        top: 修复建议条数

    Raises:
        ComparisonError: 图片无法解码，或 strict 模式下尺寸不一致
        ConfigError: 预设名不存在
    """
    config = config or ComparisonConfig()
    profile = get_quality_gate_profile(profile_name) if profile_name else None
    if profile is not None:
        config = apply_profile(config, profile, explicit_content_basis)
        logger.info("使用质量门禁预设 %s", profile.name)

    # Stage 1: 图片对比
    diff_options = config.to_diff_options()
    result = compare_images(
        request.figma_png_b64,
        request.impl_png_b64,
        size_mode=config.size_mode,
        align=config.align,
        pad_color=parse_pad_color(config.pad_color),
        content_basis=config.content_basis,
        pixelmatch_options=PixelmatchOptions(
            threshold=config.pixelmatch_threshold, include_aa=config.include_aa
        ),
        styles=request.styles,
        expected_spec=request.expected_spec,
        meta=request.meta,
        tokens=request.tokens,
        diff_options=diff_options,
    )

    # Stage 2: 样式汇总（对比阶段已算出）
    style_diffs = result.style_diffs or []
    summary = result.style_summary

    # Stage 3: 质量门禁
    gate = evaluate_quality_gate(
        result,
        style_diffs,
        config.to_gate_thresholds(),
        content_basis=config.content_basis,
        style_summary=summary,
    )
    profile_reasons = check_profile_limits(style_diffs, profile, summary) if profile else []

    # Stage 4: 修复建议
    recommendations = generate_fix_recommendations(style_diffs, max_recommendations=top)

    return FidelityReport(
        compare=result,
        gate=gate,
        style_summary=summary,
        recommendations=recommendations,
        profile_name=profile_name,
        profile_reasons=profile_reasons,
    )
