"""
质量门禁预设 — 按对比场景打包的阈值组合

  component/strict   设计系统组件像素级还原
  component/dev      迭代开发阶段的宽松阈值
  page-vs-component  整页截图对比单个组件（补齐留白，使用 intersection 口径）
  lenient            原型阶段
  custom             基线值，通常被配置文件覆盖
"""
from dataclasses import dataclass
from typing import Optional

from figma_fidelity.messages.compare_messages import ContentBasis
from figma_fidelity.messages.errors import ConfigError
from figma_fidelity.messages.gate_messages import QualityGateThresholds


@dataclass(frozen=True)
class QualityGateProfile:
    name: str
    description: str
    pixel_diff_ratio: float
    delta_e: float
    max_high_severity_issues: int
    max_layout_high_issues: int
    area_gap_critical: float = 0.15
    area_gap_warning: float = 0.05
    content_basis: Optional[ContentBasis] = None

    def to_thresholds(self, min_style_coverage: Optional[float] = None) -> QualityGateThresholds:
        return QualityGateThresholds(
            pixel_diff_ratio=self.pixel_diff_ratio,
            delta_e=self.delta_e,
            area_gap_critical=self.area_gap_critical,
            area_gap_warning=self.area_gap_warning,
            min_style_coverage=min_style_coverage,
        )


QUALITY_GATE_PROFILES: dict[str, QualityGateProfile] = {
    "component/strict": QualityGateProfile(
        name="Component (Strict)",
        description="Pixel-perfect comparison for design system components",
        pixel_diff_ratio=0.01,
        delta_e=3.0,
        max_high_severity_issues=0,
        max_layout_high_issues=0,
    ),
    "component/dev": QualityGateProfile(
        name="Component (Development)",
        description="Relaxed thresholds for iterative development",
        pixel_diff_ratio=0.08,
        delta_e=5.0,
        max_high_severity_issues=0,
        max_layout_high_issues=0,
    ),
    # 整页截图天然存在面积差，放宽面积门禁
    "page-vs-component": QualityGateProfile(
        name="Page vs Component (Padded)",
        description="Comparison accounting for padding/letterboxing",
        pixel_diff_ratio=0.12,
        delta_e=5.0,
        max_high_severity_issues=2,
        max_layout_high_issues=0,
        area_gap_critical=0.5,
        area_gap_warning=0.15,
        content_basis=ContentBasis.INTERSECTION,
    ),
    "lenient": QualityGateProfile(
        name="Lenient",
        description="Very relaxed thresholds for prototyping",
        pixel_diff_ratio=0.15,
        delta_e=8.0,
        max_high_severity_issues=5,
        max_layout_high_issues=2,
        area_gap_critical=0.3,
        area_gap_warning=0.1,
    ),
    "custom": QualityGateProfile(
        name="Custom",
        description="Uses thresholds from configuration file",
        pixel_diff_ratio=0.01,
        delta_e=5.0,
        max_high_severity_issues=0,
        max_layout_high_issues=0,
    ),
}


def get_quality_gate_profile(profile_name: str) -> QualityGateProfile:
    """按名称获取预设；不存在时抛出 ConfigError 并列出可用名称"""
    profile = QUALITY_GATE_PROFILES.get(profile_name)
    if profile is None:
        raise ConfigError(
            f"Quality gate profile '{profile_name}' not found. "
            f"Available: {', '.join(QUALITY_GATE_PROFILES)}",
            code=ConfigError.INVALID_VALUE,
            field="profile",
        )
    return profile


def list_quality_gate_profiles() -> list[dict[str, str]]:
    return [
        {"name": key, "description": profile.description}
        for key, profile in QUALITY_GATE_PROFILES.items()
    ]
