"""
质量门禁 / 修复建议相关数据类 — 与门禁判定逻辑解耦
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class ViolationType(Enum):
    """硬门禁违规类型"""

    AREA_GAP = "area_gap"
    SUSPICION = "suspicion"
    RE_EVALUATION = "re_evaluation"
    HIGH_SEVERITY = "high_severity"


class ViolationSeverity(Enum):
    CRITICAL = "critical"
    HIGH = "high"


@dataclass
class HardGateViolation:
    """硬门禁违规（任意一条即判定不通过）"""

    type: ViolationType
    reason: str
    severity: ViolationSeverity

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "reason": self.reason,
            "severity": self.severity.value,
        }


@dataclass
class SuspicionDetection:
    """可疑结果检测：低差异率但对比条件可能失真"""

    detected: bool = False
    reasons: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"detected": self.detected, "reasons": list(self.reasons)}


@dataclass
class QualityGateThresholds:
    """质量门禁阈值"""

    pixel_diff_ratio: float = 0.01
    delta_e: float = 5.0
    area_gap_critical: float = 0.15
    area_gap_warning: float = 0.05
    min_style_coverage: Optional[float] = None


@dataclass
class CQIParams:
    """综合质量指数（CQI）各项权重"""

    pixel_weight: float = 0.6
    color_weight: float = 0.2
    area_weight: float = 0.15
    severity_weight: float = 0.05


@dataclass
class OriginalMetrics:
    """触发重新评估时记录的原始指标"""

    pixel_diff_ratio_content: float
    content_basis: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "pixelDiffRatioContent": self.pixel_diff_ratio_content,
            "contentBasis": self.content_basis,
        }


@dataclass
class QualityGateResult:
    """质量门禁判定结果"""

    passed: bool
    cqi: int
    hard_gate_violations: list[HardGateViolation] = field(default_factory=list)
    suspicions: SuspicionDetection = field(default_factory=SuspicionDetection)
    re_evaluated: bool = False
    original_metrics: Optional[OriginalMetrics] = None
    reasons: list[str] = field(default_factory=list)
    thresholds: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "pass": self.passed,
            "cqi": self.cqi,
            "hardGateViolations": [v.to_dict() for v in self.hard_gate_violations],
            "suspicions": self.suspicions.to_dict(),
            "reEvaluated": self.re_evaluated,
            "reasons": list(self.reasons),
            "thresholds": dict(self.thresholds),
        }
        if self.original_metrics is not None:
            data["originalMetrics"] = self.original_metrics.to_dict()
        return data


# ============================================================
# 修复建议
# ============================================================


@dataclass
class FixItem:
    property: str
    current: str
    suggested: str
    is_token: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "property": self.property,
            "current": self.current,
            "suggested": self.suggested,
            "isToken": self.is_token,
        }


@dataclass
class FixRecommendation:
    """按优先级排序的修复建议"""

    rank: int
    selector: str
    fixes: list[FixItem] = field(default_factory=list)
    priority_score: int = 0
    estimated_impact: str = ""
    reason: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "rank": self.rank,
            "selector": self.selector,
            "fixes": [f.to_dict() for f in self.fixes],
            "priorityScore": self.priority_score,
            "estimatedImpact": self.estimated_impact,
            "reason": self.reason,
        }
