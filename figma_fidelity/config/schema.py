"""
对比配置校验 — pydantic 模型，环境变量 / 配置文件 → 校验后的 ComparisonConfig

取值越界（阈值不在 [0,1]、容差为负、ΔE 非正等）统一转换为 ConfigError，
错误中带上出错字段名。
"""
import logging
import os
import re
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from figma_fidelity.config import settings
from figma_fidelity.messages.compare_messages import ContentBasis, ImageAlignment, SizeMode
from figma_fidelity.messages.errors import ConfigError
from figma_fidelity.messages.gate_messages import QualityGateThresholds
from figma_fidelity.messages.style_messages import CheckingStage, DiffOptions, DiffThresholds

logger = logging.getLogger(__name__)

_HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


# ============================================================
# 子模型
# ============================================================


class StyleTolerances(BaseModel):
    """样式对比容差"""

    model_config = ConfigDict(extra="forbid")

    delta_e: float = Field(settings.TOLERANCE_DELTA_E, gt=0)
    spacing: float = Field(settings.TOLERANCE_SPACING, ge=0)
    dimension: float = Field(settings.TOLERANCE_DIMENSION, ge=0)
    layout_gap: float = Field(settings.TOLERANCE_LAYOUT_GAP, ge=0)
    radius: float = Field(settings.TOLERANCE_RADIUS, ge=0)
    border_width: float = Field(settings.TOLERANCE_BORDER_WIDTH, ge=0)
    shadow_blur: float = Field(settings.TOLERANCE_SHADOW_BLUR, ge=0)
    shadow_color_extra_de: float = Field(settings.TOLERANCE_SHADOW_COLOR_EXTRA_DE, ge=0)


class CategoryWeights(BaseModel):
    """样式还原度评分的类别权重"""

    model_config = ConfigDict(extra="forbid")

    color: float = Field(1.2, ge=0)
    spacing: float = Field(1.0, ge=0)
    typography: float = Field(1.0, ge=0)
    layout: float = Field(1.2, ge=0)
    radius: float = Field(0.8, ge=0)
    border: float = Field(0.8, ge=0)
    shadow: float = Field(0.8, ge=0)
    pixel: float = Field(1.0, ge=0)


class AcceptanceThresholds(BaseModel):
    """质量门禁阈值"""

    model_config = ConfigDict(extra="forbid")

    pixel_diff_ratio: float = Field(settings.ACCEPTANCE_PIXEL_DIFF_RATIO, ge=0, le=1)
    delta_e: float = Field(settings.ACCEPTANCE_DELTA_E, gt=0)
    area_gap_critical: float = Field(settings.AREA_GAP_CRITICAL, ge=0, le=1)
    area_gap_warning: float = Field(settings.AREA_GAP_WARNING, ge=0, le=1)
    min_style_coverage: Optional[float] = Field(None, ge=0, le=1)


# ============================================================
# 完整配置
# ============================================================


class ComparisonConfig(BaseModel):
    """一次对比所需的全部可调参数"""

    model_config = ConfigDict(extra="forbid")

    pixelmatch_threshold: float = Field(settings.PIXELMATCH_THRESHOLD, ge=0, le=1)
    include_aa: bool = settings.INCLUDE_AA
    size_mode: SizeMode = Field(settings.SIZE_MODE, validate_default=True)
    align: ImageAlignment = Field(settings.ALIGN, validate_default=True)
    pad_color: str = Field(settings.PAD_COLOR, validate_default=True)
    content_basis: ContentBasis = Field(settings.CONTENT_BASIS, validate_default=True)
    tolerances: StyleTolerances = Field(default_factory=StyleTolerances)
    weights: CategoryWeights = Field(default_factory=CategoryWeights)
    acceptance: AcceptanceThresholds = Field(default_factory=AcceptanceThresholds)
    ignore: list[str] = Field(default_factory=list)
    stage: CheckingStage = CheckingStage.ALL

    @field_validator("pad_color")
    @classmethod
    def _check_pad_color(cls, value: str) -> str:
        if value != "auto" and not _HEX_COLOR.match(value):
            raise ValueError("pad_color must be 'auto' or a #rgb / #rrggbb hex color")
        return value

    def to_diff_thresholds(self) -> DiffThresholds:
        return DiffThresholds(**self.tolerances.model_dump())

    def to_diff_options(self) -> DiffOptions:
        return DiffOptions(
            thresholds=self.to_diff_thresholds(),
            ignore=list(self.ignore),
            weights=self.weights.model_dump(),
            stage=self.stage,
        )

    def to_gate_thresholds(self) -> QualityGateThresholds:
        return QualityGateThresholds(**self.acceptance.model_dump())


def _validate(data: Mapping[str, Any]) -> ComparisonConfig:
    try:
        return ComparisonConfig.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"])
        raise ConfigError(
            f"Invalid comparison config: {field}: {first['msg']}",
            code=ConfigError.VALIDATION_FAILED,
            field=field,
            details={"errors": [
                {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                for err in e.errors()
            ]},
        ) from e


# ============================================================
# 加载 / 合并
# ============================================================

# 环境变量 → 配置路径
_ENV_KEYS = {
    "PIXELMATCH_THRESHOLD": ("pixelmatch_threshold",),
    "INCLUDE_AA": ("include_aa",),
    "SIZE_MODE": ("size_mode",),
    "ALIGN": ("align",),
    "PAD_COLOR": ("pad_color",),
    "CONTENT_BASIS": ("content_basis",),
    "TOLERANCE_DELTA_E": ("tolerances", "delta_e"),
    "TOLERANCE_SPACING": ("tolerances", "spacing"),
    "TOLERANCE_DIMENSION": ("tolerances", "dimension"),
    "TOLERANCE_LAYOUT_GAP": ("tolerances", "layout_gap"),
    "TOLERANCE_RADIUS": ("tolerances", "radius"),
    "TOLERANCE_BORDER_WIDTH": ("tolerances", "border_width"),
    "TOLERANCE_SHADOW_BLUR": ("tolerances", "shadow_blur"),
    "TOLERANCE_SHADOW_COLOR_EXTRA_DE": ("tolerances", "shadow_color_extra_de"),
    "ACCEPTANCE_PIXEL_DIFF_RATIO": ("acceptance", "pixel_diff_ratio"),
    "ACCEPTANCE_DELTA_E": ("acceptance", "delta_e"),
    "AREA_GAP_CRITICAL": ("acceptance", "area_gap_critical"),
    "AREA_GAP_WARNING": ("acceptance", "area_gap_warning"),
}


def load_comparison_config(env: Optional[Mapping[str, str]] = None) -> ComparisonConfig:
    """从环境变量构建配置（未设置的项使用默认值）。

    Args:
        env: 环境变量映射，默认 os.environ（.env 已在 settings 导入时加载）

    Raises:
        ConfigError: 任一取值无法解析或越界
    """
    env = os.environ if env is None else env
    data: dict[str, Any] = {}
    for key, path in _ENV_KEYS.items():
        value = env.get(key)
        if value is None or value == "":
            continue
        target = data
        for part in path[:-1]:
            target = target.setdefault(part, {})
        target[path[-1]] = value
    return _validate(data)


def _deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def merge_comparison_config(
    partial: Mapping[str, Any],
    base: Optional[ComparisonConfig] = None,
) -> ComparisonConfig:
    """在 base（默认为全默认配置）之上合并部分配置，嵌套字段逐项覆盖"""
    base = base or ComparisonConfig()
    merged = _deep_merge(base.model_dump(), partial)
    logger.debug("合并对比配置: %s", sorted(partial))
    return _validate(merged)
