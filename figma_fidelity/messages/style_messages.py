"""
样式对比相关数据类 — 颜色值、设计令牌、元素元数据、样式差异，与对比逻辑解耦
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


# ============================================================
# 枚举
# ============================================================


class Severity(Enum):
    """样式差异严重程度"""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return {"low": 0, "medium": 1, "high": 2}[self.value]


class DiffScope(Enum):
    """属性影响的 DOM 层级：容器 / 自身 / 子元素"""

    ANCESTOR = "ancestor"
    SELF = "self"
    DESCENDANT = "descendant"

    @property
    def order(self) -> int:
        return {"ancestor": 0, "self": 1, "descendant": 2}[self.value]


class CheckingStage(Enum):
    """渐进式检查阶段：先容器、再自身、后子元素"""

    ALL = "all"
    PARENT = "parent"
    SELF = "self"
    CHILDREN = "children"


class ElementKind(Enum):
    """采集器给出的元素类别"""

    TEXT = "text"
    INTERACTIVE = "interactive"
    CONTAINER = "container"


# ============================================================
# 颜色
# ============================================================


@dataclass(frozen=True)
class RGB:
    """RGB(A) 颜色，r/g/b ∈ [0,255]，a ∈ [0,1]（可选）"""

    r: int
    g: int
    b: int
    a: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"r": self.r, "g": self.g, "b": self.b}
        if self.a is not None:
            data["a"] = self.a
        return data


@dataclass(frozen=True)
class Lab:
    """CIE L*a*b* 颜色（中间值，不持久化）"""

    L: float
    a: float
    b: float


@dataclass(frozen=True)
class BoxShadow:
    """box-shadow 解析结果（仅第一层阴影）"""

    blur: float
    rgb: Optional[RGB] = None


# ============================================================
# 设计令牌 / 元素元数据
# ============================================================


@dataclass
class TokenMap:
    """设计令牌表：CSS 变量名（--x） → 值"""

    color: dict[str, str] = field(default_factory=dict)
    spacing: dict[str, str] = field(default_factory=dict)
    radius: dict[str, str] = field(default_factory=dict)
    typography: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "TokenMap":
        data = data or {}
        return cls(
            color=dict(data.get("color") or {}),
            spacing=dict(data.get("spacing") or {}),
            radius=dict(data.get("radius") or {}),
            typography=dict(data.get("typography") or {}),
        )


@dataclass
class ElementMeta:
    """采集器提供的 DOM 元素元数据"""

    tag: str
    id: Optional[str] = None
    class_name: Optional[str] = None
    testid: Optional[str] = None
    css_selector: Optional[str] = None
    height: Optional[float] = None
    element_kind: Optional[ElementKind] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ElementMeta":
        kind = data.get("elementKind") or data.get("element_kind")
        return cls(
            tag=str(data.get("tag", "")),
            id=data.get("id"),
            class_name=data.get("class") or data.get("class_name"),
            testid=data.get("testid"),
            css_selector=data.get("cssSelector") or data.get("css_selector"),
            height=data.get("height"),
            element_kind=ElementKind(kind) if kind else None,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"tag": self.tag}
        for key, value in (
            ("id", self.id),
            ("class", self.class_name),
            ("testid", self.testid),
            ("cssSelector", self.css_selector),
            ("height", self.height),
            ("elementKind", self.element_kind.value if self.element_kind else None),
        ):
            if value is not None:
                data[key] = value
        return data


# ============================================================
# 对比选项
# ============================================================


@dataclass
class DiffThresholds:
    """样式对比各类别容差（比例值；ΔE 为绝对值）"""

    delta_e: float = 3.0
    spacing: float = 0.15
    dimension: float = 0.05
    layout_gap: float = 0.1
    radius: float = 0.12
    border_width: float = 0.3
    shadow_blur: float = 0.15
    shadow_color_extra_de: float = 1.0


@dataclass
class DiffOptions:
    """样式对比选项"""

    thresholds: DiffThresholds = field(default_factory=DiffThresholds)
    ignore: list[str] = field(default_factory=list)
    weights: dict[str, float] = field(default_factory=dict)
    stage: CheckingStage = CheckingStage.ALL


# ============================================================
# 样式差异
# ============================================================


@dataclass
class PropertyDiff:
    """单个 CSS 属性的对比结果"""

    actual: Optional[str] = None
    expected: Optional[str] = None
    expected_token: Optional[str] = None
    delta: Optional[float] = None
    unit: Optional[str] = None             # px / ΔE / categorical / ""

    @property
    def differs(self) -> bool:
        """delta 非零，或实际值与期望值字面不同。"""
        has_delta = self.delta is not None and self.delta != 0
        values_differ = (
            self.actual is not None
            and self.expected is not None
            and self.actual != self.expected
        )
        return has_delta or values_differ

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for key, value in (
            ("actual", self.actual),
            ("expected", self.expected),
            ("expectedToken", self.expected_token),
            ("delta", self.delta),
            ("unit", self.unit),
        ):
            if value is not None:
                data[key] = value
        return data


@dataclass
class PatchHint:
    """修复建议：把某属性改为建议值"""

    property: str
    suggested_value: str
    severity: Severity
    file: Optional[str] = None
    line: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "property": self.property,
            "suggestedValue": self.suggested_value,
            "severity": self.severity.value,
        }
        if self.file is not None:
            data["file"] = self.file
        if self.line is not None:
            data["line"] = self.line
        return data


@dataclass
class StyleDiff:
    """单个选择器的样式差异（构造后不再修改）"""

    selector: str
    properties: dict[str, PropertyDiff] = field(default_factory=dict)
    severity: Severity = Severity.LOW
    patch_hints: list[PatchHint] = field(default_factory=list)
    meta: Optional[ElementMeta] = None
    priority_score: int = 0
    scope: DiffScope = DiffScope.SELF

    @property
    def auto_fixable(self) -> bool:
        return len(self.patch_hints) > 0

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "selector": self.selector,
            "properties": {k: v.to_dict() for k, v in self.properties.items()},
            "severity": self.severity.value,
            "patchHints": [h.to_dict() for h in self.patch_hints],
            "autoFixable": self.auto_fixable,
            "priorityScore": self.priority_score,
            "scope": self.scope.value,
        }
        if self.meta is not None:
            data["meta"] = self.meta.to_dict()
        return data


# ============================================================
# 样式还原度汇总
# ============================================================


@dataclass
class NormalizedStyleDiff:
    """归一化后的单属性偏差（0 = 完全一致，1 = 超出容差）"""

    selector: str
    property: str
    severity: Severity
    category: str
    normalized_score: float
    actual: str
    expected: str
    delta: float
    unit: str


@dataclass
class CategoryBreakdown:
    category: str
    count: int
    avg_normalized_score: float
    weight: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category,
            "count": self.count,
            "avgNormalizedScore": self.avg_normalized_score,
            "weight": self.weight,
        }


@dataclass
class StyleSummary:
    """样式还原度（SFS）汇总"""

    style_fidelity_score: int = 100
    high_count: int = 0
    medium_count: int = 0
    low_count: int = 0
    total_diffs: int = 0
    category_breakdown: list[CategoryBreakdown] = field(default_factory=list)
    coverage: float = 0.0
    autofixable_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "styleFidelityScore": self.style_fidelity_score,
            "highCount": self.high_count,
            "mediumCount": self.medium_count,
            "lowCount": self.low_count,
            "totalDiffs": self.total_diffs,
            "categoryBreakdown": [c.to_dict() for c in self.category_breakdown],
            "coverage": self.coverage,
            "autofixableCount": self.autofixable_count,
        }
