"""
优先级评分与修复提示生成

优先级（0-100，只用于排序，不参与通过判定）由四部分组成：
  1. 布局影响（20-40）：display / flex / gap / padding / 宽高等布局属性的差异数
  2. 元素显著度（0-25）：标题或交互标签、交互元素背景色差异、元素高度、大字号
  3. 设计令牌（10-20）：期望值来自令牌且存在差异的属性数
  4. 严重程度（5 / 10 / 15）
"""
import re
from typing import Mapping, Optional

from figma_fidelity.messages.style_messages import ElementKind, ElementMeta, PatchHint, PropertyDiff, Severity

LAYOUT_PROPS = frozenset(
    [
        "display",
        "flex-direction",
        "align-items",
        "justify-content",
        "gap",
        "padding-top",
        "padding-bottom",
        "padding-left",
        "padding-right",
        "width",
        "height",
    ]
)
PROMINENT_TAGS = frozenset(["h1", "h2", "h3", "h4", "h5", "h6", "button", "a"])
INTERACTIVE_TAGS = frozenset(["button", "a", "input"])

# 分类不一致时直接影响布局结构的属性
LAYOUT_CATEGORICAL_PROPS = frozenset(["display", "flex-direction", "align-items", "justify-content"])
TOKEN_COLOR_PROPS = frozenset(["color", "background-color", "border-color"])
AUXILIARY_PREFIX = "box-shadow-offset-"

SEVERITY_POINTS = {Severity.LOW: 5, Severity.MEDIUM: 10, Severity.HIGH: 15}
_LEADING_NUMBER = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def leading_float(value: str) -> Optional[float]:
    """parseFloat 语义：取字符串开头的数字部分"""
    match = _LEADING_NUMBER.match(value)
    return float(match.group(1)) if match else None


def calculate_priority_score(
    prop_diffs: Mapping[str, PropertyDiff],
    severity: Severity,
    meta: Optional[ElementMeta] = None,
) -> int:
    """计算单个选择器差异的优先级分（越高越应优先修复）。"""
    score = 0

    # 1. 布局影响
    layout_diffs = sum(1 for p, d in prop_diffs.items() if p in LAYOUT_PROPS and d.differs)
    if layout_diffs > 0:
        score += 20 + min(layout_diffs * 5, 20)

    # 2. 元素显著度
    if meta is not None:
        tag = meta.tag.lower()
        is_interactive = meta.element_kind is ElementKind.INTERACTIVE or tag in INTERACTIVE_TAGS

        if tag in PROMINENT_TAGS:
            score += 10

        background = prop_diffs.get("background-color")
        if is_interactive and background is not None and background.differs:
            score += 15

        if meta.height is not None:
            if meta.height > 100:
                score += 10
            elif meta.height > 50:
                score += 5

        font_size = prop_diffs.get("font-size")
        if font_size is not None and font_size.actual:
            size = leading_float(font_size.actual)
            if size is not None and size > 24:
                score += 5

    # 3. 设计令牌
    token_diffs = sum(1 for d in prop_diffs.values() if d.expected_token and d.differs)
    if token_diffs > 0:
        score += 10 + min(token_diffs * 5, 10)

    # 4. 严重程度
    score += SEVERITY_POINTS[severity]

    return min(100, int(score + 0.5))


def _hint_severity(prop: str, diff: PropertyDiff) -> Severity:
    if diff.unit == "ΔE" and diff.delta is not None:
        if diff.delta > 6:
            return Severity.HIGH
        if diff.delta > 3:
            return Severity.MEDIUM
        return Severity.LOW

    if diff.unit == "px" and diff.delta is not None:
        magnitude = abs(diff.delta)
        if magnitude > 8:
            return Severity.HIGH
        if magnitude > 4:
            return Severity.MEDIUM
        return Severity.LOW

    if diff.unit == "categorical" and diff.delta == 1:
        return Severity.HIGH if prop in LAYOUT_CATEGORICAL_PROPS else Severity.MEDIUM

    return Severity.LOW


def generate_patch_hints(prop_diffs: Mapping[str, PropertyDiff]) -> list[PatchHint]:
    """为每个有期望值且确实不一致的属性生成修复提示。

    颜色属性的期望值来自设计令牌时，建议值使用 var(--token)；
    阴影偏移这类辅助属性不生成提示。
    """
    hints: list[PatchHint] = []
    for prop, diff in prop_diffs.items():
        if prop.startswith(AUXILIARY_PREFIX):
            continue
        # 实现侧缺失取值（如未设置 width）同样需要提示
        if not diff.expected or not (diff.differs or diff.actual is None):
            continue

        suggested = diff.expected
        if diff.expected_token and prop in TOKEN_COLOR_PROPS:
            suggested = f"var({diff.expected_token})"

        hints.append(
            PatchHint(property=prop, suggested_value=suggested, severity=_hint_severity(prop, diff))
        )
    return hints
