"""
属性作用域分类 — ancestor（容器）/ self（自身）/ descendant（子元素）

用于渐进式检查：先修容器（背景、边框、内边距、间距），再修自身（排版、尺寸、布局），
最后修子元素（外边距）。
"""
import re
from typing import Mapping

from figma_fidelity.diff.utils import to_kebab_case
from figma_fidelity.messages.style_messages import CheckingStage, DiffScope, PropertyDiff

_SIDES = ("top", "right", "bottom", "left")

ANCESTOR_PROPS = frozenset(
    [
        "background-color",
        "border-radius",
        "border-width",
        "border-style",
        "border-color",
        *(f"border-{side}-{part}" for side in _SIDES for part in ("width", "style", "color")),
        *(f"padding-{side}" for side in _SIDES),
        "gap",
        "column-gap",
        "row-gap",
    ]
)

SELF_PROPS = frozenset(
    [
        "color",
        "font-size",
        "font-weight",
        "font-family",
        "line-height",
        "letter-spacing",
        "width",
        "height",
        "min-width",
        "max-width",
        "min-height",
        "max-height",
        "display",
        "flex-direction",
        "align-items",
        "justify-content",
        "flex-wrap",
        "align-content",
        "place-items",
        "place-content",
        "flex-grow",
        "flex-shrink",
        "flex-basis",
        "opacity",
        "text-align",
        "text-transform",
        "text-decoration-line",
        "white-space",
        "word-break",
        "box-sizing",
        "overflow-x",
        "overflow-y",
        "grid-template-columns",
        "grid-template-rows",
        "grid-auto-flow",
        "box-shadow",
        "box-shadow-offset-x",
        "box-shadow-offset-y",
        "outline-width",
        "outline-style",
        "outline-color",
    ]
)

DESCENDANT_PROPS = frozenset(f"margin-{side}" for side in _SIDES)

_SHORTHANDS = {
    "margin": [f"margin-{side}" for side in _SIDES],
    "padding": [f"padding-{side}" for side in _SIDES],
    "border": ["border-width", "border-style", "border-color"],
    "background": ["background-color"],
    "outline": ["outline-width", "outline-style", "outline-color"],
}
_BORDER_SIDE = re.compile(r"^border-(top|right|bottom|left)$")


def expand_shorthand(prop: str) -> list[str]:
    """简写属性展开为长写属性（仅覆盖作用域判断所需的最小集合）"""
    normalized = to_kebab_case(prop)
    if normalized in _SHORTHANDS:
        return list(_SHORTHANDS[normalized])

    match = _BORDER_SIDE.match(normalized)
    if match:
        side = match.group(1)
        return [f"border-{side}-width", f"border-{side}-style", f"border-{side}-color"]
    return [normalized]


def get_property_scope(prop: str) -> DiffScope:
    """属性的作用域；未知属性视为 self"""
    props = expand_shorthand(prop)
    if any(p in ANCESTOR_PROPS for p in props):
        return DiffScope.ANCESTOR
    if any(p in DESCENDANT_PROPS for p in props):
        return DiffScope.DESCENDANT
    return DiffScope.SELF


def get_dominant_scope(prop_diffs: Mapping[str, PropertyDiff]) -> DiffScope:
    """在真正存在差异的属性中取多数作用域，并列时 ancestor > self > descendant。

    没有任何差异属性时返回 self。
    """
    counts = {scope: 0 for scope in DiffScope}
    for prop, diff in prop_diffs.items():
        if diff.differs:
            counts[get_property_scope(prop)] += 1

    if not any(counts.values()):
        return DiffScope.SELF
    # DiffScope 的定义顺序即并列时的优先顺序
    return max(DiffScope, key=lambda scope: (counts[scope], -scope.order))


def should_include_diff_at_stage(
    scope: DiffScope, stage: CheckingStage | str
) -> bool:
    stage = CheckingStage(stage)
    if stage is CheckingStage.ALL:
        return True
    return {
        CheckingStage.PARENT: DiffScope.ANCESTOR,
        CheckingStage.SELF: DiffScope.SELF,
        CheckingStage.CHILDREN: DiffScope.DESCENDANT,
    }[stage] is scope
