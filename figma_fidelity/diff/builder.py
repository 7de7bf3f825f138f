"""
样式差异构建器 — 逐选择器、逐属性对比实现样式与期望样式

每个属性族有自己的比较器：解析取值 → 按容差判断 → 给出差值与单位。
比较器在无法判断时（缺少期望值、取值无法解析）返回 None，表示跳过该属性，
而不是抛异常；只有存在期望值的属性才会出现在结果里。

严重程度：
  - 默认 low，任一属性不一致至少为 medium
  - 颜色 ΔE 超过 2 × 容差 → high
  - 尺寸 ≥20%、内外边距 ≥35%、间距 ≥30% 的相对误差 → high
"""
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Sequence

from figma_fidelity.diff.scope import get_dominant_scope, should_include_diff_at_stage
from figma_fidelity.diff.scoring import calculate_priority_score, generate_patch_hints
from figma_fidelity.diff.utils import format_number, format_px, is_noise_element, to_kebab_case
from figma_fidelity.messages.style_messages import (
    DiffOptions,
    DiffThresholds,
    ElementKind,
    ElementMeta,
    PropertyDiff,
    Severity,
    StyleDiff,
    TokenMap,
)
from figma_fidelity.utils.color import delta_e2000
from figma_fidelity.utils.normalize import (
    norm_line_height,
    parse_box_shadow,
    parse_box_shadow_offset,
    parse_css_color_to_rgb,
    to_px,
)

logger = logging.getLogger(__name__)

StyleMap = Mapping[str, Mapping[str, str]]

_SIDES = ("top", "right", "bottom", "left")
_TEXT_TAGS = re.compile(r"^(p|h[1-6]|span|a|label|li|strong|em|code)$", re.IGNORECASE)
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")

COLOR_PROPS = frozenset(
    ["color", "background-color", "border-color", *(f"border-{s}-color" for s in _SIDES)]
)

# 相对误差达到该比例时直接升级为 high
DIMENSION_ESCALATION = 0.2
SPACING_ESCALATION = 0.35
GAP_ESCALATION = 0.3

SHADOW_OFFSET_TOLERANCE_PX = 1.0


@dataclass
class _Comparison:
    """单个属性的比较结果"""

    ok: bool
    expected: str
    delta: Optional[float] = None
    unit: Optional[str] = None
    expected_token: Optional[str] = None
    escalate: bool = False
    extra: dict[str, PropertyDiff] = field(default_factory=dict)


@dataclass
class _Context:
    thresholds: DiffThresholds
    tokens: TokenMap
    is_text_element: bool


Comparator = Callable[[str, Mapping[str, str], Mapping[str, str], _Context], Optional[_Comparison]]


# ============================================================
# 数值类比较器
# ============================================================


def _gap_px(value: Optional[str]) -> Optional[float]:
    if value is not None and value.strip() == "normal":
        return 0.0
    return to_px(value)


def _px_comparator(
    tolerance: Callable[[DiffThresholds], float],
    escalate_at: Optional[float] = None,
    parse: Callable[[Optional[str]], Optional[float]] = to_px,
) -> Comparator:
    """像素差比较器：容差 = max(1px, 比例 × 期望值)"""

    def compare(prop, actual, expected, ctx):
        raw = expected.get(prop)
        e = parse(raw) if raw else None
        a = parse(actual.get(prop))
        if e is None or a is None:
            return None
        diff = a - e
        ok = abs(diff) <= max(1.0, tolerance(ctx.thresholds) * e)
        escalate = (
            not ok
            and escalate_at is not None
            and abs(diff) / max(1.0, e) >= escalate_at
        )
        return _Comparison(ok=ok, delta=diff, unit="px", expected=format_px(e), escalate=escalate)

    return compare


def _compare_dimension(prop, actual, expected, ctx):
    """width / height：实现侧缺失取值也视为不一致"""
    raw = expected.get(prop)
    e = to_px(raw) if raw else None
    if e is None:
        return None
    a = to_px(actual.get(prop))
    if a is None:
        return _Comparison(ok=False, expected=format_px(e))
    diff = a - e
    ok = abs(diff) <= max(1.0, ctx.thresholds.dimension * e)
    escalate = not ok and abs(diff) / max(1.0, e) >= DIMENSION_ESCALATION
    return _Comparison(ok=ok, delta=diff, unit="px", expected=format_px(e), escalate=escalate)


def _compare_line_height(prop, actual, expected, ctx):
    font_size = to_px(actual.get("font-size"))
    if font_size is None:
        font_size = 16.0
    raw = expected.get(prop)
    e = norm_line_height(raw, font_size) if raw else None
    a = norm_line_height(actual.get(prop), font_size)
    if e is None or a is None:
        return None
    return _Comparison(
        ok=abs(a - e) <= max(1.0, 0.1 * e), delta=a - e, unit="px", expected=format_px(e)
    )


def _compare_letter_spacing(prop, actual, expected, ctx):
    raw = expected.get(prop)
    e = _gap_px(raw) if raw else None
    a = _gap_px(actual.get(prop))
    if e is None or a is None:
        return None
    tolerance = max(0.5, 0.2 * abs(e))
    return _Comparison(ok=abs(a - e) <= tolerance, delta=a - e, unit="px", expected=format_px(e))


def _parse_font_weight(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    if value == "bold":
        return 700
    if value == "normal":
        return 400
    match = _LEADING_INT.match(value)
    return int(match.group(1)) if match else None


def _compare_font_weight(prop, actual, expected, ctx):
    e = _parse_font_weight(expected.get(prop))
    a = _parse_font_weight(actual.get(prop))
    if e is None or a is None:
        return None
    return _Comparison(ok=abs(a - e) < 200, delta=float(a - e), expected=str(e))


def _to_number(value: Optional[str]) -> Optional[float]:
    if value is None or not value.strip():
        return None
    try:
        number = float(value)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def _numeric_comparator(tolerance: float) -> Comparator:
    """无单位数值比较器（flex-grow / flex-shrink / opacity）"""

    def compare(prop, actual, expected, ctx):
        e = _to_number(expected.get(prop))
        a = _to_number(actual.get(prop))
        if e is None or a is None:
            return None
        return _Comparison(
            ok=abs(a - e) <= tolerance,
            delta=round(a - e, 2),
            unit="",
            expected=format_number(e),
        )

    return compare


# ============================================================
# 颜色 / 阴影
# ============================================================


def _resolve_expected_color(ref: str, tokens: TokenMap):
    """解析期望颜色；var(--x) 形式从令牌表取值。返回 (RGB, 令牌名)"""
    rgb = parse_css_color_to_rgb(ref)
    if rgb is not None:
        return rgb, None
    if ref.startswith("var(") and tokens.color:
        token_name = ref[4:-1].strip()
        value = tokens.color.get(token_name)
        if value:
            return parse_css_color_to_rgb(value), token_name
    return None, None


def _compare_color(prop, actual, expected, ctx):
    a_rgb = parse_css_color_to_rgb(actual.get(prop))
    ref = expected.get(prop)
    if a_rgb is None or not ref:
        return None

    # 文本元素的 background-color 期望值多半是设计工具把文字填充色导出错了位置
    if prop == "background-color" and ctx.is_text_element and not expected.get("color"):
        return None

    e_rgb, token = _resolve_expected_color(ref, ctx.tokens)
    if e_rgb is None:
        return None

    de = delta_e2000(a_rgb, e_rgb)
    return _Comparison(
        ok=de <= ctx.thresholds.delta_e,
        delta=round(de, 2),
        unit="ΔE",
        expected=ref,
        expected_token=token,
    )


def _offset_diff(actual: Optional[float], expected: Optional[float]) -> PropertyDiff:
    return PropertyDiff(
        actual=format_px(actual) if actual is not None else None,
        expected=format_px(expected) if expected is not None else None,
        delta=actual - expected if actual is not None and expected is not None else None,
        unit="px",
    )


def _compare_box_shadow(prop, actual, expected, ctx):
    """阴影：模糊半径、颜色 ΔE、偏移三项都在容差内才算一致"""
    raw = expected.get(prop)
    e = parse_box_shadow(raw) if raw else None
    a = parse_box_shadow(actual.get(prop))
    if a is None or e is None:
        return None

    t = ctx.thresholds
    ok_blur = abs(a.blur - e.blur) <= max(1.0, t.shadow_blur * e.blur)
    de = delta_e2000(a.rgb, e.rgb) if a.rgb and e.rgb else 0.0
    ok_color = de <= t.delta_e + t.shadow_color_extra_de

    ax, ay = parse_box_shadow_offset(actual.get(prop))
    ex, ey = parse_box_shadow_offset(raw)
    ok_x = ax is None or ex is None or abs(ax - ex) <= SHADOW_OFFSET_TOLERANCE_PX
    ok_y = ay is None or ey is None or abs(ay - ey) <= SHADOW_OFFSET_TOLERANCE_PX

    extra: dict[str, PropertyDiff] = {}
    if not (ok_x and ok_y):
        if ax is not None or ex is not None:
            extra["box-shadow-offset-x"] = _offset_diff(ax, ex)
        if ay is not None or ey is not None:
            extra["box-shadow-offset-y"] = _offset_diff(ay, ey)

    return _Comparison(
        ok=ok_blur and ok_color and ok_x and ok_y,
        delta=round(de, 2),
        unit="ΔE",
        expected=raw,
        extra=extra,
    )


# ============================================================
# 分类值比较器
# ============================================================


def _strip(value: Optional[str]) -> Optional[str]:
    return value.strip() if value is not None else None


def _identity(value: Optional[str]) -> Optional[str]:
    return value


def _collapse_whitespace(value: Optional[str]) -> Optional[str]:
    return re.sub(r"\s+", " ", value.strip()) if value is not None else None


def _normalize_display(value: Optional[str]) -> Optional[str]:
    return {"inline-flex": "flex", "inline-grid": "grid"}.get(value, value) if value else value


def _normalize_flex_alignment(value: Optional[str]) -> Optional[str]:
    return re.sub(r"^(start|end)$", r"flex-\1", value) if value else value


def _first_font_family(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    for family in value.split(","):
        name = re.sub(r"^['\"]|['\"]$", "", family.strip()).lower()
        if name:
            return name
    return None


def _categorical_comparator(
    normalize: Callable[[Optional[str]], Optional[str]] = _strip,
    report_raw: bool = False,
) -> Comparator:
    """精确匹配比较器：delta 为 0（一致）或 1（不一致）

    Args:
        normalize: 比较前对两侧取值做的归一化
        report_raw: True 时结果中的 expected 保留原始写法，否则使用归一化后的值
    """

    def compare(prop, actual, expected, ctx):
        raw = expected.get(prop)
        e = normalize(raw) if raw else None
        a = normalize(actual.get(prop))
        if not e or not a:
            return None
        ok = a == e
        return _Comparison(
            ok=ok,
            expected=raw if report_raw else e,
            unit="categorical",
            delta=0.0 if ok else 1.0,
        )

    return compare


# ============================================================
# 属性 → 比较器 对照表（顺序即结果中属性的顺序）
# ============================================================


def _dimension_ratio(t: DiffThresholds) -> float:
    return t.dimension


COMPARATORS: Sequence[tuple[Sequence[str], Comparator]] = (
    (("width", "height"), _compare_dimension),
    (("font-size",), _px_comparator(lambda t: 0.08)),
    (("line-height",), _compare_line_height),
    (("font-weight",), _compare_font_weight),
    (("font-family",), _categorical_comparator(_first_font_family, report_raw=True)),
    (("letter-spacing",), _compare_letter_spacing),
    (("color", "background-color", "border-color"), _compare_color),
    (("border-radius",), _px_comparator(lambda t: t.radius)),
    (
        ("border-width", *(f"border-{s}-width" for s in _SIDES)),
        _px_comparator(lambda t: t.border_width),
    ),
    (("border-style", *(f"border-{s}-style" for s in _SIDES)), _categorical_comparator()),
    (tuple(f"border-{s}-color" for s in _SIDES), _compare_color),
    (
        (*(f"padding-{s}" for s in _SIDES), *(f"margin-{s}" for s in _SIDES)),
        _px_comparator(lambda t: t.spacing, escalate_at=SPACING_ESCALATION),
    ),
    (
        ("gap", "column-gap", "row-gap"),
        _px_comparator(lambda t: t.layout_gap, escalate_at=GAP_ESCALATION, parse=_gap_px),
    ),
    (("box-shadow",), _compare_box_shadow),
    (("display",), _categorical_comparator(_normalize_display, report_raw=True)),
    (("flex-direction",), _categorical_comparator()),
    (
        ("flex-wrap", "align-content", "place-items", "place-content"),
        _categorical_comparator(_identity),
    ),
    (
        ("justify-content", "align-items"),
        _categorical_comparator(_normalize_flex_alignment, report_raw=True),
    ),
    (
        ("grid-template-columns", "grid-template-rows", "grid-auto-flow"),
        _categorical_comparator(_collapse_whitespace),
    ),
    (
        ("text-align", "text-transform", "text-decoration-line", "white-space", "word-break"),
        _categorical_comparator(),
    ),
    (("min-width", "max-width", "min-height", "max-height"), _px_comparator(_dimension_ratio)),
    (("box-sizing", "overflow-x", "overflow-y"), _categorical_comparator()),
    (("flex-grow", "flex-shrink"), _numeric_comparator(0.1)),
    (("flex-basis",), _px_comparator(_dimension_ratio)),
    (("opacity",), _numeric_comparator(0.05)),
)


# ============================================================
# 入口
# ============================================================


def _kebab_keys(props: Mapping[str, str]) -> dict[str, str]:
    return {to_kebab_case(k): v for k, v in props.items()}


def _coerce_meta(
    meta: Optional[Mapping[str, ElementMeta | dict[str, Any]]]
) -> dict[str, ElementMeta]:
    if not meta:
        return {}
    return {
        sel: m if isinstance(m, ElementMeta) else ElementMeta.from_dict(m)
        for sel, m in meta.items()
    }


def _is_text_element(meta: Optional[ElementMeta]) -> bool:
    if meta is None:
        return False
    return meta.element_kind is ElementKind.TEXT or bool(_TEXT_TAGS.match(meta.tag or ""))


def build_style_diffs(
    actual: StyleMap,
    expected_spec: StyleMap,
    options: Optional[DiffOptions] = None,
    tokens: Optional[TokenMap | dict[str, Any]] = None,
    meta: Optional[Mapping[str, ElementMeta | dict[str, Any]]] = None,
) -> list[StyleDiff]:
    """对比实现样式与期望样式，生成按作用域、优先级排序的差异列表。

    Args:
        actual: 实现侧样式表（选择器 → 属性 → 值）
        expected_spec: 期望样式表；选择器精确匹配，不会回退到其他选择器
        options: 容差、忽略属性、检查阶段
        tokens: 设计令牌表，用于解析 var(--x) 形式的期望颜色
        meta: 选择器 → DOM 元数据（标签、cssSelector、高度、元素类别）

    Returns:
        每个非噪声选择器一条 StyleDiff，先按作用域（ancestor → self → descendant），
        再按优先级降序排列；指定检查阶段时只保留对应作用域
    """
    options = options or DiffOptions()
    token_map = tokens if isinstance(tokens, TokenMap) else TokenMap.from_dict(tokens)
    meta_map = _coerce_meta(meta)
    ignore = {to_kebab_case(p) for p in options.ignore}
    t = options.thresholds

    diffs: list[StyleDiff] = []
    for sel, raw_props in actual.items():
        element_meta = meta_map.get(sel)
        props = _kebab_keys(raw_props)
        if is_noise_element(sel, props, element_meta):
            logger.debug("跳过噪声元素 %s", sel)
            continue

        expected = _kebab_keys(expected_spec.get(sel) or {})
        ctx = _Context(thresholds=t, tokens=token_map, is_text_element=_is_text_element(element_meta))

        prop_diffs: dict[str, PropertyDiff] = {}
        severity = Severity.LOW
        for prop_names, comparator in COMPARATORS:
            for prop in prop_names:
                if prop in ignore:
                    continue
                result = comparator(prop, props, expected, ctx)
                if result is None:
                    continue

                prop_diffs[prop] = PropertyDiff(
                    actual=props.get(prop),
                    expected=result.expected,
                    expected_token=result.expected_token,
                    delta=result.delta,
                    unit=result.unit,
                )
                prop_diffs.update(result.extra)

                if result.ok:
                    continue
                if result.escalate:
                    severity = Severity.HIGH
                elif prop in COLOR_PROPS and (result.delta or 0) > 2 * t.delta_e:
                    severity = Severity.HIGH
                elif severity is not Severity.HIGH:
                    severity = Severity.MEDIUM

        scope = get_dominant_scope(prop_diffs)
        if not should_include_diff_at_stage(scope, options.stage):
            continue

        if element_meta is not None and element_meta.css_selector:
            display = element_meta.css_selector
        else:
            display = "self" if sel == "__self__" else sel

        diffs.append(
            StyleDiff(
                selector=display,
                properties=prop_diffs,
                severity=severity,
                patch_hints=generate_patch_hints(prop_diffs),
                meta=element_meta,
                priority_score=calculate_priority_score(prop_diffs, severity, element_meta),
                scope=scope,
            )
        )

    diffs.sort(key=lambda d: (d.scope.order, -d.priority_score))
    return diffs
