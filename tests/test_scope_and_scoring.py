"""作用域分类、优先级评分、修复提示与辅助函数测试"""
import pytest

from figma_fidelity.diff.scope import (
    expand_shorthand,
    get_dominant_scope,
    get_property_scope,
    should_include_diff_at_stage,
)
from figma_fidelity.diff.scoring import calculate_priority_score, generate_patch_hints, leading_float
from figma_fidelity.diff.utils import format_number, format_px, is_noise_element, to_kebab_case
from figma_fidelity.messages.style_messages import (
    CheckingStage,
    DiffScope,
    ElementMeta,
    PropertyDiff,
    Severity,
)


def _px(actual, expected, delta):
    return PropertyDiff(actual=actual, expected=expected, delta=delta, unit="px")


class TestScope:
    """属性作用域"""

    @pytest.mark.parametrize(
        "prop, scope",
        [
            ("padding-top", DiffScope.ANCESTOR),
            ("background-color", DiffScope.ANCESTOR),
            ("border", DiffScope.ANCESTOR),
            ("border-left", DiffScope.ANCESTOR),
            ("gap", DiffScope.ANCESTOR),
            ("margin", DiffScope.DESCENDANT),
            ("marginTop", DiffScope.DESCENDANT),
            ("color", DiffScope.SELF),
            ("box-shadow-offset-y", DiffScope.SELF),
            ("z-index", DiffScope.SELF),
        ],
    )
    def test_property_scope(self, prop, scope):
        """长写、简写、camelCase 与未知属性"""
        assert get_property_scope(prop) is scope

    def test_expand_shorthand(self):
        """简写展开"""
        assert expand_shorthand("padding") == ["padding-top", "padding-right", "padding-bottom", "padding-left"]
        assert expand_shorthand("border-top") == ["border-top-width", "border-top-style", "border-top-color"]
        assert expand_shorthand("fontSize") == ["font-size"]

    def test_dominant_scope_majority(self):
        """多数作用域胜出"""
        props = {
            "color": _px("#000", "#111", 2.0),
            "width": _px("10px", "20px", -10.0),
            "padding-top": _px("1px", "2px", -1.0),
        }
        assert get_dominant_scope(props) is DiffScope.SELF

    def test_dominant_scope_tie_prefers_ancestor(self):
        """并列时 ancestor 优先"""
        props = {
            "margin-top": _px("0px", "8px", -8.0),
            "padding-top": _px("0px", "8px", -8.0),
        }
        assert get_dominant_scope(props) is DiffScope.ANCESTOR

    def test_dominant_scope_ignores_matching_properties(self):
        """只统计真正存在差异的属性；全部一致时为 self"""
        props = {"padding-top": _px("8px", "8px", 0.0)}
        assert get_dominant_scope(props) is DiffScope.SELF
        assert get_dominant_scope({}) is DiffScope.SELF

    def test_stage_filter(self):
        """all 全部保留，其余阶段只保留对应作用域"""
        for scope in DiffScope:
            assert should_include_diff_at_stage(scope, CheckingStage.ALL)
        assert should_include_diff_at_stage(DiffScope.ANCESTOR, "parent")
        assert not should_include_diff_at_stage(DiffScope.SELF, "parent")
        assert should_include_diff_at_stage(DiffScope.DESCENDANT, "children")


class TestPriorityScore:
    """优先级评分"""

    def test_severity_only(self):
        """没有其他因素时只有严重程度分"""
        assert calculate_priority_score({}, Severity.LOW) == 5
        assert calculate_priority_score({}, Severity.HIGH) == 15

    def test_layout_and_prominence(self):
        """布局差异 + 交互元素背景色 + 元素高度"""
        props = {
            "width": _px("90px", "100px", -10.0),
            "background-color": PropertyDiff(actual="#fff", expected="#000", delta=100.0, unit="ΔE"),
        }
        meta = ElementMeta(tag="button", height=60)
        # 布局 25 + 显著标签 10 + 交互背景 15 + 高度 5 + high 15
        assert calculate_priority_score(props, Severity.HIGH, meta) == 70

    def test_token_diffs(self):
        """令牌属性差异加分"""
        props = {
            "color": PropertyDiff(
                actual="#f00", expected="var(--brand)", expected_token="--brand", delta=5.0, unit="ΔE"
            )
        }
        assert calculate_priority_score(props, Severity.LOW) == 20

    def test_large_font(self):
        """大字号加分"""
        props = {"font-size": _px("28px", "24px", 4.0)}
        assert calculate_priority_score(props, Severity.LOW, ElementMeta(tag="p")) == 10

    def test_capped_at_100(self):
        """上限 100"""
        props = {p: _px("1px", "9px", -8.0) for p in ("display", "gap", "width", "height", "padding-top")}
        props["background-color"] = PropertyDiff(
            actual="#fff", expected="var(--bg)", expected_token="--bg", delta=9.0, unit="ΔE"
        )
        props["color"] = PropertyDiff(
            actual="#fff", expected="var(--fg)", expected_token="--fg", delta=9.0, unit="ΔE"
        )
        props["font-size"] = _px("40px", "32px", 8.0)
        meta = ElementMeta(tag="button", height=200)
        assert calculate_priority_score(props, Severity.HIGH, meta) == 100


class TestPatchHints:
    """修复提示"""

    def test_hint_severity_by_magnitude(self):
        """按差值大小分级"""
        hints = generate_patch_hints(
            {
                "width": _px("90px", "100px", -10.0),
                "height": _px("95px", "100px", -5.0),
                "color": PropertyDiff(actual="#111", expected="#000", delta=2.0, unit="ΔE"),
                "display": PropertyDiff(actual="block", expected="flex", delta=1.0, unit="categorical"),
                "text-align": PropertyDiff(actual="left", expected="center", delta=1.0, unit="categorical"),
            }
        )
        assert {h.property: h.severity for h in hints} == {
            "width": Severity.HIGH,
            "height": Severity.MEDIUM,
            "color": Severity.LOW,
            "display": Severity.HIGH,
            "text-align": Severity.MEDIUM,
        }

    def test_skips_matching_and_auxiliary(self):
        """一致的属性与阴影偏移不生成提示"""
        hints = generate_patch_hints(
            {
                "width": _px("100px", "100px", 0.0),
                "box-shadow-offset-y": _px("2px", "8px", -6.0),
                "gap": PropertyDiff(actual="8px"),
            }
        )
        assert hints == []


class TestDiffUtils:
    """辅助函数"""

    @pytest.mark.parametrize(
        "selector, props, meta",
        [
            ("x", {"display": "none"}, None),
            ("x", {"visibility": "hidden"}, None),
            ("x", {"opacity": "0"}, None),
            ("x", {"width": "0px", "height": "0"}, None),
            ("style", {}, None),
            ("[data-testid=\"a\"]", {}, ElementMeta(tag="template")),
        ],
    )
    def test_noise(self, selector, props, meta):
        """不可见或装饰元素"""
        assert is_noise_element(selector, props, meta)

    def test_not_noise(self):
        """只有一边为 0 或取值为 auto 时不算噪声"""
        assert not is_noise_element("div", {"width": "0px", "height": "auto"})
        assert not is_noise_element("__self__", {"opacity": "0.5"})

    def test_kebab_case(self):
        """camelCase 转换，自定义属性原样保留"""
        assert to_kebab_case("backgroundColor") == "background-color"
        assert to_kebab_case("--brandColor") == "--brandColor"

    def test_number_format(self):
        """整数不带小数点"""
        assert format_number(16.0) == "16"
        assert format_number(1.5) == "1.5"
        assert format_px(-4.0) == "-4px"

    def test_leading_float(self):
        """取字符串开头的数字"""
        assert leading_float("12.5px") == 12.5
        assert leading_float("auto") is None
