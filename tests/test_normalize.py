"""CSS 取值归一化测试"""
import pytest

from figma_fidelity.messages.style_messages import RGB
from figma_fidelity.utils.normalize import (
    norm_line_height,
    normalize_text,
    normalize_text_ex,
    parse_box_shadow,
    parse_box_shadow_offset,
    parse_css_color_to_rgb,
    text_similarity,
    to_px,
)


class TestToPx:
    """长度换算"""

    @pytest.mark.parametrize(
        "value, expected",
        [("16px", 16.0), ("1rem", 16.0), ("1.5em", 24.0), ("0", 0.0), ("12", 12.0), ("-4px", -4.0)],
    )
    def test_units(self, value, expected):
        """px / rem / em / 无单位都能换算"""
        assert to_px(value) == expected

    def test_custom_base_font_size(self):
        """rem 按传入的基准字号换算"""
        assert to_px("2rem", base_font_size=10) == 20.0

    @pytest.mark.parametrize("value", [None, "", "auto", "none", "50%", "calc(1px + 2px)"])
    def test_unparseable_returns_none(self, value):
        """无法解析时返回 None 而不是抛异常"""
        assert to_px(value) is None


class TestLineHeight:
    """行高归一化"""

    def test_normal_is_1_2_times_font_size(self):
        """normal → 1.2 × 字号"""
        assert norm_line_height("normal", 20) == pytest.approx(24.0)

    def test_unitless_multiplier(self):
        """无单位数字视为字号倍数"""
        assert norm_line_height("1.5", 16) == 24.0

    def test_length(self):
        """长度按 px 解析"""
        assert norm_line_height("22px", 16) == 22.0

    def test_empty(self):
        """空值返回 None"""
        assert norm_line_height(None) is None


class TestParseColor:
    """颜色解析"""

    def test_hex_forms(self):
        """#RGB / #RRGGBB / #RRGGBBAA"""
        assert parse_css_color_to_rgb("#f00") == RGB(255, 0, 0)
        assert parse_css_color_to_rgb("#00FF00") == RGB(0, 255, 0)
        assert parse_css_color_to_rgb("#0000ff80") == RGB(0, 0, 255, 128 / 255)

    def test_rgb_and_rgba(self):
        """rgb() 与 rgba()"""
        assert parse_css_color_to_rgb("rgb(1, 2, 3)") == RGB(1, 2, 3)
        assert parse_css_color_to_rgb("rgba(1,2,3,0.5)") == RGB(1, 2, 3, 0.5)

    def test_hsl(self):
        """hsl() 转换为 RGB"""
        assert parse_css_color_to_rgb("hsl(0, 100%, 50%)") == RGB(255, 0, 0)
        assert parse_css_color_to_rgb("hsl(120deg, 100%, 25%)") == RGB(0, 128, 0)

    def test_named_and_transparent(self):
        """命名颜色与 transparent"""
        assert parse_css_color_to_rgb("white") == RGB(255, 255, 255)
        assert parse_css_color_to_rgb("Red") == RGB(255, 0, 0)
        assert parse_css_color_to_rgb("transparent") == RGB(0, 0, 0, 0.0)

    @pytest.mark.parametrize("value", [None, "", "#12", "notacolor", "var(--brand)"])
    def test_unparseable(self, value):
        """无法解析的颜色返回 None"""
        assert parse_css_color_to_rgb(value) is None


class TestBoxShadow:
    """box-shadow 解析"""

    def test_color_last(self):
        """手写 CSS：颜色在长度之后"""
        shadow = parse_box_shadow("0 2px 4px rgba(0,0,0,0.5)")
        assert shadow.blur == 4.0
        assert shadow.rgb == RGB(0, 0, 0, 0.5)

    def test_color_first_computed_style(self):
        """计算样式：颜色在长度之前"""
        shadow = parse_box_shadow("rgb(10, 20, 30) 1px 3px 6px 0px")
        assert shadow.blur == 6.0
        assert shadow.rgb == RGB(10, 20, 30)

    def test_two_lengths_default_blur(self):
        """只有两个长度时模糊半径为 0"""
        assert parse_box_shadow("2px 2px black").blur == 0.0

    def test_only_first_layer(self):
        """多层阴影只取第一层"""
        value = "inset 1px 2px 3px red, 4px 5px 6px blue"
        assert parse_box_shadow(value).rgb == RGB(255, 0, 0)
        assert parse_box_shadow_offset(value) == (1.0, 2.0)

    def test_none(self):
        """none 返回 None"""
        assert parse_box_shadow("none") is None
        assert parse_box_shadow_offset("none") == (None, None)


class TestText:
    """文本归一化与相似度"""

    def test_normalize_text(self):
        """NFKC + 去首尾空白 + 折叠空白"""
        assert normalize_text("  Ｈｅｌｌｏ \n  world ") == "Hello world"

    def test_normalize_text_ex_case_insensitive(self):
        """case_sensitive=False 时转小写"""
        assert normalize_text_ex("  Hello  World ", case_sensitive=False) == "hello world"

    def test_normalize_text_ex_keeps_whitespace_when_disabled(self):
        """关闭 trim / collapse 时保留空白"""
        assert normalize_text_ex(" a  b ", trim=False, collapse_whitespace=False) == " a  b "

    def test_similarity_bounds(self):
        """相同为 1，一侧为空为 0"""
        assert text_similarity("Sign in", "Sign in") == 1.0
        assert text_similarity("", "abc") == 0.0

    def test_similarity_partial(self):
        """部分重合介于 0 和 1 之间"""
        score = text_similarity("Sign in now", "Sign up now")
        assert 0.0 < score < 1.0
