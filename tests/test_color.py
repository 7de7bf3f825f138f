"""CIEDE2000 色差测试"""
import pytest

from figma_fidelity.messages.style_messages import RGB
from figma_fidelity.utils.color import delta_e2000, rgb_to_lab, rgb_to_xyz

PAIRS = [
    (RGB(255, 0, 0), RGB(0, 0, 255)),
    (RGB(12, 200, 33), RGB(14, 198, 40)),
    (RGB(0, 0, 0), RGB(255, 255, 255)),
    (RGB(128, 128, 128), RGB(130, 127, 125)),
]


class TestColorSpace:
    """色彩空间转换"""

    def test_white_xyz_is_d65_white_point(self):
        """白色 → D65 白点"""
        x, y, z = rgb_to_xyz(RGB(255, 255, 255))
        assert x == pytest.approx(0.95047, abs=1e-3)
        assert y == pytest.approx(1.0, abs=1e-3)
        assert z == pytest.approx(1.08883, abs=1e-3)

    def test_lab_of_black_and_white(self):
        """黑色 L=0，白色 L=100"""
        assert rgb_to_lab(RGB(0, 0, 0)).L == pytest.approx(0.0, abs=1e-6)
        assert rgb_to_lab(RGB(255, 255, 255)).L == pytest.approx(100.0, abs=1e-2)


class TestDeltaE2000:
    """CIEDE2000"""

    def test_identity_is_zero(self):
        """相同颜色色差为 0"""
        for color, _ in PAIRS:
            assert delta_e2000(color, color) == 0.0

    def test_alpha_ignored(self):
        """alpha 不参与色差"""
        assert delta_e2000(RGB(10, 20, 30, 0.5), RGB(10, 20, 30)) == 0.0

    @pytest.mark.parametrize("c1, c2", PAIRS)
    def test_symmetric(self, c1, c2):
        """色差与顺序无关"""
        assert delta_e2000(c1, c2) == pytest.approx(delta_e2000(c2, c1), abs=1e-9)

    def test_red_vs_blue_is_large(self):
        """红蓝差异很大"""
        assert delta_e2000(RGB(255, 0, 0), RGB(0, 0, 255)) > 50

    def test_black_vs_white(self):
        """黑白色差为 100"""
        assert delta_e2000(RGB(0, 0, 0), RGB(255, 255, 255)) == pytest.approx(100.0, abs=0.1)

    def test_near_colors_are_small(self):
        """相近颜色色差很小"""
        assert delta_e2000(RGB(128, 128, 128), RGB(129, 128, 128)) < 1.0
