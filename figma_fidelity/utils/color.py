"""
感知色差计算 — sRGB → XYZ（D65）→ CIE L*a*b* → CIEDE2000

色彩空间转换与 CIEDE2000 公式均交给 scikit-image（skimage.color），
本模块只负责 RGB 值对象与 numpy 数组之间的转换。alpha 通道不参与色差。
"""

import numpy as np
from skimage import color as skcolor

from figma_fidelity.messages.style_messages import RGB, Lab


def _to_unit_array(rgb: RGB) -> np.ndarray:
    """RGB(0-255) → shape (1, 1, 3) 的 [0,1] 浮点数组"""
    return np.array([[[rgb.r, rgb.g, rgb.b]]], dtype=np.float64) / 255.0


def rgb_to_xyz(rgb: RGB) -> tuple[float, float, float]:
    """sRGB 伽马解码后按 D65 白点转换到 XYZ。"""
    x, y, z = skcolor.rgb2xyz(_to_unit_array(rgb))[0, 0]
    return float(x), float(y), float(z)


def xyz_to_lab(xyz: tuple[float, float, float]) -> Lab:
    L, a, b = skcolor.xyz2lab(np.array([[xyz]], dtype=np.float64), illuminant="D65")[0, 0]
    return Lab(float(L), float(a), float(b))


def rgb_to_lab(rgb: RGB) -> Lab:
    return xyz_to_lab(rgb_to_xyz(rgb))


def delta_e2000(rgb1: RGB, rgb2: RGB) -> float:
    """计算两个颜色的 CIEDE2000 色差（kL = kC = kH = 1）。

    Args:
        rgb1: 第一个颜色
        rgb2: 第二个颜色

    Returns:
        ΔE00，相同颜色为 0；约 2~3 为刚可察觉差异，>10 为明显不同
    """
    if (rgb1.r, rgb1.g, rgb1.b) == (rgb2.r, rgb2.g, rgb2.b):
        return 0.0

    lab1 = rgb_to_lab(rgb1)
    lab2 = rgb_to_lab(rgb2)
    de = skcolor.deltaE_ciede2000(
        np.array([[lab1.L, lab1.a, lab1.b]]),
        np.array([[lab2.L, lab2.a, lab2.b]]),
        kL=1,
        kC=1,
        kH=1,
    )
    value = float(de[0])
    # NaN 视为无差异
    return value if np.isfinite(value) else 0.0
