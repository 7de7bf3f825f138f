"""
像素级感知对比 — pixelmatch 算法的 numpy 向量化实现

逐像素计算 YIQ 加权色差，超过阈值的像素视为差异；
可选检测抗锯齿像素（亮度邻域测试 + 两图中"多个相同邻居"测试），抗锯齿像素不计入差异。

输出差异图配色：
  - 差异像素：红色 (255, 0, 0)
  - 抗锯齿像素：黄色 (255, 255, 0)
  - 其余像素：原图灰度淡化（alpha 0.1）
"""

import numpy as np


DIFF_COLOR = (255, 0, 0)
AA_COLOR = (255, 255, 0)
GRAY_ALPHA = 0.1

# YIQ 色差的最大可能值（全黑 vs 全白）
MAX_YIQ_DELTA = 35215

# 邻域遍历顺序：x 外层、y 内层，与 pixelmatch 一致（决定并列极值时取哪个邻居）
_OFFSETS = [(dx, dy) for dx in (-1, 0, 1) for dy in (-1, 0, 1) if (dx, dy) != (0, 0)]
_DX = np.array([o[0] for o in _OFFSETS])
_DY = np.array([o[1] for o in _OFFSETS])


# ============================================================
# 颜色空间
# ============================================================


def _blend_white(img: np.ndarray) -> np.ndarray:
    """按 alpha 与白色混合，返回 float64 的 (H, W, 3)。"""
    rgb = img[..., :3].astype(np.float64)
    alpha = img[..., 3:4].astype(np.float64) / 255.0
    return 255.0 + (rgb - 255.0) * alpha


def _rgb2y(rgb: np.ndarray) -> np.ndarray:
    return rgb[..., 0] * 0.29889531 + rgb[..., 1] * 0.58662247 + rgb[..., 2] * 0.11448223


def _rgb2i(rgb: np.ndarray) -> np.ndarray:
    return rgb[..., 0] * 0.59597799 - rgb[..., 1] * 0.2741761 - rgb[..., 2] * 0.32180189


def _rgb2q(rgb: np.ndarray) -> np.ndarray:
    return rgb[..., 0] * 0.21147017 - rgb[..., 1] * 0.52261711 + rgb[..., 2] * 0.31114694


def _yiq_delta(img1: np.ndarray, img2: np.ndarray) -> np.ndarray:
    """逐像素 YIQ 加权色差（非负），完全相同的像素为 0。"""
    rgb1 = _blend_white(img1)
    rgb2 = _blend_white(img2)
    y = _rgb2y(rgb1) - _rgb2y(rgb2)
    i = _rgb2i(rgb1) - _rgb2i(rgb2)
    q = _rgb2q(rgb1) - _rgb2q(rgb2)
    delta = 0.5053 * y * y + 0.299 * i * i + 0.1957 * q * q
    identical = np.all(img1 == img2, axis=-1)
    delta[identical] = 0.0
    return delta


# ============================================================
# 抗锯齿检测
# ============================================================


def _shift_slices(d: int, n: int) -> tuple[slice, slice]:
    """返回 (中心切片, 邻居切片)，邻居 = 中心 + d，越界部分剔除"""
    return slice(max(0, -d), n - max(0, d)), slice(max(0, d), n - max(0, -d))


def _edge_mask(ys: np.ndarray, xs: np.ndarray, height: int, width: int) -> np.ndarray:
    return (xs == 0) | (xs == width - 1) | (ys == 0) | (ys == height - 1)


def _many_siblings(img: np.ndarray) -> np.ndarray:
    """每个像素是否有 3 个以上完全相同的邻居（位于边缘计 1 个）。"""
    height, width = img.shape[:2]
    packed = np.ascontiguousarray(img).view(np.uint32)[..., 0]

    ys, xs = np.indices((height, width))
    count = _edge_mask(ys, xs, height, width).astype(np.int8)
    for dx, dy in _OFFSETS:
        cy, ny = _shift_slices(dy, height)
        cx, nx = _shift_slices(dx, width)
        count[cy, cx] += packed[cy, cx] == packed[ny, nx]
    return count > 2


def _antialiased(
    luma: np.ndarray,
    siblings: np.ndarray,
    other_siblings: np.ndarray,
    ys: np.ndarray,
    xs: np.ndarray,
) -> np.ndarray:
    """判断候选像素是否为抗锯齿像素。

    Args:
        luma: 被检测图像的亮度（Y）
        siblings: 被检测图像的"多相同邻居"标记
        other_siblings: 另一张图像的"多相同邻居"标记
        ys, xs: 候选像素坐标

    Returns:
        与候选像素等长的布尔数组
    """
    height, width = luma.shape
    n = len(ys)
    zeroes = _edge_mask(ys, xs, height, width).astype(np.int32)
    deltas = np.zeros((len(_OFFSETS), n), dtype=np.float64)
    valid = np.zeros((len(_OFFSETS), n), dtype=bool)

    center = luma[ys, xs]
    for k, (dx, dy) in enumerate(_OFFSETS):
        nx = xs + dx
        ny = ys + dy
        inside = (nx >= 0) & (nx < width) & (ny >= 0) & (ny < height)
        d = center - luma[np.clip(ny, 0, height - 1), np.clip(nx, 0, width - 1)]
        valid[k] = inside
        deltas[k] = np.where(inside, d, 0.0)
        zeroes += inside & (d == 0)

    negatives = np.where(valid & (deltas < 0), deltas, 0.0)
    positives = np.where(valid & (deltas > 0), deltas, 0.0)
    min_k = np.argmin(negatives, axis=0)
    max_k = np.argmax(positives, axis=0)
    cols = np.arange(n)
    min_v = negatives[min_k, cols]
    max_v = positives[max_k, cols]

    # 相同邻居过多，或只在一个方向上有亮度变化 → 不是抗锯齿
    candidate = (zeroes <= 2) & (min_v != 0) & (max_v != 0)

    def _has_siblings(k: np.ndarray) -> np.ndarray:
        py = np.clip(ys + _DY[k], 0, height - 1)
        px = np.clip(xs + _DX[k], 0, width - 1)
        return siblings[py, px] & other_siblings[py, px]

    return candidate & (_has_siblings(min_k) | _has_siblings(max_k))


# ============================================================
# 入口
# ============================================================


def pixelmatch(
    img1: np.ndarray,
    img2: np.ndarray,
    threshold: float = 0.1,
    include_aa: bool = False,
) -> tuple[int, np.ndarray, np.ndarray]:
    """对比两张同尺寸 RGBA 图像。

    Args:
        img1: 参考图，uint8 数组 (H, W, 4)
        img2: 实现图，uint8 数组 (H, W, 4)
        threshold: 匹配阈值 [0, 1]，越小越敏感
        include_aa: True 时抗锯齿像素也计为差异（跳过检测）

    Returns:
        (差异像素数, 差异图 uint8 (H, W, 4), 差异像素掩码 bool (H, W))
    """
    if img1.shape != img2.shape or img1.ndim != 3 or img1.shape[2] != 4:
        raise ValueError(f"Image sizes do not match: {img1.shape} vs {img2.shape}")

    height, width = img1.shape[:2]
    max_delta = MAX_YIQ_DELTA * threshold * threshold

    exceeded = _yiq_delta(img1, img2) > max_delta
    aa_mask = np.zeros((height, width), dtype=bool)

    if not include_aa and exceeded.any():
        ys, xs = np.nonzero(exceeded)
        siblings1 = _many_siblings(img1)
        siblings2 = _many_siblings(img2)
        luma1 = _rgb2y(_blend_white(img1))
        luma2 = _rgb2y(_blend_white(img2))
        is_aa = _antialiased(luma1, siblings1, siblings2, ys, xs) | _antialiased(
            luma2, siblings2, siblings1, ys, xs
        )
        aa_mask[ys[is_aa], xs[is_aa]] = True

    diff_mask = exceeded & ~aa_mask

    # 底图：参考图灰度淡化
    luma = _rgb2y(img1[..., :3].astype(np.float64))
    alpha = img1[..., 3].astype(np.float64) / 255.0
    gray = np.clip(np.rint(255.0 + (luma - 255.0) * GRAY_ALPHA * alpha), 0, 255).astype(np.uint8)
    output = np.empty((height, width, 4), dtype=np.uint8)
    output[..., 0] = gray
    output[..., 1] = gray
    output[..., 2] = gray
    output[..., 3] = 255
    output[aa_mask, :3] = AA_COLOR
    output[diff_mask, :3] = DIFF_COLOR

    return int(diff_mask.sum()), output, diff_mask
