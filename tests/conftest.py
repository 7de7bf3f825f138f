"""
公共测试夹具 — 在内存中用 numpy + Pillow 合成 PNG，不依赖磁盘上的图片
"""
import base64
import io

import numpy as np
import pytest
from PIL import Image

from figma_fidelity.config import schema, settings

RED = (255, 0, 0)
BLUE = (0, 0, 255)
WHITE = (255, 255, 255)


def solid_rgba(width: int, height: int, color: tuple[int, int, int], alpha: int = 255) -> np.ndarray:
    pixels = np.zeros((height, width, 4), dtype=np.uint8)
    pixels[..., :3] = color
    pixels[..., 3] = alpha
    return pixels


def png_b64(pixels: np.ndarray) -> str:
    buffer = io.BytesIO()
    Image.fromarray(pixels).save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode("ascii")


def solid_png_b64(width: int, height: int, color: tuple[int, int, int]) -> str:
    return png_b64(solid_rgba(width, height, color))


def framed_png_b64(size: int, inner: int, color: tuple[int, int, int], border=WHITE) -> str:
    """size×size 白底，中心放置 inner×inner 的纯色块"""
    pixels = solid_rgba(size, size, border)
    start = (size - inner) // 2
    pixels[start:start + inner, start:start + inner, :3] = color
    return png_b64(pixels)


@pytest.fixture
def red_100() -> str:
    return solid_png_b64(100, 100, RED)


@pytest.fixture
def blue_100() -> str:
    return solid_png_b64(100, 100, BLUE)


@pytest.fixture
def png_files(tmp_path):
    """写入磁盘的一对 PNG（相同的 20×20 红色块）"""

    def _write(name: str, b64: str) -> str:
        path = tmp_path / name
        path.write_bytes(base64.b64decode(b64))
        return str(path)

    reference = _write("reference.png", solid_png_b64(20, 20, RED))
    actual = _write("actual.png", solid_png_b64(20, 20, RED))
    return reference, actual, _write


@pytest.fixture
def clean_env(monkeypatch):
    """屏蔽宿主环境里的对比配置"""
    for key in schema._ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(settings, "QUALITY_GATE_PROFILE", "")
