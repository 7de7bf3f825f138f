"""
对比输入解析器

把命令行 / 工具调用传入的文件路径加载为一次对比请求：
  - 两张 PNG（设计稿、实现截图）读为 base64
  - 可选 JSON：实现样式表、期望样式表、DOM 元数据、设计令牌
"""
import base64
import json
import os
import re
from dataclasses import dataclass
from typing import Any, Optional

from figma_fidelity.messages.errors import ConfigError
from figma_fidelity.messages.style_messages import RGB

_HEX6 = re.compile(r"^#?([0-9a-fA-F]{6})$")
_HEX3 = re.compile(r"^#?([0-9a-fA-F]{3})$")


@dataclass
class CompareRequest:
    """一次对比所需的全部输入"""

    figma_png_b64: str
    impl_png_b64: str
    styles: Optional[dict[str, dict[str, str]]] = None
    expected_spec: Optional[dict[str, dict[str, str]]] = None
    meta: Optional[dict[str, dict[str, Any]]] = None
    tokens: Optional[dict[str, dict[str, str]]] = None
    figma_path: Optional[str] = None
    impl_path: Optional[str] = None

    @property
    def has_style_inputs(self) -> bool:
        return bool(self.styles) and bool(self.expected_spec)


# ============================================================
# 文件加载
# ============================================================


def load_png_b64(path: str) -> str:
    """读取 PNG 文件并转为 base64。

    Raises:
        FileNotFoundError: 文件不存在
    """
    if not os.path.isfile(path):
        raise FileNotFoundError(path)
    with open(path, "rb") as f:
        return base64.b64encode(f.read()).decode("ascii")


def load_json_file(path: str, label: str) -> dict[str, Any]:
    """读取 JSON 对象文件。

    Raises:
        FileNotFoundError: 文件不存在
        ConfigError: 文件不可读、不是 UTF-8 文本或不是合法的 JSON 对象
    """
    if not os.path.isfile(path):
        raise FileNotFoundError(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ConfigError(
            f"{label} file is not valid JSON: {path}: {e}",
            code=ConfigError.INVALID_VALUE,
            field=label,
        ) from e
    except OSError as e:
        raise ConfigError(
            f"{label} file could not be read: {path}: {e}",
            code=ConfigError.INVALID_VALUE,
            field=label,
        ) from e
    if not isinstance(data, dict):
        raise ConfigError(
            f"{label} file must contain a JSON object: {path}",
            code=ConfigError.INVALID_VALUE,
            field=label,
        )
    return data


def build_compare_request(
    reference_path: str,
    actual_path: str,
    styles_path: Optional[str] = None,
    expected_path: Optional[str] = None,
    meta_path: Optional[str] = None,
    tokens_path: Optional[str] = None,
) -> CompareRequest:
    """按路径加载一次对比请求，未给出的可选文件保持为 None"""
    return CompareRequest(
        figma_png_b64=load_png_b64(reference_path),
        impl_png_b64=load_png_b64(actual_path),
        styles=load_json_file(styles_path, "styles") if styles_path else None,
        expected_spec=load_json_file(expected_path, "expected") if expected_path else None,
        meta=load_json_file(meta_path, "meta") if meta_path else None,
        tokens=load_json_file(tokens_path, "tokens") if tokens_path else None,
        figma_path=reference_path,
        impl_path=actual_path,
    )


# ============================================================
# 参数解析
# ============================================================


def parse_pad_color(value: str) -> str | RGB:
    """解析补齐色参数：'auto' 原样返回，#rrggbb / #rgb 转为 RGB。

    Raises:
        ValueError: 取值不是 auto 也不是十六进制颜色
    """
    value = value.strip()
    if value.lower() == "auto":
        return "auto"

    match = _HEX6.match(value)
    if match:
        h = match.group(1)
        return RGB(int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16))

    match = _HEX3.match(value)
    if match:
        h = match.group(1)
        return RGB(int(h[0] * 2, 16), int(h[1] * 2, 16), int(h[2] * 2, 16))

    raise ValueError(f"pad color must be 'auto' or a hex color like #ffffff, got {value!r}")
