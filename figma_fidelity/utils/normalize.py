"""
CSS 取值归一化工具

把浏览器计算样式 / 设计稿导出的各种字符串表示统一成可比较的数值：
  - 长度（px / rem / em / 无单位 0）
  - 行高（normal / 无单位倍数 / 长度）
  - 颜色（#hex、rgb()/rgba()、hsl()/hsla()、CSS 命名颜色、transparent）
  - box-shadow（仅取第一层阴影的模糊半径、颜色、偏移）
  - 文本（NFKC + 去首尾空白 + 折叠空白）

所有解析函数在无法解析时返回 None，从不抛异常；调用方把 None 视为"跳过该属性"。
"""
import re
import unicodedata
from typing import Optional

from PIL import ImageColor

from figma_fidelity.messages.style_messages import RGB, BoxShadow


_LENGTH_RE = re.compile(r"^(-?[\d.]+)(px|rem|em)?$")
_UNITLESS_RE = re.compile(r"^[\d.]+$")
_RGB_RE = re.compile(
    r"^rgba?\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*(?:,\s*([\d.]+)\s*)?\)$", re.IGNORECASE
)
_HSL_RE = re.compile(
    r"^hsla?\(\s*([\d.]+)(?:deg)?\s*,\s*([\d.]+)%\s*,\s*([\d.]+)%\s*(?:,\s*([\d.]+)\s*)?\)$",
    re.IGNORECASE,
)
_TOKEN_SPLIT_RE = re.compile(r"[\s,.;:(){}\[\]<>\"'、。？！・]+")


# ============================================================
# 长度
# ============================================================


def to_px(value: Optional[str], base_font_size: float = 16) -> Optional[float]:
    """把 CSS 长度转换为像素。

    Args:
        value: CSS 长度（如 '16px'、'1rem'、'1.5em'、'0'）
        base_font_size: rem / em 换算基准字号（px）

    Returns:
        像素值；auto / none / 无法解析时返回 None
    """
    if not value or value in ("auto", "none"):
        return None

    trimmed = value.strip()
    if trimmed == "0":
        return 0.0

    match = _LENGTH_RE.match(trimmed)
    if not match:
        return None
    try:
        num = float(match.group(1))
    except ValueError:
        return None

    unit = match.group(2) or "px"
    if unit == "px":
        return num
    # rem 与 em 都按基准字号换算
    return num * base_font_size


def norm_line_height(value: Optional[str], font_size: float = 16) -> Optional[float]:
    """把 line-height 归一化为像素。

    'normal' 视为 1.2 × 字号；无单位数字视为字号倍数；其余按长度解析。
    """
    if not value:
        return None

    trimmed = value.strip()
    if trimmed == "normal":
        return 1.2 * font_size

    if _UNITLESS_RE.match(trimmed):
        try:
            return float(trimmed) * font_size
        except ValueError:
            return None

    return to_px(trimmed, font_size)


# ============================================================
# 颜色
# ============================================================


def _hsl_to_rgb(h: float, s: float, l: float) -> tuple[int, int, int]:
    """HSL（h: 0-360，s/l: 0-100）转 RGB。"""
    h = h % 360
    s = max(0.0, min(100.0, s)) / 100
    l = max(0.0, min(100.0, l)) / 100

    c = (1 - abs(2 * l - 1)) * s
    x = c * (1 - abs((h / 60) % 2 - 1))
    m = l - c / 2

    if h < 60:
        r, g, b = c, x, 0.0
    elif h < 120:
        r, g, b = x, c, 0.0
    elif h < 180:
        r, g, b = 0.0, c, x
    elif h < 240:
        r, g, b = 0.0, x, c
    elif h < 300:
        r, g, b = x, 0.0, c
    else:
        r, g, b = c, 0.0, x

    # JS Math.round 语义（.5 向上取整），避免 Python 的银行家舍入
    def _round(v: float) -> int:
        return int((v + m) * 255 + 0.5)

    return _round(r), _round(g), _round(b)


def _parse_hex(hex_part: str) -> Optional[RGB]:
    if not re.fullmatch(r"[0-9a-fA-F]+", hex_part or ""):
        return None
    if len(hex_part) == 3:
        r, g, b = (int(ch * 2, 16) for ch in hex_part)
        return RGB(r, g, b)
    if len(hex_part) == 6:
        return RGB(int(hex_part[0:2], 16), int(hex_part[2:4], 16), int(hex_part[4:6], 16))
    if len(hex_part) == 8:
        return RGB(
            int(hex_part[0:2], 16),
            int(hex_part[2:4], 16),
            int(hex_part[4:6], 16),
            int(hex_part[6:8], 16) / 255,
        )
    return None


def parse_css_color_to_rgb(value: Optional[str]) -> Optional[RGB]:
    """解析 CSS 颜色字符串。

    支持 #RGB / #RRGGBB / #RRGGBBAA、rgb() / rgba()、hsl() / hsla()、
    CSS 命名颜色（含 transparent → alpha 0）。

    Returns:
        RGB 值；无法解析时返回 None（调用方应跳过该属性对比）
    """
    if not value:
        return None

    trimmed = value.strip()

    if trimmed.startswith("#"):
        return _parse_hex(trimmed[1:])

    rgb_match = _RGB_RE.match(trimmed)
    if rgb_match:
        r, g, b = (int(rgb_match.group(i)) for i in (1, 2, 3))
        alpha = rgb_match.group(4)
        if alpha is None:
            return RGB(r, g, b)
        try:
            return RGB(r, g, b, float(alpha))
        except ValueError:
            return None

    hsl_match = _HSL_RE.match(trimmed)
    if hsl_match:
        try:
            h, s, l = (float(hsl_match.group(i)) for i in (1, 2, 3))
            alpha = float(hsl_match.group(4)) if hsl_match.group(4) else None
        except ValueError:
            return None
        r, g, b = _hsl_to_rgb(h, s, l)
        return RGB(r, g, b, alpha)

    name = trimmed.lower()
    if name == "transparent":
        return RGB(0, 0, 0, 0.0)
    if name in ImageColor.colormap:
        r, g, b = ImageColor.getrgb(name)[:3]
        return RGB(r, g, b)

    return None


# ============================================================
# box-shadow
# ============================================================


def _split_top_level(value: str, separator: str) -> list[str]:
    """按分隔符切分，忽略括号内部（rgba(0,0,0,.5) 中的逗号不算分隔）。"""
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for ch in value:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth = max(0, depth - 1)

        is_separator = ch.isspace() if separator == " " else ch == separator
        if is_separator and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
    parts.append("".join(current))
    return [p.strip() for p in parts if p.strip()]


def _first_shadow_tokens(value: Optional[str]) -> Optional[tuple[list[float], Optional[str]]]:
    """返回第一层阴影的长度列表与颜色文本。"""
    if not value or value.strip() == "none":
        return None

    layers = _split_top_level(value.strip(), ",")
    if not layers:
        return None

    lengths: list[float] = []
    color: Optional[str] = None
    for token in _split_top_level(layers[0], " "):
        if token.lower() == "inset":
            continue
        px = to_px(token)
        if px is not None:
            lengths.append(px)
        elif color is None:
            color = token

    if len(lengths) < 2:
        return None
    return lengths, color


def parse_box_shadow(value: Optional[str]) -> Optional[BoxShadow]:
    """解析 box-shadow，只取第一层阴影的模糊半径与颜色。

    支持可选的 inset 关键字，颜色可在长度之前（浏览器计算样式）或之后（手写 CSS）。
    """
    parsed = _first_shadow_tokens(value)
    if parsed is None:
        return None
    lengths, color = parsed
    blur = lengths[2] if len(lengths) >= 3 else 0.0
    return BoxShadow(blur=blur, rgb=parse_css_color_to_rgb(color))


def parse_box_shadow_offset(value: Optional[str]) -> tuple[Optional[float], Optional[float]]:
    """提取第一层阴影的 offset-x / offset-y（像素）。"""
    parsed = _first_shadow_tokens(value)
    if parsed is None:
        return None, None
    lengths, _color = parsed
    return lengths[0], lengths[1]


# ============================================================
# 文本
# ============================================================


def normalize_text(value: str) -> str:
    """NFKC 归一化 + 去首尾空白 + 连续空白折叠为单个空格。"""
    return re.sub(r"\s+", " ", unicodedata.normalize("NFKC", value).strip())


def normalize_text_ex(
    value: Optional[str],
    nfkc: bool = True,
    trim: bool = True,
    collapse_whitespace: bool = True,
    case_sensitive: bool = True,
) -> str:
    """可配置的文本归一化。"""
    text = str(value if value is not None else "")
    if nfkc:
        text = unicodedata.normalize("NFKC", text)
    if trim:
        text = text.strip()
    if collapse_whitespace:
        text = re.sub(r"\s+", " ", text)
    if not case_sensitive:
        text = text.lower()
    return text


def text_similarity(a: str, b: str) -> float:
    """轻量文本相似度（0-1）：80% 词元重合度 + 20% 逐字符位置匹配。"""
    if a == b:
        return 1.0

    left = re.sub(r"\s+", " ", a).strip()
    right = re.sub(r"\s+", " ", b).strip()
    if not left and not right:
        return 1.0
    if not left or not right:
        return 0.0

    max_len = max(len(left), len(right))
    pos_matches = sum(1 for x, y in zip(left, right) if x == y) / max_len

    tokens_a = [t for t in _TOKEN_SPLIT_RE.split(left.lower()) if t]
    tokens_b = [t for t in _TOKEN_SPLIT_RE.split(right.lower()) if t]
    counts_b: dict = {}
    for token in tokens_b:
        counts_b[token] = counts_b.get(token, 0) + 1
    counts_a: dict = {}
    for token in tokens_a:
        counts_a[token] = counts_a.get(token, 0) + 1
    overlap = sum(min(n, counts_b.get(t, 0)) for t, n in counts_a.items())
    token_score = overlap / max(len(tokens_a), len(tokens_b), 1)

    return token_score * 0.8 + pos_matches * 0.2
