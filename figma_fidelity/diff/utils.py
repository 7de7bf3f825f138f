"""
样式对比辅助函数 — 噪声元素过滤、属性名归一化、JS 风格数值格式化
"""
import re
from typing import Mapping, Optional

from figma_fidelity.messages.style_messages import ElementMeta
from figma_fidelity.utils.normalize import to_px

_DECORATIVE_TAGS = re.compile(r"^(script|style|meta|link|template|noscript|head|title)$", re.IGNORECASE)
_LEADING_TAG = re.compile(r"^([a-z]+)", re.IGNORECASE)


def is_noise_element(
    selector: str,
    props: Mapping[str, str],
    meta: Optional[ElementMeta] = None,
) -> bool:
    """判断元素是否为噪声（不可见或纯装饰），噪声元素不参与样式对比。

    不可见：display:none、visibility:hidden、opacity:0、宽高同时为 0。
    装饰：script / style / meta / link / template / noscript / head / title 标签。
    """
    if props.get("display") == "none":
        return True
    if props.get("visibility") == "hidden":
        return True
    if props.get("opacity") == "0":
        return True

    # 只有宽和高都为 0 才算（auto / fit-content 解析为 None）
    if to_px(props.get("width")) == 0 and to_px(props.get("height")) == 0:
        return True

    tag_from_meta = meta.tag if meta and meta.tag else None
    match = _LEADING_TAG.match(selector)
    tag_from_selector = match.group(1) if match else None
    for tag in (tag_from_meta, tag_from_selector):
        if tag and _DECORATIVE_TAGS.match(tag):
            return True
    return False


def to_kebab_case(prop: str) -> str:
    """camelCase → kebab-case；CSS 自定义属性（--x）原样返回"""
    if prop.startswith("--"):
        return prop
    return re.sub(r"[A-Z]", lambda m: "-" + m.group(0).lower(), prop)


def format_number(value: float) -> str:
    """按 JS 的数值字符串习惯输出：整数不带小数点（16.0 → '16'）"""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def format_px(value: float) -> str:
    return f"{format_number(value)}px"
