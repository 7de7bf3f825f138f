"""
全局配置 — 像素匹配参数、尺寸处理方式、样式容差、门禁阈值、日志级别
"""
import os

from dotenv import load_dotenv

# ============================================================
# 项目根目录
# ============================================================
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# 加载 .env 文件（位于项目根目录）
load_dotenv(os.path.join(PROJECT_ROOT, ".env"))


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# ============================================================
# 像素匹配
# ============================================================
PIXELMATCH_THRESHOLD = float(os.getenv("PIXELMATCH_THRESHOLD", "0.1"))   # YIQ 色差阈值 (0-1)
INCLUDE_AA = _env_bool("INCLUDE_AA")                                     # True 时抗锯齿像素也计为差异

# ============================================================
# 尺寸处理
# ============================================================
SIZE_MODE = os.getenv("SIZE_MODE", "strict")            # strict / pad / crop / scale
ALIGN = os.getenv("ALIGN", "center")
PAD_COLOR = os.getenv("PAD_COLOR", "auto")              # auto 或 #rrggbb
CONTENT_BASIS = os.getenv("CONTENT_BASIS", "union")     # union / intersection / figma / impl

# ============================================================
# 样式容差（比例值；ΔE 为绝对值）
# ============================================================
TOLERANCE_DELTA_E = float(os.getenv("TOLERANCE_DELTA_E", "3.0"))
TOLERANCE_SPACING = float(os.getenv("TOLERANCE_SPACING", "0.15"))
TOLERANCE_DIMENSION = float(os.getenv("TOLERANCE_DIMENSION", "0.05"))
TOLERANCE_LAYOUT_GAP = float(os.getenv("TOLERANCE_LAYOUT_GAP", "0.1"))
TOLERANCE_RADIUS = float(os.getenv("TOLERANCE_RADIUS", "0.12"))
TOLERANCE_BORDER_WIDTH = float(os.getenv("TOLERANCE_BORDER_WIDTH", "0.3"))
TOLERANCE_SHADOW_BLUR = float(os.getenv("TOLERANCE_SHADOW_BLUR", "0.15"))
TOLERANCE_SHADOW_COLOR_EXTRA_DE = float(os.getenv("TOLERANCE_SHADOW_COLOR_EXTRA_DE", "1.0"))

# ============================================================
# 质量门禁
# ============================================================
ACCEPTANCE_PIXEL_DIFF_RATIO = float(os.getenv("ACCEPTANCE_PIXEL_DIFF_RATIO", "0.01"))
ACCEPTANCE_DELTA_E = float(os.getenv("ACCEPTANCE_DELTA_E", "5.0"))
AREA_GAP_CRITICAL = float(os.getenv("AREA_GAP_CRITICAL", "0.15"))    # 面积差超过即判定失败
AREA_GAP_WARNING = float(os.getenv("AREA_GAP_WARNING", "0.05"))      # 仅追加提示
QUALITY_GATE_PROFILE = os.getenv("QUALITY_GATE_PROFILE", "")         # 为空时使用上面的阈值

# ============================================================
# 日志
# ============================================================
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
