"""
还原度检查工具函数

供智能体使用：传入设计稿与实现截图路径，返回可读的检查结论文本。
工具本身不抛异常，文件缺失、对比失败都以文本形式返回。
"""
import logging
from typing import Optional

from autogen_core.tools import FunctionTool

from figma_fidelity.config.schema import load_comparison_config, merge_comparison_config
from figma_fidelity.gate.fix_recommendations import format_recommendations_as_markdown
from figma_fidelity.messages.errors import FidelityError
from figma_fidelity.utils.input_parser import build_compare_request
from figma_fidelity.workflow.orchestrator import run_fidelity_check

logger = logging.getLogger(__name__)


def compare_fidelity_tool(
    reference_path: str,
    actual_path: str,
    size_mode: str = "strict",
    styles_path: Optional[str] = None,
    expected_path: Optional[str] = None,
    profile: Optional[str] = None,
) -> str:
    """对比设计稿截图与实现截图的还原度，并给出质量门禁结论。

    Args:
        reference_path: 设计稿截图 PNG 路径
        actual_path: 实现截图 PNG 路径
        size_mode: 尺寸不一致时的处理方式（strict / pad / crop / scale）
        styles_path: 实现样式表 JSON 路径（可选）
        expected_path: 期望样式表 JSON 路径（可选）
        profile: 质量门禁预设名（可选，如 component/dev）

    Returns:
        检查结论文本，包含像素差异率、CQI、是否通过与修复建议
    """
    try:
        request = build_compare_request(
            reference_path, actual_path, styles_path=styles_path, expected_path=expected_path
        )
        config = merge_comparison_config({"size_mode": size_mode}, base=load_comparison_config())
        report = run_fidelity_check(request, config=config, profile_name=profile)
    except FileNotFoundError as e:
        return f"截图或样式文件不存在: {e}"
    except OSError as e:
        logger.warning("读取输入文件失败: %s", e)
        return f"截图或样式文件无法读取: {e}"
    except FidelityError as e:
        logger.warning("还原度检查失败: %s", e.message)
        return f"还原度检查失败 [{e.code}]: {e.message}"

    result = report.compare
    lines = [
        f"像素差异率: {result.pixel_diff_ratio:.2%}",
    ]
    if result.pixel_diff_ratio_content is not None:
        lines.append(f"内容区差异率: {result.pixel_diff_ratio_content:.2%}")
    if report.style_summary is not None:
        lines.append(f"样式还原度: {report.style_summary.style_fidelity_score}/100")
    lines.append(f"CQI: {report.gate.cqi}/100")
    lines.append(f"结果: {'通过 ✓' if report.passed else '未通过 ✗'}")
    lines.extend(f"  - {reason}" for reason in report.gate.reasons + report.profile_reasons)
    if report.recommendations:
        lines.append("")
        lines.append(format_recommendations_as_markdown(report.recommendations))
    return "\n".join(lines)


def create_compare_tools() -> list[FunctionTool]:
    """创建还原度检查工具列表，可直接注入 AssistantAgent(tools=...)。"""
    return [
        FunctionTool(
            compare_fidelity_tool,
            description="对比设计稿截图与实现截图的还原度，返回像素差异、样式还原度与门禁结论",
        ),
    ]
