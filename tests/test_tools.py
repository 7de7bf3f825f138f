"""智能体工具测试：结论文本、异常输入不抛出、FunctionTool 调用链路"""
import asyncio
import json

import pytest
from autogen_core import CancellationToken
from autogen_core.tools import FunctionTool

from figma_fidelity.messages.errors import ConfigError
from figma_fidelity.tools.compare_tools import compare_fidelity_tool, create_compare_tools
from figma_fidelity.utils import input_parser
from figma_fidelity.utils.input_parser import load_json_file
from tests.conftest import RED, solid_png_b64

pytestmark = pytest.mark.usefixtures("clean_env")


def _write_json(tmp_path, name, data):
    path = tmp_path / name
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


class TestCompareTool:
    """还原度检查工具"""

    def test_pass_text(self, png_files):
        """通过时的结论文本"""
        reference, actual, _ = png_files
        text = compare_fidelity_tool(reference, actual)
        assert "像素差异率: 0.00%" in text
        assert "结果: 通过 ✓" in text

    def test_fail_text_with_recommendations(self, png_files, tmp_path):
        """未通过时列出原因与修复建议"""
        reference, actual, _ = png_files
        styles = _write_json(tmp_path, "styles.json", {"__self__": {"color": "#FF0000"}})
        expected = _write_json(tmp_path, "expected.json", {"__self__": {"color": "#0000FF"}})
        text = compare_fidelity_tool(reference, actual, styles_path=styles, expected_path=expected)
        assert "结果: 未通过 ✗" in text
        assert "[HIGH] High severity style differences present" in text
        assert "样式还原度: 0/100" in text
        assert "Priority Fix Recommendations" in text

    def test_missing_file(self, tmp_path):
        """文件缺失不抛异常"""
        text = compare_fidelity_tool(str(tmp_path / "a.png"), str(tmp_path / "b.png"))
        assert text.startswith("截图或样式文件不存在")

    def test_comparison_error(self, png_files):
        """对比失败以文本返回错误码"""
        reference, _, write = png_files
        actual = write("wide.png", solid_png_b64(30, 20, RED))
        text = compare_fidelity_tool(reference, actual)
        assert text.startswith("还原度检查失败 [COMPARISON_DIMENSION_MISMATCH]")

    def test_size_mode_argument(self, png_files):
        """size_mode 参数透传"""
        reference, _, write = png_files
        actual = write("wide.png", solid_png_b64(30, 20, RED))
        text = compare_fidelity_tool(reference, actual, size_mode="crop")
        assert "像素差异率: 0.00%" in text


class TestUnreadableInput:
    """样式文件不可解析时返回错误文本"""

    def test_binary_styles_file(self, png_files):
        """把 PNG 当作样式 JSON 传入"""
        reference, actual, _ = png_files
        text = compare_fidelity_tool(reference, actual, styles_path=reference, expected_path=reference)
        assert text.startswith("还原度检查失败 [CONFIG_INVALID_VALUE]")
        assert "styles file is not valid JSON" in text

    def test_directory_as_styles_file(self, png_files, tmp_path):
        """样式路径是目录"""
        reference, actual, _ = png_files
        text = compare_fidelity_tool(reference, actual, styles_path=str(tmp_path), expected_path=str(tmp_path))
        assert text.startswith("截图或样式文件不存在")

    def test_permission_error(self, png_files, monkeypatch):
        """截图无读取权限"""
        reference, actual, _ = png_files

        def _deny(path):
            raise PermissionError(13, "Permission denied", path)

        monkeypatch.setattr(input_parser, "load_png_b64", _deny)
        text = compare_fidelity_tool(reference, actual)
        assert text.startswith("截图或样式文件无法读取")

    def test_binary_file_raises_config_error(self, png_files):
        """非 UTF-8 内容转为 ConfigError"""
        reference, _, _ = png_files
        with pytest.raises(ConfigError) as exc_info:
            load_json_file(reference, "expected")
        assert exc_info.value.field == "expected"
        assert exc_info.value.code == ConfigError.INVALID_VALUE


class TestFunctionTool:
    """FunctionTool 包装"""

    def test_create_tools(self):
        """工具列表可直接注入智能体"""
        tools = create_compare_tools()
        assert len(tools) == 1
        assert isinstance(tools[0], FunctionTool)
        assert tools[0].name == "compare_fidelity_tool"

    def test_run_json(self, png_files):
        """通过 FunctionTool.run_json 调用"""
        reference, actual, _ = png_files
        tool = create_compare_tools()[0]
        text = asyncio.run(
            tool.run_json(
                {"reference_path": reference, "actual_path": actual},
                cancellation_token=CancellationToken(),
            )
        )
        assert "结果: 通过 ✓" in text

    def test_run_json_with_binary_styles(self, png_files):
        """FunctionTool 调用链路上同样返回错误文本"""
        reference, actual, _ = png_files
        tool = create_compare_tools()[0]
        text = asyncio.run(
            tool.run_json(
                {
                    "reference_path": reference,
                    "actual_path": actual,
                    "styles_path": reference,
                    "expected_path": reference,
                },
                cancellation_token=CancellationToken(),
            )
        )
        assert "CONFIG_INVALID_VALUE" in text
