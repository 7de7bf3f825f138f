"""
设计稿还原度检查 — 命令行入口

  对比两张截图：
    figma-fidelity compare <设计稿.png> <实现截图.png> [选项]
    figma-fidelity compare ref.png impl.png --size-mode pad --styles s.json --expected e.json

  列出质量门禁预设：
    figma-fidelity profiles

退出码：0 通过 / 1 门禁未通过 / 2 对比或配置错误
"""
import argparse
import base64
import json
import logging
import os
import sys
from typing import Any, Optional

from figma_fidelity.config import settings
from figma_fidelity.config.profiles import list_quality_gate_profiles
from figma_fidelity.config.schema import load_comparison_config, merge_comparison_config
from figma_fidelity.gate.fix_recommendations import format_recommendations_as_markdown
from figma_fidelity.messages.compare_messages import ContentBasis, ImageAlignment, SizeMode
from figma_fidelity.messages.errors import FidelityError
from figma_fidelity.messages.style_messages import CheckingStage
from figma_fidelity.utils.input_parser import build_compare_request, parse_pad_color
from figma_fidelity.workflow.orchestrator import FidelityReport, run_fidelity_check

logger = logging.getLogger(__name__)

EXIT_PASS = 0
EXIT_FAIL = 1
EXIT_ERROR = 2


# ============================================================
# 日志配置
# ============================================================


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


# ============================================================
# compare 子命令
# ============================================================


def _pad_color_arg(value: str) -> str:
    try:
        color = parse_pad_color(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e
    if color == "auto":
        return "auto"
    return f"#{color.r:02x}{color.g:02x}{color.b:02x}"


def _config_overrides(args: argparse.Namespace) -> dict[str, Any]:
    """只收集命令行显式给出的选项，其余沿用环境变量 / 默认值"""
    overrides: dict[str, Any] = {}
    for name in ("size_mode", "align", "pad_color", "content_basis", "stage"):
        value = getattr(args, name)
        if value is not None:
            overrides[name] = value
    if args.threshold is not None:
        overrides["pixelmatch_threshold"] = args.threshold
    if args.include_aa:
        overrides["include_aa"] = True
    if args.ignore:
        overrides["ignore"] = [p.strip() for p in args.ignore.split(",") if p.strip()]
    return overrides


def _print_report(report: FidelityReport) -> None:
    result = report.compare
    dims = result.dimensions

    print()
    print("=" * 60)
    print("  设计稿还原度检查")
    print("=" * 60)
    print(f"  尺寸          : 设计稿 {dims.figma} / 实现 {dims.impl} → 对比 {dims.compared}")
    print(f"  尺寸处理      : {dims.size_mode.value}{' (已调整)' if dims.adjusted else ''}")
    print(f"  像素差异率    : {result.pixel_diff_ratio:.4f} ({result.diff_pixel_count}/{result.total_pixels})")
    if result.pixel_diff_ratio_content is not None:
        print(f"  内容区差异率  : {result.pixel_diff_ratio_content:.4f}")
    if result.ssim is not None:
        print(f"  SSIM          : {result.ssim:.4f}")
    if result.color_delta_e_avg is not None:
        print(f"  平均色差 ΔE   : {result.color_delta_e_avg:.2f}")
    if report.style_summary is not None:
        summary = report.style_summary
        print(
            f"  样式还原度    : {summary.style_fidelity_score}/100 "
            f"(覆盖率 {summary.coverage:.0%}, high {summary.high_count})"
        )
    print(f"  CQI           : {report.gate.cqi}/100")
    print("=" * 60)
    print(f"  门禁: {'通过 ✓' if report.gate.passed else '未通过 ✗'}")
    for reason in report.gate.reasons:
        print(f"    - {reason}")
    if report.profile_name:
        print(f"  预设 {report.profile_name}: {'通过 ✓' if not report.profile_reasons else '未通过 ✗'}")
        for reason in report.profile_reasons:
            print(f"    - {reason}")
    print()

    if result.style_diffs:
        print(format_recommendations_as_markdown(report.recommendations))


def _write_diff_png(report: FidelityReport, path: str) -> None:
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(path, "wb") as f:
        f.write(base64.b64decode(report.compare.diff_png_b64))
    logger.info("差异图已写入: %s", path)


def run_compare(args: argparse.Namespace) -> int:
    try:
        request = build_compare_request(
            args.reference,
            args.actual,
            styles_path=args.styles,
            expected_path=args.expected,
            meta_path=args.meta,
            tokens_path=args.tokens,
        )
        config = merge_comparison_config(_config_overrides(args), base=load_comparison_config())
        report = run_fidelity_check(
            request,
            config=config,
            profile_name=args.profile or settings.QUALITY_GATE_PROFILE or None,
            explicit_content_basis=args.content_basis is not None,
            top=args.top,
        )
    except FileNotFoundError as e:
        print(f"[错误] 文件不存在: {e}", file=sys.stderr)
        return EXIT_ERROR
    except OSError as e:
        print(f"[错误] 文件无法读取: {e}", file=sys.stderr)
        return EXIT_ERROR
    except FidelityError as e:
        print(f"[错误] {e.code}: {e.message}", file=sys.stderr)
        return EXIT_ERROR

    if args.diff_out:
        _write_diff_png(report, args.diff_out)

    if args.json:
        print(json.dumps(report.to_dict(), ensure_ascii=False, indent=2))
    else:
        _print_report(report)

    return EXIT_PASS if report.passed else EXIT_FAIL


# ============================================================
# profiles 子命令
# ============================================================


def run_profiles(args: argparse.Namespace) -> int:
    profiles = list_quality_gate_profiles()
    if args.json:
        print(json.dumps(profiles, ensure_ascii=False, indent=2))
    else:
        for item in profiles:
            print(f"  {item['name']:<20} {item['description']}")
    return EXIT_PASS


# ============================================================
# 主入口
# ============================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="figma-fidelity",
        description="设计稿截图 vs 实现截图 还原度检查",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "示例:\n"
            "  figma-fidelity compare ref.png impl.png\n"
            "  figma-fidelity compare ref.png impl.png --size-mode pad --profile page-vs-component\n"
            "  figma-fidelity profiles\n"
        ),
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="输出调试日志")
    sub = parser.add_subparsers(dest="command", required=True)

    compare = sub.add_parser("compare", help="对比设计稿与实现截图")
    compare.add_argument("reference", help="设计稿 PNG 路径")
    compare.add_argument("actual", help="实现截图 PNG 路径")
    compare.add_argument("--size-mode", choices=[m.value for m in SizeMode])
    compare.add_argument("--align", choices=[a.value for a in ImageAlignment])
    compare.add_argument("--pad-color", type=_pad_color_arg, help="auto 或 #rrggbb")
    compare.add_argument("--content-basis", choices=[b.value for b in ContentBasis])
    compare.add_argument("--threshold", type=float, help="像素匹配阈值 (0-1)")
    compare.add_argument("--include-aa", action="store_true", help="抗锯齿像素也计为差异")
    compare.add_argument("--styles", help="实现样式表 JSON")
    compare.add_argument("--expected", help="期望样式表 JSON")
    compare.add_argument("--meta", help="DOM 元数据 JSON")
    compare.add_argument("--tokens", help="设计令牌 JSON")
    compare.add_argument("--profile", help="质量门禁预设名")
    compare.add_argument("--stage", choices=[s.value for s in CheckingStage])
    compare.add_argument("--ignore", help="忽略的属性，逗号分隔")
    compare.add_argument("--top", type=int, default=5, help="修复建议条数 (默认 5)")
    compare.add_argument("--diff-out", help="差异图输出路径")
    compare.add_argument("--json", action="store_true", help="以 JSON 输出完整报告")
    compare.set_defaults(handler=run_compare)

    profiles = sub.add_parser("profiles", help="列出质量门禁预设")
    profiles.add_argument("--json", action="store_true")
    profiles.set_defaults(handler=run_profiles)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
