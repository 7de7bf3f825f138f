"""
修复建议排序 — 取优先级最高的前 N 个样式差异，生成可执行的修复清单与 Markdown 报告
"""
import re
from typing import Sequence

from figma_fidelity.messages.gate_messages import FixItem, FixRecommendation
from figma_fidelity.messages.style_messages import Severity, StyleDiff

# 属性名以这些前缀开头时视为影响布局
LAYOUT_PREFIXES = (
    "display",
    "flex-direction",
    "align-items",
    "justify-content",
    "gap",
    "padding",
    "width",
    "height",
)
PROMINENT_TAGS = frozenset(["h1", "h2", "h3", "h4", "h5", "h6", "button", "a"])
SEVERITY_MULTIPLIER = {Severity.LOW: 1.0, Severity.MEDIUM: 1.5, Severity.HIGH: 2.0}

_IMPACT_RANGE = re.compile(r"\+(\d+)-(\d+)")


def _reason(diff: StyleDiff) -> str:
    reasons: list[str] = []

    if any(p.startswith(LAYOUT_PREFIXES) for p in diff.properties):
        reasons.append("layout-critical")

    if diff.meta is not None:
        if diff.meta.tag.lower() in PROMINENT_TAGS:
            reasons.append("prominent-element")
        if diff.meta.height and diff.meta.height > 100:
            reasons.append("large-element")

    if any(p.expected_token for p in diff.properties.values()):
        reasons.append("token-opportunity")

    if diff.severity is Severity.HIGH:
        reasons.append("high-severity")

    return ", ".join(reasons) if reasons else "general-improvement"


def _estimate_impact(priority_score: int, severity: Severity) -> str:
    points = priority_score / 100 * 10 * SEVERITY_MULTIPLIER[severity]
    if points >= 10:
        return "High (+10-15 DFS points)"
    if points >= 5:
        return "Medium (+5-10 DFS points)"
    return "Low (+1-5 DFS points)"


def generate_fix_recommendations(
    diffs: Sequence[StyleDiff],
    max_recommendations: int = 5,
) -> list[FixRecommendation]:
    """为已排序的样式差异生成前 N 条修复建议。

    Args:
        diffs: build_style_diffs 的输出（已按作用域与优先级排序）
        max_recommendations: 最多返回的条数

    Returns:
        rank 从 1 开始的修复建议列表
    """
    recommendations: list[FixRecommendation] = []
    for index, diff in enumerate(diffs[:max(0, max_recommendations)]):
        fixes = []
        for hint in diff.patch_hints:
            prop = diff.properties.get(hint.property)
            fixes.append(
                FixItem(
                    property=hint.property,
                    current=prop.actual if prop is not None and prop.actual is not None else "unknown",
                    suggested=hint.suggested_value,
                    is_token=bool(prop is not None and prop.expected_token),
                )
            )

        recommendations.append(
            FixRecommendation(
                rank=index + 1,
                selector=diff.selector,
                fixes=fixes,
                priority_score=diff.priority_score,
                estimated_impact=_estimate_impact(diff.priority_score, diff.severity),
                reason=_reason(diff),
            )
        )
    return recommendations


def format_recommendations_as_markdown(recommendations: Sequence[FixRecommendation]) -> str:
    """渲染为 Markdown，末尾附带预计累计提升分数"""
    if not recommendations:
        return "## ✅ No critical fixes needed\n\nAll style differences are within acceptable thresholds."

    parts = [
        "## 🎯 Priority Fix Recommendations\n\n",
        "_Ordered by impact - fix these in sequence for maximum DFS improvement_\n\n",
    ]
    for rec in recommendations:
        parts.append(f"### {rec.rank}. `{rec.selector}` (Priority: {rec.priority_score}/100)\n\n")
        parts.append(f"**Estimated Impact**: {rec.estimated_impact}\n")
        parts.append(f"**Reason**: {rec.reason}\n\n")
        parts.append("**Fixes**:\n")
        for fix in rec.fixes:
            badge = " 🎨 _token_" if fix.is_token else ""
            parts.append(f"- `{fix.property}`: `{fix.current}` → `{fix.suggested}`{badge}\n")
        parts.append("\n")

    total = 0
    for rec in recommendations:
        match = _IMPACT_RANGE.search(rec.estimated_impact)
        if match:
            total += int(match.group(1))

    parts.append(f"---\n\n**Total Estimated DFS Improvement**: +{total}+ points if all fixes applied\n")
    return "".join(parts)
