"""修复建议测试"""
from figma_fidelity.gate.fix_recommendations import (
    format_recommendations_as_markdown,
    generate_fix_recommendations,
)
from figma_fidelity.messages.style_messages import ElementMeta, PatchHint, PropertyDiff, Severity, StyleDiff


def _diffs():
    return [
        StyleDiff(
            selector="button.primary",
            properties={
                "background-color": PropertyDiff(
                    actual="#ffffff", expected="var(--brand)", expected_token="--brand", delta=9.0, unit="ΔE"
                )
            },
            severity=Severity.HIGH,
            patch_hints=[PatchHint("background-color", "var(--brand)", Severity.HIGH)],
            meta=ElementMeta(tag="button", height=120),
            priority_score=80,
        ),
        StyleDiff(
            selector="self",
            properties={"width": PropertyDiff(expected="100px")},
            severity=Severity.MEDIUM,
            patch_hints=[PatchHint("width", "100px", Severity.LOW)],
            priority_score=30,
        ),
        StyleDiff(
            selector="span.caption",
            properties={"opacity": PropertyDiff(actual="0.5", expected="0.8", delta=-0.3, unit="")},
            severity=Severity.LOW,
            priority_score=60,
        ),
    ]


class TestGenerate:
    """生成修复建议"""

    def test_ranks_and_limit(self):
        """按输入顺序编号，最多 N 条"""
        recs = generate_fix_recommendations(_diffs(), max_recommendations=2)
        assert [r.rank for r in recs] == [1, 2]
        assert [r.selector for r in recs] == ["button.primary", "self"]

    def test_reasons(self):
        """原因标签"""
        recs = generate_fix_recommendations(_diffs())
        assert recs[0].reason == "prominent-element, large-element, token-opportunity, high-severity"
        assert recs[1].reason == "layout-critical"
        assert recs[2].reason == "general-improvement"

    def test_estimated_impact(self):
        """影响估计按优先级 × 严重程度系数分档"""
        recs = generate_fix_recommendations(_diffs())
        assert recs[0].estimated_impact == "High (+10-15 DFS points)"
        assert recs[1].estimated_impact == "Low (+1-5 DFS points)"
        assert recs[2].estimated_impact == "Medium (+5-10 DFS points)"

    def test_fix_items(self):
        """修复项带当前值、建议值与令牌标记"""
        recs = generate_fix_recommendations(_diffs())
        token_fix = recs[0].fixes[0]
        assert (token_fix.current, token_fix.suggested, token_fix.is_token) == ("#ffffff", "var(--brand)", True)
        missing_fix = recs[1].fixes[0]
        assert missing_fix.current == "unknown"
        assert recs[2].fixes == []

    def test_empty(self):
        """没有差异时没有建议"""
        assert generate_fix_recommendations([]) == []
        assert generate_fix_recommendations(_diffs(), max_recommendations=0) == []


class TestMarkdown:
    """Markdown 渲染"""

    def test_no_fixes(self):
        """空列表输出无需修复"""
        text = format_recommendations_as_markdown([])
        assert text.startswith("## ✅ No critical fixes needed")

    def test_render(self):
        """标题、修复项、令牌标记与累计提升"""
        text = format_recommendations_as_markdown(generate_fix_recommendations(_diffs()))
        assert "## 🎯 Priority Fix Recommendations" in text
        assert "### 1. `button.primary` (Priority: 80/100)" in text
        assert "- `background-color`: `#ffffff` → `var(--brand)` 🎨 _token_" in text
        assert "- `width`: `unknown` → `100px`\n" in text
        assert "**Total Estimated DFS Improvement**: +16+ points if all fixes applied" in text
