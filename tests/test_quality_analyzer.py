"""Tests for QualityAnalyzer and the scoring strategies."""

import pytest

from autocoding.core.models import Implementation, Task, TaskType
from autocoding.core.quality_analyzer import (
    QualityAnalyzer,
    ScoringStrategy,
    FixedScoringStrategy,
    PatternScoringStrategy,
    METRICS,
    get_scoring_strategy,
    get_generic_suggestions,
)

SAMPLE = """Here is the component.

```jsx
export function LoginForm() {
  try {
    return <form aria-label="login"></form>;
  } catch (error) {
    return null;
  }
}
```
"""


class UniformStrategy(ScoringStrategy):
    def __init__(self, raw):
        self.raw = raw

    def score(self, code, implementation, task):
        return {metric: {'raw': self.raw, 'strengths': [], 'weaknesses': []}
                for metric in METRICS}


class BrokenStrategy(ScoringStrategy):
    def score(self, code, implementation, task):
        raise ValueError("scorer exploded")


class ListStrategy(ScoringStrategy):
    def score(self, code, implementation, task):
        return ['functionality', 9.0]


class DividingStrategy(ScoringStrategy):
    def score(self, code, implementation, task):
        return {'functionality': {'raw': 1 / 0}}


def _impl(text, tool='claude_sonnet'):
    return Implementation(implementation=text, tool=tool,
                          token_usage={'prompt': 10, 'completion': 20, 'total': 30})


class TestRubric:

    def test_weights_sum_to_one(self):
        assert sum(metric.weight for metric in METRICS.values()) == pytest.approx(1.0)

    def test_fixed_scores(self):
        analysis = QualityAnalyzer().analyze_quality(_impl(SAMPLE))

        assert analysis.overall_score == 7.7
        assert analysis.error is None
        assert analysis.tool == 'claude_sonnet'
        assert analysis.token_usage['total'] == 30

    def test_wrong_score_shape(self):
        analysis = QualityAnalyzer(ListStrategy()).analyze_quality(_impl(SAMPLE))

        assert analysis.failed
        assert analysis.overall_score == 0.0
        assert analysis.detailed_scores == {}
        assert analysis.weaknesses[0].startswith('Analysis failed: ')

    def test_unexpected_exception_is_logged(self, caplog):
        analysis = QualityAnalyzer(DividingStrategy()).analyze_quality(_impl(SAMPLE))

        assert analysis.failed
        assert analysis.error == 'division by zero'
        assert any(record.exc_info for record in caplog.records)
        assert set(analysis.detailed_scores) == set(METRICS)
        assert analysis.detailed_scores['functionality'].weighted_score == pytest.approx(1.7)

    def test_fixed_summaries(self):
        analysis = QualityAnalyzer().analyze_quality(_impl(SAMPLE))

        assert analysis.strengths[0] == 'Strong meets functional requirements (8.5/10)'
        assert analysis.weaknesses == []
        assert analysis.improvement_suggestions == [
            'Improve accessibility compliance (6.5/10)',
            '- Keyboard navigation could be improved',
            '- Missing some screen reader support',
        ]

    def test_polish_suggestions_when_everything_passes(self):
        analysis = QualityAnalyzer(UniformStrategy(9.0)).analyze_quality(_impl(SAMPLE))

        assert analysis.improvement_suggestions[:2] == [
            'Further enhance meets functional requirements (9.0/10)',
            '- Ensure all edge cases are handled properly',
        ]

    def test_generic_suggestions_fallback(self):
        assert get_generic_suggestions('nonexistent') == [
            'Consider further improvements in this area'
        ]


class TestExtraction:

    def test_longest_block_is_scored(self):
        text = "```js\nshort()\n```\n\n```js\nconst a = 1;\nconst b = 2;\nconst c = 3;\n```"
        analyzer = QualityAnalyzer()
        assert analyzer.extract_code(_impl(text)) == "const a = 1;\nconst b = 2;\nconst c = 3;\n"

    def test_raw_text_without_fences(self):
        analysis = QualityAnalyzer().analyze_quality("function add(a, b) { return a + b; }")
        assert analysis.overall_score == 7.7
        assert analysis.tool == 'unknown'

    def test_dict_input(self):
        analysis = QualityAnalyzer().analyze_quality({
            'implementation': SAMPLE,
            'metadata': {'tool': 'haiku'},
            'token_usage': {'total': 5}
        })
        assert analysis.tool == 'haiku'
        assert analysis.code_length > 1


class TestFailSoft:
    """Analysis errors become a zero-score result, never an exception."""

    def test_empty_implementation(self):
        analysis = QualityAnalyzer().analyze_quality(_impl(''))

        assert analysis.overall_score == 0.0
        assert analysis.error == 'No code found in implementation'
        assert analysis.weaknesses == ['Analysis failed: No code found in implementation']
        assert analysis.improvement_suggestions == [
            'No suggestions available due to analysis failure'
        ]

    def test_strategy_failure(self):
        analysis = QualityAnalyzer(BrokenStrategy()).analyze_quality(_impl(SAMPLE))
        assert analysis.failed
        assert analysis.error == 'scorer exploded'
        assert analysis.token_usage['total'] == 30


class TestPatternScoring:

    def test_error_handling_signal(self):
        analyzer = QualityAnalyzer(PatternScoringStrategy())
        without = analyzer.analyze_quality(_impl("const a = 1;\nconst b = 2;\nconst c = a + b;"))
        with_try = analyzer.analyze_quality(_impl(
            "try {\n  run();\n} catch (e) {\n  report(e);\n}"
        ))

        assert without.detailed_scores['error_handling'].raw_score == 5.0
        assert with_try.detailed_scores['error_handling'].raw_score == 8.0
        assert 'No error handling found' in without.detailed_scores['error_handling'].weaknesses

    def test_hardcoded_secret_penalized(self):
        analyzer = QualityAnalyzer(PatternScoringStrategy())
        analysis = analyzer.analyze_quality(_impl(
            "const apiKey = 'abc123';\nconst b = 2;\nconst c = 3;"
        ))
        assert analysis.detailed_scores['code_quality'].raw_score == 6.5

    def test_ui_without_aria(self):
        task = Task(id="t", description="A button", type=TaskType.UI)
        analysis = QualityAnalyzer(PatternScoringStrategy()).analyze_quality(
            _impl("const a = 1;\nconst b = 2;\nconst c = 3;"), task
        )
        assert analysis.detailed_scores['accessibility'].raw_score == 4.5

    def test_short_code_penalized(self):
        analysis = QualityAnalyzer(PatternScoringStrategy()).analyze_quality(_impl("x()"))
        assert analysis.detailed_scores['functionality'].raw_score == 5.5

    def test_fixed_strategy_ignores_code(self):
        scores = FixedScoringStrategy().score("anything", _impl("anything"), None)
        assert scores['accessibility']['raw'] == 6.5


class TestStrategyRegistry:

    def test_known_strategies(self):
        assert isinstance(get_scoring_strategy('fixed'), FixedScoringStrategy)
        assert isinstance(get_scoring_strategy('pattern'), PatternScoringStrategy)

    def test_unknown_strategy(self):
        with pytest.raises(ValueError):
            get_scoring_strategy('magic')
