import pytest

from pitchdeck.api_client import BaseModelClient, RetryConfig
from pitchdeck.config import ModelConfig


class FakeClient(BaseModelClient):
    """Returns canned model output (or raises canned errors) in order."""

    def __init__(self, responses, max_retries=0):
        super().__init__(
            ModelConfig(model_name="fake-model", endpoint="http://fake/api/generate"),
            RetryConfig(max_retries=max_retries, base_delay=0, jitter=False),
        )
        self.responses = list(responses)
        self.prompts = []

    async def _generate(self, prompt):
        self.prompts.append(prompt)
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def make_client():
    return FakeClient


MESSY_ANALYSIS = """Here is the analysis you asked for:

```json
{
  summary: {
    title: 'Executive Summary',
    highlights: ['Revenue grew 20.5% in Q1', "North leads all regions"],
  },
  kpiAnalysis: {
    metrics: [
      {name: 'Total Revenue', value: 2071100, trend: up, insight: 'Strong growth'},
      {name: "Avg Margin", value: 30.6%, trend: stable, insight: "Margins held steady"},
    ]
  },
  trendAnalysis: {
    revenueAnalysis: {labels: ['Jan', 'Feb', 'Mar'], values: [631900, 684100, 755100], growth: 19.5%, insights: ['Consistent month-over-month growth']},
    regionalPerformance: {regions: ['North', 'South'], values: [1124000, 947100], topRegion: North, insights: ['North outperforms South']},
    profitability: {margins: [28.9, 30.9, 31.9], avgMargin: 30.6%, insights: []}
  },
  recommendations: [
    {title: 'Expand North', description: 'Invest in sales capacity in the North region.', impact: 'High'},
  ]
}
```
Hope this helps!"""


@pytest.fixture
def messy_analysis():
    return MESSY_ANALYSIS


CATEGORIES = [
    "strategy", "operations", "market", "customers", "growth",
    "finance", "competition", "market", "growth", "strategy",
]


def build_messy_questions(count=10):
    entries = ",\n".join(
        f"  {{id: 7, question: 'Question {i}?', category: {CATEGORIES[i % 10]}, "
        f"importance: {i % 5 + 1}, insight_goal: “Goal {i}”}}"
        for i in range(count)
    )
    return f"Sure, here are your questions:\n{{questions: [\n{entries},\n]}}\nLet me know!"


@pytest.fixture
def messy_questions():
    return build_messy_questions()
