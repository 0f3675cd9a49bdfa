"""
PitchDeck AI - スライド描画モジュール

検証済みの AnalysisDocument を python-pptx でスライドに書き出す。
レイアウトは最小限（タイトル・カード・ネイティブチャート）。
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from pptx import Presentation
from pptx.chart.data import CategoryChartData
from pptx.dml.color import RGBColor
from pptx.enum.chart import XL_CHART_TYPE, XL_LEGEND_POSITION
from pptx.enum.shapes import MSO_AUTO_SHAPE_TYPE
from pptx.util import Inches, Pt

from pitchdeck.config import DEFAULT_THEME, ThemeConfig
from pitchdeck.schemas import AnalysisDocument

logger = logging.getLogger(__name__)

_BLANK_LAYOUT = 6


def _rgb(hex_color: str) -> RGBColor:
    return RGBColor.from_string(hex_color)


class DeckRenderer:
    """分析ドキュメント → 4枚構成のスライド"""

    def __init__(self, theme: ThemeConfig = DEFAULT_THEME) -> None:
        self.theme = theme
        self.prs = Presentation()
        self.prs.slide_width = Inches(theme.slide_width_in)
        self.prs.slide_height = Inches(theme.slide_height_in)

    @property
    def content_width(self) -> float:
        return self.theme.slide_width_in * 0.95

    # --- 部品 ---

    def _new_slide(self, title: str):
        slide = self.prs.slides.add_slide(self.prs.slide_layouts[_BLANK_LAYOUT])
        self._add_text(
            slide, title, 0.5, 0.3, self.content_width, 0.5,
            size=24, bold=True, color=self.theme.accent1, font=self.theme.head_font,
        )
        return slide

    def _add_text(
        self,
        slide,
        text: str,
        x: float,
        y: float,
        w: float,
        h: float,
        size: int = 14,
        bold: bool = False,
        italic: bool = False,
        color: str | None = None,
        font: str | None = None,
    ):
        box = slide.shapes.add_textbox(Inches(x), Inches(y), Inches(w), Inches(h))
        frame = box.text_frame
        frame.word_wrap = True
        run = frame.paragraphs[0].add_run()
        run.text = text
        run.font.size = Pt(size)
        run.font.bold = bold
        run.font.italic = italic
        run.font.name = font or self.theme.body_font
        run.font.color.rgb = _rgb(color or self.theme.text2)
        return box

    def _add_bullets(self, slide, items: Sequence[str], x: float, y: float, w: float, h: float) -> None:
        box = slide.shapes.add_textbox(Inches(x), Inches(y), Inches(w), Inches(h))
        frame = box.text_frame
        frame.word_wrap = True
        for i, item in enumerate(items):
            paragraph = frame.paragraphs[0] if i == 0 else frame.add_paragraph()
            run = paragraph.add_run()
            run.text = f"• {item}"
            run.font.size = Pt(14)
            run.font.name = self.theme.body_font
            run.font.color.rgb = _rgb(self.theme.text2)

    def _add_card(self, slide, x: float, y: float, w: float, h: float) -> None:
        card = slide.shapes.add_shape(
            MSO_AUTO_SHAPE_TYPE.RECTANGLE, Inches(x), Inches(y), Inches(w), Inches(h)
        )
        card.fill.solid()
        card.fill.fore_color.rgb = _rgb(self.theme.card_fill)
        card.line.color.rgb = _rgb(self.theme.card_line)
        card.line.width = Pt(1)

    def _add_chart(
        self,
        slide,
        chart_type: XL_CHART_TYPE,
        title: str,
        series_name: str,
        categories: Sequence[str],
        values: Sequence[float],
        x: float,
        color: str,
    ) -> None:
        count = min(len(categories), len(values))
        if count == 0:
            self._add_text(slide, f"{title}: no data", x, 1.2, 6, 0.5, italic=True)
            return
        if len(categories) != len(values):
            logger.warning("%s: ラベル数と値数が不一致のため %d 件に切り詰め", title, count)

        chart_data = CategoryChartData()
        chart_data.categories = list(categories[:count])
        chart_data.add_series(series_name, list(values[:count]))

        frame = slide.shapes.add_chart(
            chart_type, Inches(x), Inches(1.2), Inches(6), Inches(3), chart_data
        )
        chart = frame.chart
        chart.has_title = True
        chart.chart_title.text_frame.text = title
        chart.has_legend = True
        chart.legend.position = XL_LEGEND_POSITION.BOTTOM
        chart.legend.include_in_layout = False
        series = chart.plots[0].series[0]
        if chart_type == XL_CHART_TYPE.LINE:
            series.smooth = True
            series.format.line.width = Pt(2)
        else:
            series.format.fill.solid()
            series.format.fill.fore_color.rgb = _rgb(color)
        series.format.line.color.rgb = _rgb(color)

    # --- スライド ---

    def add_executive_summary(self, analysis: AnalysisDocument) -> None:
        slide = self._new_slide("Executive Summary")
        for index, highlight in enumerate(analysis.summary.highlights):
            self._add_card(slide, 0.5, 1.2 + index * 1.2, self.content_width, 1)
            self._add_text(slide, highlight, 1, 1.4 + index * 1.2, self.content_width - 0.7, 0.6, size=16)

    def add_kpis(self, analysis: AnalysisDocument) -> None:
        slide = self._new_slide("Key Performance Indicators")
        for index, metric in enumerate(analysis.metrics):
            x = 0.5 + (index % 3) * 4.2
            y = 1.2 + (index // 3) * 2
            self._add_card(slide, x, y, 4, 1.8)
            self._add_text(slide, metric.name, x + 0.2, y + 0.2, 3.6, 0.3,
                           size=16, bold=True, color=self.theme.accent2)
            self._add_text(slide, metric.value, x + 0.2, y + 0.6, 3.6, 0.4,
                           size=24, bold=True, color=self.theme.accent1)
            self._add_text(slide, metric.insight, x + 0.2, y + 1.2, 3.6, 0.4,
                           size=12, italic=True, color=self.theme.trend_color(metric.trend))

    def add_trends(self, analysis: AnalysisDocument) -> None:
        slide = self._new_slide("Performance Trends")
        revenue = analysis.trend_analysis.revenue_analysis
        regional = analysis.trend_analysis.regional_performance

        self._add_chart(slide, XL_CHART_TYPE.LINE, "Revenue Trend", "Revenue",
                        revenue.labels, revenue.values, 0.5, self.theme.accent1)
        self._add_chart(slide, XL_CHART_TYPE.COLUMN_CLUSTERED, "Regional Performance", "Performance",
                        regional.regions, regional.values, 7, self.theme.accent2)

        insights = [*revenue.insights, *regional.insights]
        if insights:
            self._add_bullets(slide, insights, 0.5, 4.5, self.content_width, 2.5)

    def add_recommendations(self, analysis: AnalysisDocument) -> None:
        slide = self._new_slide("Recommendations")
        for index, rec in enumerate(analysis.recommendations):
            top = 1.2 + index * 1.8
            self._add_card(slide, 0.5, top, self.content_width, 1.6)
            width = self.content_width - 0.7
            self._add_text(slide, rec.title, 1, top + 0.1, width, 0.4,
                           size=16, bold=True, color=self.theme.accent2)
            self._add_text(slide, rec.description, 1, top + 0.5, width, 0.4)
            self._add_text(slide, f"Impact: {rec.impact}", 1, top + 0.9, width, 0.4,
                           size=12, italic=True, color=self.theme.accent1)

    def render(self, analysis: AnalysisDocument) -> Presentation:
        self.add_executive_summary(analysis)
        self.add_kpis(analysis)
        self.add_trends(analysis)
        self.add_recommendations(analysis)
        return self.prs

    def save(self, path: Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.prs.save(str(path))
        logger.info("スライドを保存: %s", path)
        return path
