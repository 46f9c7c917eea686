"""
Prompt templates sent to the AI model.
"""
from typing import Iterable

ANALYSIS_PROMPT = """
以下の記事内容を分析し、JSON形式で回答してください：

{{
  "ai_summary": "記事の要約",
  "ai_summary_points": "要点を3点",
  "ai_importance": 1-5,
  "ai_sentiment": "positive/neutral/negative",
  "ai_target_audience": "対象読者層",
  "ai_tags_suggest": ["タグ1", "タグ2"],
  "selected_category": "{categories}",
  "is_beer_related": true/false,
  "content_description": "記事の説明"
}}

記事内容：
{content}
"""

IMAGE_PROMPT = """
以下のHTMLコンテンツから最も適切な画像URLを1つだけ抽出してください。
JSON形式で返してください：

{{
  "found": true/false,
  "image_url": "画像URL"
}}

HTMLコンテンツ：
{content}
"""


def build_analysis_prompt(content: str, categories: Iterable[str]) -> str:
    return ANALYSIS_PROMPT.format(categories="|".join(categories), content=content)


def build_image_prompt(html: str) -> str:
    return IMAGE_PROMPT.format(content=html)
