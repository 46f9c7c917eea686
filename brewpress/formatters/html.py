"""
HTML rendering of enriched post bodies.

Output depends only on the analysis and the article, so identical inputs
always produce identical markup.
"""
from html import escape
from typing import List

from brewpress.core.article import AnalysisResult, RawArticle

SENTIMENT_LABELS = {
    'positive': 'ポジティブ',
    'negative': 'ネガティブ',
    'neutral': 'ニュートラル',
}

SOURCE_BAR_STYLE = 'display: flex; align-items: center; flex-wrap: wrap; gap: 10px; margin-top: 20px;'
SOURCE_LEFT_STYLE = 'display: flex; align-items: center; gap: 8px;'
ORIGINAL_LINK_STYLE = 'margin-left: auto; text-decoration: none; font-weight: bold;'
SUMMARY_STYLE = 'margin: 20px 0; line-height: 1.6;'
CONTAINER_STYLE = 'margin-top: 30px; padding: 20px; border: 1px solid #ddd; background: #f9f9f9; border-radius: 8px;'
HEADING_STYLE = 'margin-top:0; display: inline-block; vertical-align: middle; margin-right: 15px;'
BADGES_STYLE = 'margin-bottom: 15px; display: inline-block; vertical-align: middle;'
IMPORTANCE_BADGE_STYLE = 'background:#e91e63; color:#fff; padding:2px 8px; border-radius:4px; margin-right:10px; font-size:12px;'
SENTIMENT_BADGE_STYLE = 'background:#607d8b; color:#fff; padding:2px 8px; border-radius:4px; font-size:12px;'
TAG_STYLE = 'display:inline-block; background:#eee; padding:2px 6px; border-radius:3px; margin-right:5px; font-size:11px;'


def _link(href: str, text: str, style: str) -> str:
    return (
        f'<a href="{escape(href)}" target="_blank" rel="noopener" style="{style}">'
        f'{text}</a>'
    )


def render_source_bar(article: RawArticle) -> str:
    """
    Attribution bar with the source name and a link to the original article.

    Returns an empty string when the article carries no source metadata.
    """
    if not (article.source_name or article.link or article.source_url):
        return ''

    parts = [f'<div class="source-info-bar" style="{SOURCE_BAR_STYLE}">']
    if article.source_name:
        parts.append(f'<div class="source-left" style="{SOURCE_LEFT_STYLE}">')
        parts.append('<strong style="white-space: nowrap;">出典元:</strong>')
        if article.source_url:
            parts.append(_link(article.source_url, escape(article.source_name), 'text-decoration: none;'))
        else:
            parts.append(escape(article.source_name))
        parts.append('</div>')
    if article.link:
        parts.append(_link(article.link, '→ 原文記事を読む', ORIGINAL_LINK_STYLE))
    parts.append('</div>')
    return ''.join(parts)


def render_badges(analysis: AnalysisResult) -> str:
    if not (analysis.importance or analysis.sentiment):
        return ''
    parts = [f'<div style="{BADGES_STYLE}">']
    if analysis.importance:
        parts.append(f'<span style="{IMPORTANCE_BADGE_STYLE}">重要度: {analysis.importance}/5</span>')
    if analysis.sentiment:
        label = SENTIMENT_LABELS.get(analysis.sentiment, SENTIMENT_LABELS['neutral'])
        parts.append(f'<span style="{SENTIMENT_BADGE_STYLE}">論調: {label}</span>')
    parts.append('</div>')
    return ''.join(parts)


def render_points(analysis: AnalysisResult) -> str:
    points = analysis.summary_points
    if not points:
        return ''
    if isinstance(points, list):
        body = '<ul>' + ''.join(f'<li>{point}</li>' for point in points) + '</ul>'
    else:
        body = points
    return f'<div class="ai-points" style="margin-bottom: 15px;"><strong>💡 この記事のポイント:</strong>{body}</div>'


def render_tags(tags: List[str]) -> str:
    if not tags:
        return ''
    chips = ''.join(f'<span style="{TAG_STYLE}">#{escape(tag)}</span>' for tag in tags)
    return f'<div style="margin-top: 10px;">{chips}</div>'


def render_post_content(analysis: AnalysisResult, article: RawArticle) -> str:
    """
    Build the HTML body written back to the post.

    Args:
        analysis: Parsed AI analysis
        article: Source article, used for attribution metadata

    Returns:
        HTML string: source bar, AI summary, then the analysis panel
    """
    html = render_source_bar(article)

    if analysis.summary:
        html += f'<div class="ai-summary-content" style="{SUMMARY_STYLE}">{analysis.summary}</div>'

    html += f'<div class="ai-analysis-container" style="{CONTAINER_STYLE}">'
    html += f'<h3 style="{HEADING_STYLE}">🤖 AIによる分析</h3>'
    html += render_badges(analysis)
    html += render_points(analysis)
    if analysis.target_audience:
        html += (
            '<p style="font-size: 0.85em; color: #666;">🎯 読者ターゲット層: '
            f'{escape(analysis.target_audience)}</p>'
        )
    html += render_tags(analysis.tags)
    html += '</div>'

    return html
