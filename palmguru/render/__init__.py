"""
Render 模块 - 分析结果的 markdown 渲染
"""

from .markdown_renderer import (
    render_markdown,
    render_inline,
    to_html,
    Heading,
    ListBlock,
    Paragraph,
)

__all__ = [
    'render_markdown',
    'render_inline',
    'to_html',
    'Heading',
    'ListBlock',
    'Paragraph',
]
