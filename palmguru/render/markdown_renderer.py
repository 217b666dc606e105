"""
Markdown 行渲染器

只支持分析结果用到的极小子集：
- `# ` / `## ` / `### ` 标题
- `- ` / `* ` 无序列表（连续的列表行合并为一个列表）
- 段落内的 **粗体** 与 *斜体*

不支持嵌套列表、链接、代码、有序列表，也不处理 * 和 # 的转义。
"""
import re
from dataclasses import dataclass, field
from typing import List, Optional, Union

from markupsafe import escape

# 检查顺序固定：三级 → 二级 → 一级
HEADING_PREFIXES = (("### ", 3), ("## ", 2), ("# ", 1))
LIST_PREFIXES = ("- ", "* ")

# 行内替换规则，按顺序执行：粗体必须先于斜体
INLINE_RULES = (
    (re.compile(r"\*\*(.*?)\*\*"), r"<strong>\1</strong>"),
    (re.compile(r"\*(.*?)\*"), r"<em>\1</em>"),
)


@dataclass
class Heading:
    level: int
    text: str


@dataclass
class ListBlock:
    items: List[str] = field(default_factory=list)


@dataclass
class Paragraph:
    text: str  # 原始行
    html: str  # 转义并完成行内替换后的内容


Block = Union[Heading, ListBlock, Paragraph]


def render_inline(line: str) -> str:
    """依次应用行内规则，不做转义"""
    for pattern, replacement in INLINE_RULES:
        line = pattern.sub(replacement, line)
    return line


def _paragraph_html(line: str) -> str:
    return render_inline(str(escape(line)))


def _list_item_text(line: str) -> Optional[str]:
    for prefix in LIST_PREFIXES:
        if line.startswith(prefix):
            return line[len(prefix):]
    return None


def render_markdown(content: Optional[str]) -> List[Block]:
    """把 markdown 文本逐行转换为展示块

    Args:
        content: markdown 文本，空字符串或 None 不产生任何输出

    Returns:
        展示块列表
    """
    if not content:
        return []

    blocks: List[Block] = []
    in_list = False

    for line in content.split("\n"):
        item = _list_item_text(line)
        if item is not None:
            if not in_list:
                blocks.append(ListBlock())
                in_list = True
            blocks[-1].items.append(item)
            continue

        in_list = False

        if line == "":
            continue

        for prefix, level in HEADING_PREFIXES:
            if line.startswith(prefix):
                blocks.append(Heading(level=level, text=line[len(prefix):]))
                break
        else:
            blocks.append(Paragraph(text=line, html=_paragraph_html(line)))

    return blocks


def to_html(blocks: List[Block]) -> str:
    """把展示块转换为 HTML 片段"""
    parts = []
    for block in blocks:
        if isinstance(block, Heading):
            parts.append(f"<h{block.level}>{escape(block.text)}</h{block.level}>")
        elif isinstance(block, ListBlock):
            items = "".join(f"<li>{escape(item)}</li>" for item in block.items)
            parts.append(f"<ul>{items}</ul>")
        else:
            parts.append(f"<p>{block.html}</p>")
    return "\n".join(parts)
