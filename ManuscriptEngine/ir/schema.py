"""
书稿方言的固定映射表。

这里集中维护记号到输出字符的符号表，以及构建器/渲染器都认可的
结构命令与环境名，确保两端对同一套方言有统一认知。
符号表是承载逻辑的常量，而非可配置项。
"""

from __future__ import annotations

from typing import Dict, FrozenSet, Optional

# ====== 符号表 ======
SYMBOL_TABLE: Dict[str, str] = {
    "\n": "\n",
    "-": "-",
    "~": "\u00a0",  # 不换行空格
    "---": "\u2014",  # em dash
    "--": "\u2013",  # en dash
    "``": "\u201c",  # 左双引号
    "''": "\u201d",  # 右双引号
    "`": "\u2018",  # 左单引号
    "'": "\u2019",  # 右单引号
    "$-$": "\u2212",  # 减号
    "textbackslash": "\\",
    "omission": "[...]",
}

NEWLINE_TOKEN = "\n"

# ====== 命令与环境 ======
CHAPTER_COMMANDS: FrozenSet[str] = frozenset({"chapter", "chapter*"})
SECTION_COMMANDS: FrozenSet[str] = frozenset({"section", "section*"})
FOOTNOTE_COMMANDS: FrozenSet[str] = frozenset({"footnote"})
ITALIC_COMMANDS: FrozenSet[str] = frozenset({"textit", "emph"})
PARAGRAPH_COMMANDS: FrozenSet[str] = frozenset({"par"})

# 标题类命令允许出现可选参数（短标题），渲染时丢弃
HEADING_COMMANDS: FrozenSet[str] = CHAPTER_COMMANDS | SECTION_COMMANDS

# 引用环境渲染为 blockquote
QUOTATION_ENVIRONMENTS: FrozenSet[str] = frozenset({"quotation", "quote"})
SUPPORTED_ENVIRONMENTS: FrozenSet[str] = QUOTATION_ENVIRONMENTS


def resolve(token: str) -> Optional[str]:
    """查询记号或具名符号对应的输出文本，未登记时返回None。"""
    return SYMBOL_TABLE.get(token)


__all__ = [
    "SYMBOL_TABLE",
    "NEWLINE_TOKEN",
    "CHAPTER_COMMANDS",
    "SECTION_COMMANDS",
    "FOOTNOTE_COMMANDS",
    "ITALIC_COMMANDS",
    "PARAGRAPH_COMMANDS",
    "HEADING_COMMANDS",
    "QUOTATION_ENVIRONMENTS",
    "SUPPORTED_ENVIRONMENTS",
    "resolve",
]
