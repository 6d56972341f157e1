"""
ManuscriptEngine核心工具集合。

该包封装了语法解析、文档树构建与章节存储三大基础能力，
渲染器与命令行都会复用这些工具保证结构一致。
"""

from .grammar import GrammarError, ParseNode, parse_source
from .builder import Argument, TreeBuilder, build_book, resolve_include
from .chapter_storage import ChapterStorage

__all__ = [
    "GrammarError",
    "ParseNode",
    "parse_source",
    "Argument",
    "TreeBuilder",
    "build_book",
    "resolve_include",
    "ChapterStorage",
]
