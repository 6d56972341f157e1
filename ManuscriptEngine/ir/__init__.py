"""
书稿文档树（IR）定义、符号表与校验工具。

构建器与渲染器共同依赖本模块，确保从语法解析到HTML输出
对同一套节点结构与记号映射有统一认知。
"""

from .atoms import (
    Atom,
    Book,
    collapse,
    dump_tree,
)
from .schema import SYMBOL_TABLE, SUPPORTED_ENVIRONMENTS, resolve
from .validator import TreeValidator

__all__ = [
    "Atom",
    "Book",
    "collapse",
    "dump_tree",
    "SYMBOL_TABLE",
    "SUPPORTED_ENVIRONMENTS",
    "resolve",
    "TreeValidator",
]
