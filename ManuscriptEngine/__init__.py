"""
Manuscript Engine。

把受限的类LaTeX书稿方言转换为类型化文档树，再按章节序列化为
HTML片段，交给外部流程打包成电子书。
"""

from typing import List

from .core import TreeBuilder, build_book
from .errors import (
    ConversionError,
    IncludeCycle,
    ManuscriptSyntaxError,
    SourceIOError,
    UnsupportedConstruct,
)
from .ir import Book, dump_tree
from .renderers import HTMLRenderer, render_book

__version__ = "1.0.0"
__author__ = "Manuscript Engine Team"


def convert(root_path, **builder_options) -> List[str]:
    """
    一站式转换：构建文档树并渲染为按章HTML片段。

    任一环节失败都会抛出 ConversionError 子类，不返回部分结果。
    """
    book = TreeBuilder(**builder_options).build(root_path)
    return HTMLRenderer().render_book(book)


__all__ = [
    "Book",
    "ConversionError",
    "HTMLRenderer",
    "IncludeCycle",
    "ManuscriptSyntaxError",
    "SourceIOError",
    "TreeBuilder",
    "UnsupportedConstruct",
    "build_book",
    "convert",
    "dump_tree",
    "render_book",
]
