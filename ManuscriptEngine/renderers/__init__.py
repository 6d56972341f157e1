"""
书稿渲染器集合。

提供 HTMLRenderer，按章节输出HTML片段，交给外部打包流程组装电子书。
"""

from .html_renderer import HTMLRenderer, render_book
from .paragraph_state import ParagraphPhase, ParagraphState

__all__ = [
    "HTMLRenderer",
    "render_book",
    "ParagraphPhase",
    "ParagraphState",
]
