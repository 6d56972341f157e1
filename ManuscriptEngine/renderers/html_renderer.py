"""
基于文档树的HTML渲染器。

单次深度优先、先序遍历整棵 Atom 树，按章节切分为多个HTML片段：
1. 每个 StartChapter 开启一个新的输出缓冲区，供打包阶段逐章消费；
2. 段落由 ParagraphState 隐式管理，段落编号在整本书内全局递增；
3. 脚注在正文中只留下锚点，正文在章节末尾统一输出；
4. 所有字面文本都经过HTML转义。
"""

from __future__ import annotations

import html
from typing import Any, Callable, Dict, List, Optional, Tuple

from loguru import logger

from ..errors import UnsupportedConstruct
from ..ir import atoms
from ..ir.atoms import Atom, Book
from ..ir.schema import NEWLINE_TOKEN, QUOTATION_ENVIRONMENTS, resolve
from .paragraph_state import ParagraphState

PARAGRAPH_CLOSE = "</p>\n\n"


class HTMLRenderer:
    """
    文档树 → 按章HTML片段 渲染器。

    - render 是唯一公开入口，每次调用都会重置全部上下文；
    - 段落、脚注编号在整本书内全局唯一，不随章节重置；
    - chapter_titles 与返回的缓冲区一一对应，隐式的首个缓冲区标题为None。
    """

    # ===== 渲染流程快速导览 =====
    # render(tree): 重置上下文 -> _render(tree) -> 收尾（闭合段落、输出脚注）。
    # _render: 按节点类型分派到 self._handlers，未登记的类型抛出 UnsupportedConstruct。
    # _write_content: 正文统一入口，负责按需开段与转义。
    # _boundary: 章节/小节/段落结束/引用边界的统一入口，负责闭合段落。

    def __init__(self, config: Dict[str, Any] | None = None):
        """
        初始化渲染器。

        参数:
            config: 可选配置；目前支持 footnoteLabel（脚注区块的 class 名，默认 footnotes）。
        """
        self.config = config or {}
        self.footnote_class = self.config.get("footnoteLabel") or "footnotes"
        self._handlers: Dict[type, Callable[[Any], None]] = {
            atoms.List: self._render_list,
            atoms.Comment: self._render_nothing,
            atoms.Ignore: self._render_nothing,
            atoms.Text: lambda atom: self._write_content(atom.text),
            atoms.Escaped: lambda atom: self._write_content(atom.char),
            atoms.Special: self._render_special,
            atoms.NamedSymbol: self._render_named_symbol,
            atoms.StartChapter: self._start_chapter,
            atoms.StartSection: self._start_section,
            atoms.Footnote: self._render_footnote,
            atoms.Italic: self._render_italic,
            atoms.BeginEnvironment: self._begin_environment,
            atoms.EndEnvironment: self._end_environment,
            atoms.ParagraphEnd: lambda atom: self._boundary("段落结束"),
        }
        self._reset()

    def _reset(self) -> None:
        """清空一次渲染周期的全部上下文。"""
        self.buffers: List[List[str]] = []
        self.chapter_titles: List[Optional[str]] = []
        self.paragraph_count = 0
        self.footnote_count = 0
        self.paragraph = ParagraphState()
        self._environments: List[str] = []
        self._pending_notes: List[Tuple[int, str]] = []
        self._note_capture: Optional[List[str]] = None
        self._title_capture: Optional[List[str]] = None

    # ======== 对外接口 ========

    def render(self, tree: Atom) -> List[str]:
        """
        渲染整棵文档树。

        参数:
            tree: 文档树根节点。

        返回:
            list[str]: 按章节顺序排列的HTML片段；空文档返回空列表。
        """
        self._reset()
        self._render(tree)
        if self._environments:
            raise UnsupportedConstruct(f"未闭合的环境 {self._environments[-1]}")
        self._close_paragraph()
        self._flush_footnotes()
        logger.info(
            f"HTMLRenderer: 渲染完成，{len(self.buffers)} 个章节缓冲区，"
            f"{self.paragraph_count} 个段落，{self.footnote_count} 条脚注"
        )
        return ["".join(parts) for parts in self.buffers]

    def render_book(self, book: Book) -> List[str]:
        """渲染 Book 持有的文档树。"""
        return self.render(book.ast)

    # ======== 分派 ========

    def _render(self, atom: Atom) -> None:
        handler = self._handlers.get(type(atom))
        if handler is None:
            raise UnsupportedConstruct(f"节点 {type(atom).__name__}")
        handler(atom)

    def _render_list(self, atom: atoms.List) -> None:
        for item in atom.items:
            self._render(item)

    def _render_nothing(self, atom: Atom) -> None:
        """批注与空指令不产生输出，也不影响段落状态。"""

    def _render_special(self, atom: atoms.Special) -> None:
        text = resolve(atom.token)
        if text is None:
            raise UnsupportedConstruct(f"记号 {atom.token!r}")
        if atom.token == NEWLINE_TOKEN and not self.paragraph.in_paragraph:
            # 段落之间的换行只是空白，不开启新段落；标题中的换行在纯文本标题里记为空格
            if self._title_capture is not None and self._note_capture is None:
                self._title_capture.append(" ")
            self._write_raw(text)
            return
        self._write_content(text)

    def _render_named_symbol(self, atom: atoms.NamedSymbol) -> None:
        text = resolve(atom.name)
        if text is None:
            raise UnsupportedConstruct(f"具名符号 {atom.name}")
        self._write_content(text)

    # ======== 结构节点 ========

    def _start_chapter(self, atom: atoms.StartChapter) -> None:
        """闭合上一章的段落与脚注后开启新缓冲区，再输出一级标题。"""
        self._boundary("章节")
        if self._environments:
            raise UnsupportedConstruct(f"章节开始于未闭合的环境 {self._environments[-1]} 内")
        self._flush_footnotes()
        self.buffers.append([])
        self.chapter_titles.append(None)
        logger.debug(f"HTMLRenderer: 开启第 {len(self.buffers)} 个章节缓冲区")
        self.chapter_titles[-1] = self._emit_heading("h1", atom.title)

    def _start_section(self, atom: atoms.StartSection) -> None:
        self._boundary("小节")
        self._emit_heading("h2", atom.title)

    def _emit_heading(self, tag: str, title: Atom) -> str:
        """输出标题，期间禁止开段；返回标题的纯文本。"""
        self._write_raw(f"<{tag}>")
        self._title_capture = []
        with self.paragraph.opening_suppressed():
            self._render(title)
        plain = " ".join("".join(self._title_capture).split())
        self._title_capture = None
        self._write_raw(f"</{tag}>\n\n")
        return plain

    def _render_italic(self, atom: atoms.Italic) -> None:
        self._open_paragraph_if_needed()
        self._write_raw("<i>")
        with self.paragraph.inline_run():
            self._render(atom.contents)
        self._write_raw("</i>")

    def _render_footnote(self, atom: atoms.Footnote) -> None:
        """
        正文中输出脚注锚点，脚注正文渲染到旁路缓冲，章节末尾统一输出。

        编号在整本书内递增，锚点与脚注正文始终位于同一章节缓冲区。
        """
        if self._note_capture is not None:
            raise UnsupportedConstruct("脚注内嵌套脚注")
        note_id = self.footnote_count
        self.footnote_count += 1
        self._open_paragraph_if_needed()
        self._write_raw(
            f'<a class="footnote-ref" id="fnref-{note_id}" href="#fn-{note_id}">'
            f"<sup>{note_id + 1}</sup></a>"
        )
        self._note_capture = []
        with self.paragraph.inline_run():
            self._render(atom.body)
        body = "".join(self._note_capture).strip()
        self._note_capture = None
        self._pending_notes.append((note_id, body))

    def _begin_environment(self, atom: atoms.BeginEnvironment) -> None:
        if atom.name not in QUOTATION_ENVIRONMENTS:
            raise UnsupportedConstruct(f"环境 {atom.name}")
        self._boundary(f"环境 {atom.name}")
        self._environments.append(atom.name)
        self._write_raw("<blockquote>\n\n")

    def _end_environment(self, atom: atoms.EndEnvironment) -> None:
        if atom.name not in QUOTATION_ENVIRONMENTS:
            raise UnsupportedConstruct(f"环境 {atom.name}")
        self._boundary(f"环境 {atom.name}")
        if not self._environments or self._environments[-1] != atom.name:
            raise UnsupportedConstruct(f"未匹配的环境结束 {atom.name}")
        self._environments.pop()
        self._write_raw("</blockquote>\n\n")

    # ======== 段落 ========

    def _boundary(self, construct: str) -> None:
        """结构边界：闭合当前段落。标题与行内片段内部不允许出现。"""
        if self.paragraph.in_inline_run:
            raise UnsupportedConstruct(f"行内内容中的{construct}")
        self._close_paragraph()

    def _open_paragraph_if_needed(self) -> None:
        if self.paragraph.needs_open:
            paragraph_id = self.paragraph_count
            self.paragraph_count += 1
            self._write_raw(f"<p id={paragraph_id}>")
            self.paragraph.open()

    def _close_paragraph(self) -> None:
        if self.paragraph.close():
            self._write_raw(PARAGRAPH_CLOSE)

    def _flush_footnotes(self) -> None:
        """把当前章节累积的脚注输出到章节末尾。"""
        if not self._pending_notes:
            return
        self._write_raw(f'<div class="{self._escape_attr(self.footnote_class)}">\n')
        for note_id, body in self._pending_notes:
            self._write_raw(
                f'<div class="footnote" id="fn-{note_id}">'
                f'<a href="#fnref-{note_id}">{note_id + 1}</a> {body}</div>\n'
            )
        self._write_raw("</div>\n\n")
        self._pending_notes = []

    # ======== 输出 ========

    def _write_content(self, text: str) -> None:
        """正文统一入口：按需开段，再写入转义后的文本。"""
        self._open_paragraph_if_needed()
        self._write_text(text)

    def _write_text(self, text: str) -> None:
        if self._title_capture is not None and self._note_capture is None:
            self._title_capture.append(text)
        self._write_raw(self._escape_html(text))

    def _write_raw(self, fragment: str) -> None:
        if self._note_capture is not None:
            self._note_capture.append(fragment)
            return
        if not self.buffers:
            # 尚未出现章节时隐式开启首个缓冲区
            self.buffers.append([])
            self.chapter_titles.append(None)
        self.buffers[-1].append(fragment)

    def _escape_html(self, value: str) -> str:
        """HTML文本上下文的转义"""
        return html.escape(value, quote=False)

    def _escape_attr(self, value: str) -> str:
        """HTML属性上下文转义并去掉危险换行"""
        escaped = html.escape(value, quote=True)
        return escaped.replace("\n", " ").replace("\r", " ")


def render_book(book: Book, config: Dict[str, Any] | None = None) -> List[str]:
    """便捷函数：渲染整本书并返回按章HTML片段。"""
    return HTMLRenderer(config).render_book(book)


__all__ = ["HTMLRenderer", "render_book", "PARAGRAPH_CLOSE"]
