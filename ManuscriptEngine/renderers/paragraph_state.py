"""
渲染器的隐式段落状态机。

状态只有 NO_PARAGRAPH / IN_PARAGRAPH 两种，外加 can_open 控制
是否允许开启新段落。所有迁移都集中在本类的方法中：
    - open()：首次输出正文时开启段落；
    - close()：遇到章节/小节/段落结束/引用边界时关闭段落；
    - opening_suppressed()：输出标题期间禁止开段，结束后重新允许；
    - inline_run()：斜体/脚注内部禁止开段，结束后恢复外层状态。
渲染器不应在别处直接改写这些字段。
"""

from __future__ import annotations

from contextlib import contextmanager
from enum import Enum
from typing import Iterator


class ParagraphPhase(Enum):
    NO_PARAGRAPH = "no_paragraph"
    IN_PARAGRAPH = "in_paragraph"


class ParagraphState:
    """段落状态机，单次渲染独占。"""

    def __init__(self):
        self.phase = ParagraphPhase.NO_PARAGRAPH
        self.can_open = True
        self.inline_depth = 0

    @property
    def in_paragraph(self) -> bool:
        return self.phase is ParagraphPhase.IN_PARAGRAPH

    @property
    def in_inline_run(self) -> bool:
        """是否处于标题或行内片段内部，此时不允许出现结构边界。"""
        return self.inline_depth > 0

    @property
    def needs_open(self) -> bool:
        """下一次输出正文前是否需要先开启段落。"""
        return self.can_open and not self.in_paragraph

    def open(self) -> None:
        """NO_PARAGRAPH -> IN_PARAGRAPH，并禁止再次开段。"""
        if not self.needs_open:
            raise RuntimeError("当前状态不允许开启段落")
        self.phase = ParagraphPhase.IN_PARAGRAPH
        self.can_open = False

    def close(self) -> bool:
        """
        IN_PARAGRAPH -> NO_PARAGRAPH，并重新允许开段。

        返回:
            bool: 原本是否处于段落中（调用方据此决定是否输出闭合标签）。
        """
        if not self.in_paragraph:
            return False
        self.phase = ParagraphPhase.NO_PARAGRAPH
        self.can_open = True
        return True

    @contextmanager
    def opening_suppressed(self) -> Iterator[None]:
        """输出标题期间禁止开段，结束后重新允许。"""
        self.can_open = False
        self.inline_depth += 1
        try:
            yield
        finally:
            self.inline_depth -= 1
            self.can_open = True

    @contextmanager
    def inline_run(self) -> Iterator[None]:
        """行内片段内部禁止开段，结束后恢复进入前的状态。"""
        saved = (self.phase, self.can_open)
        self.can_open = False
        self.inline_depth += 1
        try:
            yield
        finally:
            self.inline_depth -= 1
            self.phase, self.can_open = saved


__all__ = ["ParagraphPhase", "ParagraphState"]
