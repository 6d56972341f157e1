"""
书稿方言的语法解析器。

把源文本切分为一棵语法树（ParseNode），规则集合固定：
file / comment / text / escape / special / paragraph_end / group /
include / command（含 optional_argument 与 required_argument）/
begin_environment / end_environment / ignore。

这里只负责“切分”，不做任何语义判断：命令是否受支持、记号能否映射，
都交给 TreeBuilder 决定。解析失败时抛出 GrammarError 并给出行列。
"""

from __future__ import annotations

import re
from bisect import bisect_right
from dataclasses import dataclass, field
from typing import List, Optional

from ..ir.schema import HEADING_COMMANDS

ESCAPABLE_CHARS = "%{}&$#_"

INCLUDE_COMMANDS = frozenset({"include", "input"})
IGNORED_DIRECTIVES = frozenset(
    {
        "noindent",
        "newpage",
        "clearpage",
        "cleardoublepage",
        "frontmatter",
        "mainmatter",
        "backmatter",
        "maketitle",
        "documentclass",
        "usepackage",
    }
)

comment_pattern = re.compile(r"%(?P<body>[^\r\n]*)")
command_pattern = re.compile(r"\\(?P<name>[A-Za-z]+\*?)")
blank_line_pattern = re.compile(
    r"""
    \r?\n [ \t]* \r?\n        # 至少一个空行
    (?:[ \t]*\r?\n)*          # 连续的空行一并吞掉
    [ \t]*                    # 下一段的行首缩进
    """,
    re.VERBOSE,
)
newline_pattern = re.compile(r"\r?\n")
newline_char_pattern = re.compile(r"\n")
dash_pattern = re.compile(r"-{1,3}")
open_quote_pattern = re.compile(r"``?")
close_quote_pattern = re.compile(r"''?")
# 正文片段不含保留字符；可选参数内部额外把 `]` 视为终止符
_text_patterns = {
    None: re.compile(r"[^\\{}%`'\-$~\r\n]+"),
    "}": re.compile(r"[^\\{}%`'\-$~\r\n]+"),
    "]": re.compile(r"[^\\{}%`'\-$~\r\n\]]+"),
}

# 只有这些命令把紧随其后的 `[` 读作可选参数，其余命令后的 `[` 是正文
OPTIONAL_ARGUMENT_COMMANDS = HEADING_COMMANDS | IGNORED_DIRECTIVES
# 这些规则最多读取一个花括号参数
SINGLE_ARGUMENT_COMMANDS = INCLUDE_COMMANDS | frozenset({"begin", "end"})

class GrammarError(Exception):
    """语法解析失败，附带1起始的行列号与期望内容。"""

    def __init__(self, message: str, line: int, column: int, expected: str):
        super().__init__(message)
        self.line = line
        self.column = column
        self.expected = expected


@dataclass
class ParseNode:
    """
    语法树节点。

    rule 为规则名；text 为该规则直接携带的字面量（正文、记号、命令名等）；
    children 为子节点；line/column 指向节点在源文本中的起点。
    """

    rule: str
    text: str = ""
    children: List["ParseNode"] = field(default_factory=list)
    line: int = 1
    column: int = 1


def parse_source(source: str) -> ParseNode:
    """
    将源文本解析为以 `file` 为根的语法树。

    参数:
        source: 书稿源文件全文。

    返回:
        ParseNode: rule 为 file 的根节点。
    """
    return _Parser(source).parse_file()


class _Parser:
    """单次解析的游标状态。"""

    def __init__(self, source: str):
        self.source = source
        self.pos = 0
        self._line_starts = [0] + [match.end() for match in newline_char_pattern.finditer(source)]

    def parse_file(self) -> ParseNode:
        children = self._parse_content(closing=None)
        return ParseNode("file", children=children, line=1, column=1)

    # ======== 内容 ========

    def _parse_content(self, closing: Optional[str]) -> List[ParseNode]:
        """解析内容直至遇到closing（`}`或`]`）或文件结尾。"""
        nodes: List[ParseNode] = []
        text_pattern = _text_patterns[closing]
        while self.pos < len(self.source):
            char = self.source[self.pos]
            if closing is not None and char == closing:
                self.pos += 1
                return nodes
            if char == "}":
                self._fail("未匹配的 `}`", "内容或文件结尾")
            nodes.append(self._parse_item(char, text_pattern))
        if closing is not None:
            self._fail("参数未闭合", f"`{closing}`")
        return nodes

    def _parse_item(self, char: str, text_pattern: "re.Pattern[str]") -> ParseNode:
        start = self.pos
        if char == "%":
            match = comment_pattern.match(self.source, self.pos)
            return self._leaf("comment", match.group("body"), start, match.end())
        if char == "\\":
            return self._parse_backslash()
        if char == "{":
            line, column = self._location(start)
            self.pos += 1
            children = self._parse_content(closing="}")
            return ParseNode("group", children=children, line=line, column=column)
        if char == "`":
            match = open_quote_pattern.match(self.source, self.pos)
            return self._leaf("special", match.group(0), start, match.end())
        if char == "'":
            match = close_quote_pattern.match(self.source, self.pos)
            return self._leaf("special", match.group(0), start, match.end())
        if char == "-":
            match = dash_pattern.match(self.source, self.pos)
            return self._leaf("special", match.group(0), start, match.end())
        if char == "~":
            return self._leaf("special", "~", start, start + 1)
        if char == "$":
            if self.source.startswith("$-$", self.pos):
                return self._leaf("special", "$-$", start, start + 3)
            self._fail("不支持数学模式", "`$-$`")
        if char in "\r\n":
            blank = blank_line_pattern.match(self.source, self.pos)
            if blank:
                return self._leaf("paragraph_end", "", start, blank.end())
            match = newline_pattern.match(self.source, self.pos)
            if match is None:
                # 孤立的 \r
                self._fail("孤立的回车符", "换行")
            return self._leaf("special", "\n", start, match.end())
        match = text_pattern.match(self.source, self.pos)
        # text_pattern 覆盖了其余所有字符（可选参数中的 `]` 已在上层处理）
        return self._leaf("text", match.group(0), start, match.end())

    # ======== 反斜杠 ========

    def _parse_backslash(self) -> ParseNode:
        start = self.pos
        following = self.source[start + 1:start + 2]
        if following == "\\":
            return self._leaf("special", "\\\\", start, start + 2)
        if following and following in ESCAPABLE_CHARS:
            return self._leaf("escape", following, start, start + 2)

        match = command_pattern.match(self.source, start)
        if match is None:
            self._fail("无法识别的反斜杠序列", "命令名或可转义字符")
        name = match.group("name")
        line, column = self._location(start)
        self.pos = match.end()
        arguments = self._parse_arguments(
            allow_optional=name in OPTIONAL_ARGUMENT_COMMANDS,
            limit=1 if name in SINGLE_ARGUMENT_COMMANDS else None,
        )

        if name in INCLUDE_COMMANDS:
            rule = "include"
        elif name == "begin":
            rule = "begin_environment"
        elif name == "end":
            rule = "end_environment"
        elif name in IGNORED_DIRECTIVES:
            return ParseNode("ignore", text=name, children=arguments, line=line, column=column)
        else:
            return ParseNode("command", text=name, children=arguments, line=line, column=column)

        required = [arg for arg in arguments if arg.rule == "required_argument"]
        if len(required) != 1 or len(arguments) != 1:
            self.pos = start
            self._fail(f"\\{name} 需要且仅需要一个花括号参数", "`{`")
        return ParseNode(rule, text=name, children=arguments, line=line, column=column)

    def _parse_arguments(self, allow_optional: bool, limit: Optional[int] = None) -> List[ParseNode]:
        """
        紧随命令名之后的参数，按源顺序收集。

        allow_optional 为False时 `[` 不再视为参数起点；limit 限制最多读取的参数个数。
        """
        openers = "[{" if allow_optional else "{"
        arguments: List[ParseNode] = []
        while self.pos < len(self.source) and self.source[self.pos] in openers:
            if limit is not None and len(arguments) >= limit:
                break
            opener = self.source[self.pos]
            line, column = self._location(self.pos)
            self.pos += 1
            if opener == "[":
                children = self._parse_content(closing="]")
                rule = "optional_argument"
            else:
                children = self._parse_content(closing="}")
                rule = "required_argument"
            arguments.append(ParseNode(rule, children=children, line=line, column=column))
        return arguments

    # ======== 内部工具 ========

    def _leaf(self, rule: str, text: str, start: int, end: int) -> ParseNode:
        line, column = self._location(start)
        self.pos = end
        return ParseNode(rule, text=text, line=line, column=column)

    def _location(self, pos: int):
        """将偏移量换算为1起始的(行, 列)。"""
        line = bisect_right(self._line_starts, pos)
        column = pos - self._line_starts[line - 1] + 1
        return line, column

    def _fail(self, message: str, expected: str):
        line, column = self._location(self.pos)
        raise GrammarError(f"{line}:{column}: {message}", line, column, expected)


__all__ = ["GrammarError", "ParseNode", "parse_source", "IGNORED_DIRECTIVES"]
