"""
书稿文档树（Atom）的节点定义。

文档树是构建器与渲染器之间唯一的契约：构建器自底向上生成，
渲染器只读遍历。所有节点都是不可变值，按值比较，
因此测试可以直接用 `==` 断言整棵树的形状。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Tuple, Union


@dataclass(frozen=True)
class List:
    """同级节点的有序序列；构造时应经由 collapse 保证不是单元素列表。"""

    items: Tuple["Atom", ...] = ()


@dataclass(frozen=True)
class Comment:
    """作者批注，永不渲染。"""

    text: str


@dataclass(frozen=True)
class Text:
    """普通正文。"""

    text: str


@dataclass(frozen=True)
class Escaped:
    """源文件中被转义、失去特殊含义的单个字符。"""

    char: str


@dataclass(frozen=True)
class Special:
    """语法层面识别出的记号：连字、破折号、引号、不换行空格、换行等。"""

    token: str


@dataclass(frozen=True)
class NamedSymbol:
    """无参命令表示的具名符号，例如 textbackslash。"""

    name: str


@dataclass(frozen=True)
class StartChapter:
    title: "Atom"


@dataclass(frozen=True)
class StartSection:
    title: "Atom"


@dataclass(frozen=True)
class Footnote:
    body: "Atom"


@dataclass(frozen=True)
class Italic:
    contents: "Atom"


@dataclass(frozen=True)
class BeginEnvironment:
    name: str


@dataclass(frozen=True)
class EndEnvironment:
    name: str


@dataclass(frozen=True)
class ParagraphEnd:
    """显式的段落边界（空行或 \\par）。"""


@dataclass(frozen=True)
class Ignore:
    """已识别但没有语义的指令。"""


Atom = Union[
    List,
    Comment,
    Text,
    Escaped,
    Special,
    NamedSymbol,
    StartChapter,
    StartSection,
    Footnote,
    Italic,
    BeginEnvironment,
    EndEnvironment,
    ParagraphEnd,
    Ignore,
]

ATOM_TYPES = (
    List,
    Comment,
    Text,
    Escaped,
    Special,
    NamedSymbol,
    StartChapter,
    StartSection,
    Footnote,
    Italic,
    BeginEnvironment,
    EndEnvironment,
    ParagraphEnd,
    Ignore,
)

EMPTY = List(())


@dataclass(frozen=True)
class Book:
    """
    一次转换运行产出的整本书。

    ast 为文档树根节点；source 为根文件；sources 记录按首次读取顺序
    展开过的全部文件，便于打包阶段追踪依赖。
    """

    ast: Atom
    source: Path
    sources: Tuple[Path, ...] = field(default_factory=tuple)


def collapse(atoms: Iterable[Atom]) -> Atom:
    """
    将节点序列折叠为单个 Atom。

    单元素序列直接返回该元素，其余情况（包括空序列）包装为 List，
    保证调用方永远不必特殊处理长度为1的列表。
    """
    items = tuple(atoms)
    if len(items) == 1:
        return items[0]
    return List(items)


def children_of(atom: Atom) -> Tuple[Atom, ...]:
    """返回节点的直接子节点，叶子节点返回空元组。"""
    if isinstance(atom, List):
        return atom.items
    if isinstance(atom, (StartChapter, StartSection)):
        return (atom.title,)
    if isinstance(atom, Footnote):
        return (atom.body,)
    if isinstance(atom, Italic):
        return (atom.contents,)
    return ()


def dump_tree(atom: Atom, indent: str = "    ") -> str:
    """
    以缩进形式输出文档树，供命令行 --dump-ast 与调试使用。

    例如 `List([StartChapter(Text("Intro")), Text("Hello.")])` 会输出:

        List
            StartChapter
                Text 'Intro'
            Text 'Hello.'
    """
    lines: list = []
    _dump_into(atom, 0, indent, lines)
    return "\n".join(lines)


def _dump_into(atom: Atom, depth: int, indent: str, lines: list) -> None:
    prefix = indent * depth
    name = type(atom).__name__
    if isinstance(atom, (Comment, Text)):
        lines.append(f"{prefix}{name} {atom.text!r}")
    elif isinstance(atom, Escaped):
        lines.append(f"{prefix}{name} {atom.char!r}")
    elif isinstance(atom, Special):
        lines.append(f"{prefix}{name} {atom.token!r}")
    elif isinstance(atom, (NamedSymbol, BeginEnvironment, EndEnvironment)):
        lines.append(f"{prefix}{name} {atom.name}")
    else:
        lines.append(f"{prefix}{name}")
    for child in children_of(atom):
        _dump_into(child, depth + 1, indent, lines)


__all__ = [
    "Atom",
    "ATOM_TYPES",
    "EMPTY",
    "List",
    "Comment",
    "Text",
    "Escaped",
    "Special",
    "NamedSymbol",
    "StartChapter",
    "StartSection",
    "Footnote",
    "Italic",
    "BeginEnvironment",
    "EndEnvironment",
    "ParagraphEnd",
    "Ignore",
    "Book",
    "collapse",
    "children_of",
    "dump_tree",
]
