"""
文档树构建器：把语法树转换为类型化的 Atom 树。

TreeBuilder 负责：
    - 读取根文件并驱动语法解析；
    - 递归展开 \\include / \\input，并检测循环引入；
    - 绑定命令参数，折叠为章节/小节/脚注/斜体等结构节点；
    - 通过符号表校验连字与具名符号；
    - 保证任意层级都不存在单元素 List。

所有失败都以 ConversionError 子类抛出，不会返回半成品。
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Set

from loguru import logger

from ..errors import (
    IncludeCycle,
    ManuscriptSyntaxError,
    SourceIOError,
    UnsupportedConstruct,
)
from ..ir import atoms
from ..ir.atoms import Atom, Book, collapse
from ..ir.schema import (
    CHAPTER_COMMANDS,
    FOOTNOTE_COMMANDS,
    HEADING_COMMANDS,
    ITALIC_COMMANDS,
    PARAGRAPH_COMMANDS,
    SECTION_COMMANDS,
    SUPPORTED_ENVIRONMENTS,
    resolve,
)
from ..ir.validator import TreeValidator
from .grammar import GrammarError, ParseNode, parse_source

DEFAULT_SOURCE_SUFFIX = ".tex"

IncludeResolver = Callable[[Path, str], Path]


@dataclass(frozen=True)
class Argument:
    """命令参数：optional 为方括号参数，value 为解析后的内容。"""

    optional: bool
    value: Atom
    node: ParseNode

    @property
    def is_empty(self) -> bool:
        return self.value == atoms.EMPTY


def resolve_include(including_file: Path, name: str, suffix: str = DEFAULT_SOURCE_SUFFIX) -> Path:
    """
    相对于引入方所在目录解析被引入文件。

    名称已带源文件后缀时不再重复追加，例如 `chapters/one` 与
    `chapters/one.tex` 指向同一文件。
    """
    relative = name if not suffix or name.endswith(suffix) else name + suffix
    return Path(including_file).parent / relative


class TreeBuilder:
    """
    书稿文档树构建器。

    每次 build 都会重置内部的引入栈与已读文件列表，
    同一个实例可以顺序用于多本书，但不可重入。
    """

    def __init__(
        self,
        source_suffix: str = DEFAULT_SOURCE_SUFFIX,
        encoding: str = "utf-8",
        resolver: Optional[IncludeResolver] = None,
    ):
        """
        Args:
            source_suffix: 引入文件名缺省时追加的后缀。
            encoding: 源文件编码。
            resolver: 自定义引入路径解析回调 `(引入方文件, 名称) -> 路径`，
                缺省时使用 resolve_include。
        """
        self.source_suffix = source_suffix
        self.encoding = encoding
        self.resolver: IncludeResolver = resolver or (
            lambda including, name: resolve_include(including, name, self.source_suffix)
        )
        self.validator = TreeValidator()
        self._handlers: Dict[str, Callable[[ParseNode, Path], Atom]] = {
            "comment": lambda n, p: atoms.Comment(n.text),
            "text": lambda n, p: atoms.Text(n.text),
            "escape": lambda n, p: atoms.Escaped(n.text),
            "special": self._convert_special,
            "paragraph_end": lambda n, p: atoms.ParagraphEnd(),
            "command": self._convert_command,
            "begin_environment": self._convert_environment,
            "end_environment": self._convert_environment,
            "ignore": lambda n, p: atoms.Ignore(),
        }
        self._active_chain: List[Path] = []
        self._active_set: Set[Path] = set()
        self._sources: List[Path] = []

    # ======== 对外接口 ========

    def build(self, root_path) -> Book:
        """
        解析根文件并产出整本书。

        参数:
            root_path: 根源文件路径。

        返回:
            Book: 持有文档树根节点的书对象。
        """
        self._active_chain = []
        self._active_set = set()
        self._sources = []

        root = Path(root_path).resolve()
        tree = self._expand_file(root)

        ok, errors = self.validator.validate(tree)
        if not ok:
            for error in errors:
                logger.error(f"TreeBuilder: 文档树不变式被破坏: {error}")
            raise RuntimeError(f"文档树不变式被破坏: {errors[0]}")

        logger.info(f"TreeBuilder: 构建完成，共读取 {len(self._sources)} 个文件")
        return Book(ast=tree, source=root, sources=tuple(self._sources))

    # ======== 文件与引入 ========

    def _expand_file(self, path: Path) -> Atom:
        """读取并转换单个文件；路径已在当前引入链上时抛出IncludeCycle。"""
        if path in self._active_set:
            start = self._active_chain.index(path)
            raise IncludeCycle(self._active_chain[start:] + [path])

        self._active_chain.append(path)
        self._active_set.add(path)
        try:
            source = self._read(path)
            if path not in self._sources:
                self._sources.append(path)
            logger.debug(f"TreeBuilder: 解析文件 {path}")
            try:
                syntax_tree = parse_source(source)
            except GrammarError as exc:
                raise ManuscriptSyntaxError(path, exc.line, exc.column, exc.expected) from exc
            except RecursionError as exc:
                raise UnsupportedConstruct("嵌套层级过深的分组", path) from exc
            try:
                return collapse(self._convert_nodes(syntax_tree.children, path))
            except RecursionError as exc:
                raise UnsupportedConstruct("嵌套层级过深的分组", path) from exc
        finally:
            self._active_chain.pop()
            self._active_set.discard(path)

    def _read(self, path: Path) -> str:
        try:
            return path.read_text(encoding=self.encoding)
        except (OSError, UnicodeDecodeError) as exc:
            raise SourceIOError(path, str(exc)) from exc

    def _expand_include(self, node: ParseNode, path: Path) -> Atom:
        name = self._literal_text(node.children[0], path)
        if not name:
            raise UnsupportedConstruct(f"空的 \\{node.text} 文件名", path, node.line, node.column)
        target = Path(self.resolver(path, name)).resolve()
        logger.debug(f"TreeBuilder: 展开 \\{node.text}{{{name}}} -> {target}")
        return self._expand_file(target)

    # ======== 节点转换 ========

    def _convert_nodes(self, nodes: List[ParseNode], path: Path) -> List[Atom]:
        """转换同级节点序列；group 与 include 的结果就地展开到当前序列。"""
        result: List[Atom] = []
        for node in nodes:
            if node.rule == "group":
                result.extend(self._convert_nodes(node.children, path))
                continue
            if node.rule == "include":
                included = self._expand_include(node, path)
                if isinstance(included, atoms.List):
                    result.extend(included.items)
                else:
                    result.append(included)
                continue
            result.append(self._convert(node, path))
        return result

    def _convert(self, node: ParseNode, path: Path) -> Atom:
        """按固定的规则 -> Atom 映射转换单个节点"""
        handler = self._handlers.get(node.rule)
        if handler is None:
            raise UnsupportedConstruct(f"语法节点 {node.rule}", path, node.line, node.column)
        return handler(node, path)

    def _convert_special(self, node: ParseNode, path: Path) -> Atom:
        if resolve(node.text) is None:
            raise UnsupportedConstruct(f"记号 {node.text!r}", path, node.line, node.column)
        return atoms.Special(node.text)

    def _convert_environment(self, node: ParseNode, path: Path) -> Atom:
        name = self._literal_text(node.children[0], path)
        if name not in SUPPORTED_ENVIRONMENTS:
            raise UnsupportedConstruct(f"环境 {name}", path, node.line, node.column)
        if node.rule == "begin_environment":
            return atoms.BeginEnvironment(name)
        return atoms.EndEnvironment(name)

    # ======== 命令绑定 ========

    def _convert_command(self, node: ParseNode, path: Path) -> Atom:
        """
        把命令及其参数折叠为结构节点或具名符号。

        结构命令恰好包装一个花括号参数；无参命令（或只跟着空 `{}` 的命令）
        视为具名符号，必须能在符号表中解析。
        """
        name = node.text
        arguments = self._bind_arguments(node, path)

        if name in CHAPTER_COMMANDS:
            return atoms.StartChapter(self._single_required(node, arguments, path))
        if name in SECTION_COMMANDS:
            return atoms.StartSection(self._single_required(node, arguments, path))
        if name in FOOTNOTE_COMMANDS:
            return atoms.Footnote(self._single_required(node, arguments, path))
        if name in ITALIC_COMMANDS:
            return atoms.Italic(self._single_required(node, arguments, path))

        if all(not arg.optional and arg.is_empty for arg in arguments):
            if name in PARAGRAPH_COMMANDS:
                return atoms.ParagraphEnd()
            if resolve(name) is not None:
                return atoms.NamedSymbol(name)
        raise UnsupportedConstruct(f"命令 \\{name}", path, node.line, node.column)

    def _bind_arguments(self, node: ParseNode, path: Path) -> List[Argument]:
        """按源顺序绑定参数"""
        arguments: List[Argument] = []
        for child in node.children:
            value = collapse(self._convert_nodes(child.children, path))
            arguments.append(
                Argument(optional=child.rule == "optional_argument", value=value, node=child)
            )
        return arguments

    def _single_required(self, node: ParseNode, arguments: List[Argument], path: Path) -> Atom:
        """
        取出唯一的花括号参数；只有标题类命令允许附带可选参数。

        参数形式不符时，错误位置指向第一个多余的参数，缺少参数时指向命令本身。
        """
        required = [arg for arg in arguments if not arg.optional]
        optional = [arg for arg in arguments if arg.optional]
        if optional and node.text not in HEADING_COMMANDS:
            offending = optional[0].node
        elif len(required) > 1:
            offending = required[1].node
        elif not required:
            offending = node
        else:
            return required[0].value
        raise UnsupportedConstruct(
            f"命令 \\{node.text} 的参数形式（需要恰好一个花括号参数）",
            path,
            offending.line,
            offending.column,
        )

    def _literal_text(self, node: ParseNode, path: Path) -> str:
        """拼接参数中的字面正文，用于文件名与环境名。"""
        parts: List[str] = []
        for child in node.children:
            if child.rule == "text" or (child.rule == "special" and child.text == "-"):
                parts.append(child.text)
                continue
            if child.rule == "escape" and child.text == "_":
                parts.append(child.text)
                continue
            raise UnsupportedConstruct(
                f"名称中的 {child.rule} 内容", path, child.line, child.column
            )
        return "".join(parts).strip()


def build_book(root_path, **kwargs) -> Book:
    """便捷函数：使用默认配置构建一本书。"""
    return TreeBuilder(**kwargs).build(root_path)


__all__ = ["Argument", "TreeBuilder", "build_book", "resolve_include", "DEFAULT_SOURCE_SUFFIX"]
