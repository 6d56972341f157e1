"""
文档树结构校验器。

构建器在产出 Book 之前用它确认不变式：List 不会只有一个子节点、
负载类型正确、具名符号与特殊记号都能在符号表中解析。
校验器只收集错误，不抛异常，是否致命由调用方决定。
"""

from __future__ import annotations

from typing import Any, List, Tuple

from . import atoms
from .schema import resolve


class TreeValidator:
    """
    文档树不变式校验器。

    说明：
        - validate返回(是否通过, 错误列表)
        - 错误定位采用path语法，例如 `ast.items[2].title`
    """

    def validate(self, tree: Any) -> Tuple[bool, List[str]]:
        """递归校验整棵树"""
        errors: List[str] = []
        self._validate_atom(tree, "ast", errors)
        return len(errors) == 0, errors

    # ======== 内部工具 ========

    def _validate_atom(self, atom: Any, path: str, errors: List[str]):
        """根据节点类型调用不同的校验器"""
        if not isinstance(atom, atoms.ATOM_TYPES):
            errors.append(f"{path} 不是合法的Atom: {type(atom).__name__}")
            return

        validator = getattr(self, f"_validate_{type(atom).__name__}", None)
        if validator:
            validator(atom, path, errors)

    def _validate_List(self, atom: atoms.List, path: str, errors: List[str]):
        """List不得只有一个子节点"""
        if not isinstance(atom.items, tuple):
            errors.append(f"{path}.items 必须是元组")
            return
        if len(atom.items) == 1:
            errors.append(f"{path} 是单元素List，应折叠为其子节点")
        for idx, child in enumerate(atom.items):
            self._validate_atom(child, f"{path}.items[{idx}]", errors)

    def _validate_Escaped(self, atom: atoms.Escaped, path: str, errors: List[str]):
        if not isinstance(atom.char, str) or len(atom.char) != 1:
            errors.append(f"{path}.char 必须是单个字符")

    def _validate_Text(self, atom: atoms.Text, path: str, errors: List[str]):
        if not isinstance(atom.text, str):
            errors.append(f"{path}.text 必须是字符串")

    def _validate_Special(self, atom: atoms.Special, path: str, errors: List[str]):
        if resolve(atom.token) is None:
            errors.append(f"{path}.token 未在符号表中登记: {atom.token!r}")

    def _validate_NamedSymbol(self, atom: atoms.NamedSymbol, path: str, errors: List[str]):
        if resolve(atom.name) is None:
            errors.append(f"{path}.name 未在符号表中登记: {atom.name!r}")

    def _validate_StartChapter(self, atom: atoms.StartChapter, path: str, errors: List[str]):
        self._validate_atom(atom.title, f"{path}.title", errors)

    def _validate_StartSection(self, atom: atoms.StartSection, path: str, errors: List[str]):
        self._validate_atom(atom.title, f"{path}.title", errors)

    def _validate_Footnote(self, atom: atoms.Footnote, path: str, errors: List[str]):
        self._validate_atom(atom.body, f"{path}.body", errors)

    def _validate_Italic(self, atom: atoms.Italic, path: str, errors: List[str]):
        self._validate_atom(atom.contents, f"{path}.contents", errors)

    def _validate_BeginEnvironment(self, atom: atoms.BeginEnvironment, path: str, errors: List[str]):
        if not atom.name:
            errors.append(f"{path}.name 不能为空")

    def _validate_EndEnvironment(self, atom: atoms.EndEnvironment, path: str, errors: List[str]):
        if not atom.name:
            errors.append(f"{path}.name 不能为空")


__all__ = ["TreeValidator"]
