"""
书稿转换过程中的统一异常体系。

构建器与渲染器遇到无法继续的情况时一律抛出 ConversionError 的子类，
由调用方（命令行或上层打包流程）统一捕获并报告，绝不直接终止进程。
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence, Tuple


class ConversionError(Exception):
    """所有转换错误的基类，携带错误种类便于日志归类。"""

    kind = "ConversionError"

    def describe(self) -> str:
        """返回面向用户的一行描述：错误种类、文件与位置。"""
        return f"{self.kind}: {self}"


class SourceIOError(ConversionError):
    """源文件或被引入文件无法读取。"""

    kind = "IoError"

    def __init__(self, path: Path, reason: str = ""):
        """
        Args:
            path: 读取失败的文件路径。
            reason: 底层OSError的描述。
        """
        self.path = Path(path)
        self.reason = reason
        message = f"无法读取文件 {self.path}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class ManuscriptSyntaxError(ConversionError):
    """语法引擎拒绝了输入，附带出错的行列与期望的内容。"""

    kind = "SyntaxError"

    def __init__(self, path: Path, line: int, column: int, expected: str):
        self.path = Path(path)
        self.line = line
        self.column = column
        self.expected = expected
        super().__init__(f"{self.path}:{line}:{column}: 期望 {expected}")


class UnsupportedConstruct(ConversionError):
    """
    识别出的语法节点或记号没有对应的文档树/HTML映射。

    构建阶段抛出时带有文件与行列；渲染阶段文档树已不含位置信息，
    此时 path/line/column 为 None。
    """

    kind = "UnsupportedConstruct"

    def __init__(
        self,
        construct: str,
        path: Optional[Path] = None,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ):
        self.construct = construct
        self.path = Path(path) if path is not None else None
        self.line = line
        self.column = column
        if self.path is not None and line is not None:
            location = f"{self.path}:{line}:{column}: "
        elif self.path is not None:
            location = f"{self.path}: "
        else:
            location = ""
        super().__init__(f"{location}暂不支持 {construct}")


class IncludeCycle(ConversionError):
    """引入链重新进入了一个仍在展开中的文件。"""

    kind = "IncludeCycle"

    def __init__(self, chain: Sequence[Path]):
        """
        Args:
            chain: 从环的起点到重复文件的路径序列，首尾为同一文件。
        """
        self.chain: Tuple[Path, ...] = tuple(Path(p) for p in chain)
        self.path = self.chain[-1] if self.chain else None
        super().__init__("循环引入: " + " -> ".join(str(p) for p in self.chain))


__all__ = [
    "ConversionError",
    "SourceIOError",
    "ManuscriptSyntaxError",
    "UnsupportedConstruct",
    "IncludeCycle",
]
