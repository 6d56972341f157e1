"""
ManuscriptEngine工具模块。

当前主要暴露配置读取逻辑，后续可扩展更多通用工具。
"""

from .config import Settings, settings

__all__ = ["Settings", "settings"]
