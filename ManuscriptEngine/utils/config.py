"""
ManuscriptEngine 配置。

沿用 pydantic_settings 风格：字段名即大写环境变量名，
同时支持项目根目录下的 `.env` 文件。核心的构建器与渲染器
不直接读取配置，由命令行入口把取值显式传入。
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """书稿转换的全局配置，优先读取大写环境变量。"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    SOURCE_SUFFIX: str = Field(".tex", description="\\include 省略后缀时追加的源文件后缀")
    SOURCE_ENCODING: str = Field("utf-8", description="源文件编码")
    OUTPUT_DIR: str = Field("epub_chapters", description="章节HTML片段的输出根目录")
    LOG_FILE: str = Field("logs/manuscript.log", description="日志文件路径，留空则只输出到终端")
    LOG_LEVEL: str = Field("INFO", description="终端日志级别")


settings = Settings()

__all__ = ["Settings", "settings"]
