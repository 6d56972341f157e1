#!/usr/bin/env python
"""
书稿转换命令行入口

主要流程：
1. 解析根源文件并展开全部 \\include
2. 渲染为按章节切分的HTML片段
3. 把片段与manifest写入输出目录，供电子书打包流程使用

使用方法：
    python convert_manuscript.py INPUT_ROOT [选项]

选项：
    --dump-ast        只打印文档树，不渲染
    --output-dir DIR  输出根目录（默认读取 OUTPUT_DIR 配置）
    --verbose         显示详细日志
"""

import argparse
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from loguru import logger

from ManuscriptEngine.core import ChapterStorage, TreeBuilder
from ManuscriptEngine.errors import ConversionError
from ManuscriptEngine.ir import dump_tree
from ManuscriptEngine.renderers import HTMLRenderer
from ManuscriptEngine.utils.config import Settings, settings as global_settings


def setup_logger(verbose: bool = False, config: Optional[Settings] = None):
    """设置日志配置"""
    config = config or global_settings
    logger.remove()  # 移除默认处理器
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        level="DEBUG" if verbose else config.LOG_LEVEL,
    )
    if config.LOG_FILE:
        log_path = Path(config.LOG_FILE)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(log_path),
            level="DEBUG",
            encoding="utf-8",
            enqueue=False,
        )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="把书稿转换为按章节切分的HTML片段")
    parser.add_argument("input_root", help="书稿根源文件")
    parser.add_argument("--dump-ast", action="store_true", help="只打印文档树，不渲染")
    parser.add_argument("--output-dir", default=None, help="输出根目录")
    parser.add_argument("--verbose", action="store_true", help="显示详细日志")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None, config: Optional[Settings] = None) -> int:
    """
    主入口。

    返回:
        int: 0 表示成功，1 表示转换失败。
    """
    config = config or global_settings
    args = parse_args(argv)
    setup_logger(args.verbose, config)

    builder = TreeBuilder(
        source_suffix=config.SOURCE_SUFFIX,
        encoding=config.SOURCE_ENCODING,
    )
    try:
        book = builder.build(args.input_root)
        if args.dump_ast:
            print(dump_tree(book.ast))
            return 0

        renderer = HTMLRenderer()
        buffers = renderer.render_book(book)
    except ConversionError as exc:
        logger.error(f"❌ 转换失败 {exc.describe()}")
        return 1

    storage = ChapterStorage(args.output_dir or config.OUTPUT_DIR)
    book_id = f"{book.source.stem}_{datetime.now().strftime('%Y%m%d_%H%M%S')}"
    run_dir = storage.start_session(
        book_id,
        {
            "source": str(book.source),
            "sources": [str(path) for path in book.sources],
        },
    )
    paths = storage.persist_book(run_dir, buffers, renderer.chapter_titles)

    logger.info(f"🎉 转换完成，共 {len(paths)} 个章节")
    logger.info(f"输出目录: {run_dir.resolve()}")
    return 0


def cli():
    """控制台脚本入口"""
    sys.exit(main())


if __name__ == "__main__":
    cli()
