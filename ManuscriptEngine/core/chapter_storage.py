"""
章节HTML片段的落盘与清单管理。

渲染器产出的每个章节缓冲区写成独立的 `NNN-slug.html` 文件，
并在 manifest.json 中记录顺序、标题与文件位置，供外部打包流程
（目录、归档）按序读取。
"""

from __future__ import annotations

import json
import re
import unicodedata
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Sequence


def _utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass
class ChapterRecord:
    """
    manifest中记录的章节元数据。

    index 即渲染器输出缓冲区的下标，也是章节在书中的顺序。
    """

    index: int
    slug: str
    title: Optional[str]
    file: str
    updated_at: str = ""

    def to_dict(self) -> Dict[str, object]:
        """将记录转换为便于写入manifest.json的序列化字典"""
        return {
            "index": self.index,
            "slug": self.slug,
            "title": self.title,
            "file": self.file,
            "updatedAt": self.updated_at or _utc_now(),
        }


class ChapterStorage:
    """
    章节HTML写入与manifest管理器。

    负责：
        - 为每次转换创建独立run目录与manifest快照；
        - 逐章写入HTML片段并更新manifest；
        - 按manifest顺序读回全部章节。
    """

    def __init__(self, base_dir: str):
        """
        创建章节存储器。

        Args:
            base_dir: 所有输出run目录的根路径
        """
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self._manifests: Dict[str, Dict[str, object]] = {}

    # ======== 会话与清单 ========

    def start_session(self, book_id: str, metadata: Dict[str, object]) -> Path:
        """
        为本次转换创建独立的输出目录与manifest。

        参数:
            book_id: 书籍/运行ID，作为目录名。
            metadata: 元数据（源文件、生成时间等）。

        返回:
            Path: 新建的run目录。
        """
        run_dir = self.base_dir / self._safe_slug(book_id)
        run_dir.mkdir(parents=True, exist_ok=True)
        manifest = {
            "bookId": book_id,
            "createdAt": _utc_now(),
            "metadata": metadata,
            "chapters": [],
        }
        self._manifests[self._key(run_dir)] = manifest
        self._write_manifest(run_dir, manifest)
        return run_dir

    def persist_chapter(
        self,
        run_dir: Path,
        index: int,
        html: str,
        title: Optional[str] = None,
    ) -> Path:
        """
        写入单个章节片段并更新manifest。

        参数:
            run_dir: 会话根目录。
            index: 章节缓冲区下标。
            html: 章节HTML片段。
            title: 章节标题纯文本；隐式首章为None。

        返回:
            Path: 写入的HTML文件路径。
        """
        slug = self._slugify_text(title or "") or ("preface" if index == 0 else "chapter")
        path = run_dir / f"{index:03d}-{slug}.html"
        path.write_text(html, encoding="utf-8")

        record = ChapterRecord(
            index=index,
            slug=slug,
            title=title,
            file=path.name,
            updated_at=_utc_now(),
        )
        self._upsert_record(run_dir, record)
        return path

    def persist_book(
        self,
        run_dir: Path,
        buffers: Sequence[str],
        titles: Optional[Sequence[Optional[str]]] = None,
    ) -> List[Path]:
        """按顺序写入全部章节，titles 与 buffers 一一对应。"""
        titles = list(titles or [])
        paths: List[Path] = []
        for index, html in enumerate(buffers):
            title = titles[index] if index < len(titles) else None
            paths.append(self.persist_chapter(run_dir, index, html, title))
        return paths

    def load_chapters(self, run_dir: Path) -> List[str]:
        """
        按manifest记录的顺序读回全部章节片段。

        参数:
            run_dir: 会话根目录。

        返回:
            list[str]: 章节HTML片段列表。
        """
        manifest = self._read_manifest(run_dir)
        chapters = sorted(manifest.get("chapters", []), key=lambda c: c.get("index", 0))
        return [(run_dir / chapter["file"]).read_text(encoding="utf-8") for chapter in chapters]

    # ======== 内部工具 ========

    def _safe_slug(self, slug: str) -> str:
        """移除危险字符，避免生成非法文件夹名。"""
        slug = slug.replace(" ", "-").replace("/", "-")
        return slug or "book"

    def _slugify_text(self, text: str) -> str:
        """
        对任意文本做降噪与转写，得到文件名友好的slug片段。

        会规整大小写、移除特殊符号并保留汉字。
        """
        text = unicodedata.normalize("NFKD", text)
        text = "".join(ch for ch in text if not unicodedata.combining(ch))
        text = text.replace("·", "-").replace(" ", "-")
        text = re.sub(r"[^0-9a-zA-Z\u4e00-\u9fff-]+", "-", text)
        text = re.sub(r"-{2,}", "-", text)
        return text.strip("-").lower()

    def _key(self, run_dir: Path) -> str:
        """将run目录解析为字典缓存的键，避免重复读取磁盘。"""
        return str(run_dir.resolve())

    def _manifest_path(self, run_dir: Path) -> Path:
        return run_dir / "manifest.json"

    def _write_manifest(self, run_dir: Path, manifest: Dict[str, object]):
        """将内存中的manifest快照全量写回磁盘。"""
        self._manifest_path(run_dir).write_text(
            json.dumps(manifest, ensure_ascii=False, indent=2),
            encoding="utf-8",
        )

    def _read_manifest(self, run_dir: Path) -> Dict[str, object]:
        """从磁盘读取已有manifest，不存在时返回空清单。"""
        manifest_path = self._manifest_path(run_dir)
        if manifest_path.exists():
            return json.loads(manifest_path.read_text(encoding="utf-8"))
        return {"bookId": run_dir.name, "chapters": []}

    def _upsert_record(self, run_dir: Path, record: ChapterRecord):
        """
        更新或追加manifest中的章节记录，保证顺序一致。

        内部会自动排序并写回缓存+磁盘。
        """
        key = self._key(run_dir)
        manifest = self._manifests.get(key) or self._read_manifest(run_dir)
        chapters: List[Dict[str, object]] = manifest.get("chapters", [])
        chapters = [c for c in chapters if c.get("index") != record.index]
        chapters.append(record.to_dict())
        chapters.sort(key=lambda x: x.get("index", 0))
        manifest["chapters"] = chapters
        manifest["updatedAt"] = _utc_now()
        self._manifests[key] = manifest
        self._write_manifest(run_dir, manifest)


__all__ = ["ChapterStorage", "ChapterRecord"]
