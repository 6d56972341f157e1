"""
端到端转换与命令行入口的测试用例。

运行测试：
    python -m pytest ManuscriptEngine/test_convert.py -v
"""

import json

import pytest

import convert_manuscript
from ManuscriptEngine import IncludeCycle, UnsupportedConstruct, convert
from ManuscriptEngine.utils.config import Settings


def write(directory, name, content):
    path = directory / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


BOOK = """\\documentclass{book}
% 前言
Preface text.

\\chapter{Intro}
Hello---World\\footnote{A \\textit{note}.}

\\include{chapters/two}
"""

CHAPTER_TWO = """\\chapter{Two}
\\begin{quotation}
Quoted.
\\end{quotation}
"""


class TestConvert:
    """测试一站式转换"""

    def test_book_with_includes(self, tmp_path):
        root = write(tmp_path, "book.tex", BOOK)
        write(tmp_path, "chapters/two.tex", CHAPTER_TWO)

        buffers = convert(root)

        assert len(buffers) == 3
        assert buffers[0].lstrip() == "<p id=0>Preface text.</p>\n\n"
        assert buffers[1].startswith("<h1>Intro</h1>")
        assert "Hello\u2014World" in buffers[1]
        assert '<div class="footnote" id="fn-0">' in buffers[1]
        assert "<i>note</i>" in buffers[1]
        assert buffers[2].startswith("<h1>Two</h1>")
        assert "<blockquote>" in buffers[2] and "</blockquote>" in buffers[2]
        assert "% " not in "".join(buffers)

    def test_errors_propagate(self, tmp_path):
        root = write(tmp_path, "book.tex", "\\begin{fancybox}x\\end{fancybox}")
        with pytest.raises(UnsupportedConstruct):
            convert(root)

    def test_cycle_propagates(self, tmp_path):
        root = write(tmp_path, "book.tex", "\\include{book}")
        with pytest.raises(IncludeCycle):
            convert(root)


class TestCommandLine:
    """测试命令行入口"""

    def make_config(self, tmp_path):
        return Settings(LOG_FILE="", OUTPUT_DIR=str(tmp_path / "out"))

    def test_writes_chapters_and_manifest(self, tmp_path):
        root = write(tmp_path, "book.tex", BOOK)
        write(tmp_path, "chapters/two.tex", CHAPTER_TWO)

        exit_code = convert_manuscript.main([str(root)], config=self.make_config(tmp_path))

        assert exit_code == 0
        run_dirs = list((tmp_path / "out").iterdir())
        assert len(run_dirs) == 1
        manifest = json.loads((run_dirs[0] / "manifest.json").read_text(encoding="utf-8"))
        assert [c["file"] for c in manifest["chapters"]] == [
            "000-preface.html",
            "001-intro.html",
            "002-two.html",
        ]
        assert len(manifest["metadata"]["sources"]) == 2

    def test_output_dir_option_overrides_config(self, tmp_path):
        root = write(tmp_path, "book.tex", "Hello.")
        target = tmp_path / "elsewhere"

        exit_code = convert_manuscript.main(
            [str(root), "--output-dir", str(target)],
            config=self.make_config(tmp_path),
        )

        assert exit_code == 0
        assert target.exists()
        assert not (tmp_path / "out").exists()

    def test_dump_ast(self, tmp_path, capsys):
        root = write(tmp_path, "book.tex", "\\chapter{Intro}\nHello.")

        exit_code = convert_manuscript.main(
            [str(root), "--dump-ast"],
            config=self.make_config(tmp_path),
        )

        assert exit_code == 0
        out = capsys.readouterr().out
        assert out.splitlines()[:3] == ["List", "    StartChapter", "        Text 'Intro'"]
        assert not (tmp_path / "out").exists()

    def test_conversion_error_exit_code(self, tmp_path):
        root = write(tmp_path, "book.tex", "\\chapter{broken")

        exit_code = convert_manuscript.main([str(root)], config=self.make_config(tmp_path))

        assert exit_code == 1
        assert not (tmp_path / "out").exists()

    def test_missing_input_exit_code(self, tmp_path):
        exit_code = convert_manuscript.main(
            [str(tmp_path / "missing.tex")],
            config=self.make_config(tmp_path),
        )
        assert exit_code == 1

    def test_wrapped_title_names_chapter_file(self, tmp_path):
        root = write(tmp_path, "book.tex", "\\chapter{Long\ntitle}\nx")

        exit_code = convert_manuscript.main([str(root)], config=self.make_config(tmp_path))

        assert exit_code == 0
        run_dir = next((tmp_path / "out").iterdir())
        manifest = json.loads((run_dir / "manifest.json").read_text(encoding="utf-8"))
        assert manifest["chapters"][0]["title"] == "Long title"
        assert manifest["chapters"][0]["file"] == "000-long-title.html"
