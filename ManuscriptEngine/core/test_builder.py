"""
文档树构建器的测试用例。

运行测试：
    python -m pytest ManuscriptEngine/core/test_builder.py -v
"""

import sys

import pytest

from ManuscriptEngine.core.builder import TreeBuilder, resolve_include
from ManuscriptEngine.errors import (
    ConversionError,
    IncludeCycle,
    ManuscriptSyntaxError,
    SourceIOError,
    UnsupportedConstruct,
)
from ManuscriptEngine.ir.atoms import (
    BeginEnvironment,
    Comment,
    EndEnvironment,
    Escaped,
    Footnote,
    Ignore,
    Italic,
    List,
    NamedSymbol,
    ParagraphEnd,
    Special,
    StartChapter,
    StartSection,
    Text,
)


def write(directory, name, content):
    path = directory / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


class TestBuildScenarios:
    """测试典型输入的文档树形状"""

    def setup_method(self):
        self.builder = TreeBuilder()

    def build_text(self, tmp_path, content):
        return self.builder.build(write(tmp_path, "book.tex", content)).ast

    def test_plain_text_collapses_to_text(self, tmp_path):
        assert self.build_text(tmp_path, "Hello, World!") == Text("Hello, World!")

    def test_chapter_then_text(self, tmp_path):
        tree = self.build_text(tmp_path, "\\chapter{Intro}\nHello.")
        assert tree == List((StartChapter(Text("Intro")), Special("\n"), Text("Hello.")))

    def test_em_dash_ligature(self, tmp_path):
        tree = self.build_text(tmp_path, "Hello---World")
        assert tree == List((Text("Hello"), Special("---"), Text("World")))

    def test_blank_line_is_paragraph_end(self, tmp_path):
        tree = self.build_text(tmp_path, "A\n\nB")
        assert tree == List((Text("A"), ParagraphEnd(), Text("B")))

    def test_empty_document_is_empty_list(self, tmp_path):
        assert self.build_text(tmp_path, "") == List(())

    def test_arguments_collapse_recursively(self, tmp_path):
        tree = self.build_text(tmp_path, r"\footnote{a \textit{b}}")
        assert tree == Footnote(List((Text("a "), Italic(Text("b")))))

    def test_groups_are_spliced(self, tmp_path):
        assert self.build_text(tmp_path, "{{a}}") == Text("a")
        assert self.build_text(tmp_path, "x{y}") == List((Text("x"), Text("y")))

    def test_comments_escapes_and_directives(self, tmp_path):
        tree = self.build_text(tmp_path, "\\noindent 5\\%%note")
        assert tree == List((Ignore(), Text(" 5"), Escaped("%"), Comment("note")))

    def test_par_command_ends_paragraph(self, tmp_path):
        assert self.build_text(tmp_path, r"a\par b") == List(
            (Text("a"), ParagraphEnd(), Text(" b"))
        )

    def test_named_symbols(self, tmp_path):
        tree = self.build_text(tmp_path, r"\textbackslash\omission{}")
        assert tree == List((NamedSymbol("textbackslash"), NamedSymbol("omission")))

    def test_section_and_emph(self, tmp_path):
        tree = self.build_text(tmp_path, r"\section*{One}\emph{x}")
        assert tree == List((StartSection(Text("One")), Italic(Text("x"))))

    def test_chapter_short_title_is_discarded(self, tmp_path):
        tree = self.build_text(tmp_path, r"\chapter[Short]{Long}")
        assert tree == StartChapter(Text("Long"))

    def test_leaf_rules_have_shared_handlers(self):
        # group 与 include 在 _convert_nodes 中就地展开，不经过处理表
        assert set(self.builder._handlers) == {
            "comment",
            "text",
            "escape",
            "special",
            "paragraph_end",
            "command",
            "begin_environment",
            "end_environment",
            "ignore",
        }
        assert TreeBuilder()._handlers is not self.builder._handlers

    def test_quotation_environment(self, tmp_path):
        tree = self.build_text(tmp_path, "\\begin{quotation}q\\end{quotation}")
        assert tree == List(
            (BeginEnvironment("quotation"), Text("q"), EndEnvironment("quotation"))
        )


class TestIncludes:
    """测试引入展开与循环检测"""

    def setup_method(self):
        self.builder = TreeBuilder()

    def test_include_is_spliced_in_place(self, tmp_path):
        root = write(tmp_path, "book.tex", "Before \\include{ch1} after")
        write(tmp_path, "ch1.tex", "A\n\nB")
        tree = self.builder.build(root).ast
        assert tree == List(
            (Text("Before "), Text("A"), ParagraphEnd(), Text("B"), Text(" after"))
        )

    def test_single_included_file_collapses(self, tmp_path):
        root = write(tmp_path, "book.tex", "\\input{ch1.tex}")
        write(tmp_path, "ch1.tex", "\\chapter{One}")
        assert self.builder.build(root).ast == StartChapter(Text("One"))

    def test_nested_include_resolves_relative_to_including_file(self, tmp_path):
        root = write(tmp_path, "book.tex", "\\include{parts/one}")
        write(tmp_path, "parts/one.tex", "1\\include{two}")
        write(tmp_path, "parts/two.tex", "2")
        book = self.builder.build(root)
        assert book.ast == List((Text("1"), Text("2")))
        assert book.sources == (
            root.resolve(),
            (tmp_path / "parts/one.tex").resolve(),
            (tmp_path / "parts/two.tex").resolve(),
        )

    def test_same_file_may_be_included_twice(self, tmp_path):
        root = write(tmp_path, "book.tex", "\\include{x}\\include{x}")
        write(tmp_path, "x.tex", "x")
        assert self.builder.build(root).ast == List((Text("x"), Text("x")))

    def test_self_include_is_a_cycle(self, tmp_path):
        root = write(tmp_path, "book.tex", "a\\include{book}")
        with pytest.raises(IncludeCycle) as info:
            self.builder.build(root)
        assert info.value.chain == (root.resolve(), root.resolve())
        assert info.value.describe().startswith("IncludeCycle: ")

    def test_transitive_cycle_reports_chain(self, tmp_path):
        root = write(tmp_path, "book.tex", "\\include{a}")
        a = write(tmp_path, "a.tex", "\\include{b}")
        b = write(tmp_path, "b.tex", "\\include{a}")
        with pytest.raises(IncludeCycle) as info:
            self.builder.build(root)
        assert info.value.chain == (a.resolve(), b.resolve(), a.resolve())

    def test_missing_include_is_io_error(self, tmp_path):
        root = write(tmp_path, "book.tex", "\\include{missing}")
        with pytest.raises(SourceIOError) as info:
            self.builder.build(root)
        assert info.value.path == (tmp_path / "missing.tex").resolve()

    def test_missing_root_is_io_error(self, tmp_path):
        with pytest.raises(SourceIOError):
            self.builder.build(tmp_path / "nope.tex")

    def test_custom_resolver(self, tmp_path):
        write(tmp_path, "library/x.ltx", "from library")
        root = write(tmp_path, "book.tex", "\\include{x}")
        builder = TreeBuilder(resolver=lambda including, name: tmp_path / "library" / f"{name}.ltx")
        assert builder.build(root).ast == Text("from library")

    def test_default_resolver_keeps_existing_suffix(self, tmp_path):
        including = tmp_path / "book.tex"
        assert resolve_include(including, "ch1") == tmp_path / "ch1.tex"
        assert resolve_include(including, "ch1.tex") == tmp_path / "ch1.tex"
        assert resolve_include(including, "ch1", suffix=".ltx") == tmp_path / "ch1.ltx"


class TestBuildErrors:
    """测试构建失败时的错误种类与位置"""

    def setup_method(self):
        self.builder = TreeBuilder()

    def test_syntax_error_carries_location(self, tmp_path):
        root = write(tmp_path, "book.tex", "fine\n\\chapter{broken")
        with pytest.raises(ManuscriptSyntaxError) as info:
            self.builder.build(root)
        assert info.value.path == root.resolve()
        assert info.value.line == 2
        assert info.value.expected == "`}`"

    def test_syntax_error_in_included_file_names_that_file(self, tmp_path):
        root = write(tmp_path, "book.tex", "\\include{ch1}")
        child = write(tmp_path, "ch1.tex", "$x$")
        with pytest.raises(ManuscriptSyntaxError) as info:
            self.builder.build(root)
        assert info.value.path == child.resolve()

    def test_unknown_environment_fails_with_location(self, tmp_path):
        root = write(tmp_path, "book.tex", "Text\n\\begin{fancybox}")
        with pytest.raises(UnsupportedConstruct) as info:
            self.builder.build(root)
        assert "fancybox" in info.value.construct
        assert "fancybox" in str(info.value)
        assert (info.value.line, info.value.column) == (2, 1)
        assert info.value.describe().startswith("UnsupportedConstruct: ")
        assert info.value.path == root.resolve()

    def test_unknown_command_fails(self, tmp_path):
        root = write(tmp_path, "book.tex", "\\textbf{x}")
        with pytest.raises(UnsupportedConstruct) as info:
            self.builder.build(root)
        assert "textbf" in info.value.construct

    def test_unknown_zero_argument_command_fails(self, tmp_path):
        root = write(tmp_path, "book.tex", "\\LaTeX")
        with pytest.raises(UnsupportedConstruct):
            self.builder.build(root)

    def test_unmapped_token_fails_with_raw_token(self, tmp_path):
        root = write(tmp_path, "book.tex", "line\\\\break")
        with pytest.raises(UnsupportedConstruct) as info:
            self.builder.build(root)
        assert "\\\\" in info.value.construct

    def test_footnote_requires_braced_body(self, tmp_path):
        root = write(tmp_path, "book.tex", "\\footnote[2]{x}")
        with pytest.raises(UnsupportedConstruct) as info:
            self.builder.build(root)
        assert (info.value.line, info.value.column) == (1, 1)

    def test_extra_argument_is_located(self, tmp_path):
        root = write(tmp_path, "book.tex", "\\emph{a}{b}")
        with pytest.raises(UnsupportedConstruct) as info:
            self.builder.build(root)
        assert (info.value.line, info.value.column) == (1, 9)

    def test_deep_nesting_is_conversion_error(self, tmp_path):
        depth = sys.getrecursionlimit() * 2
        root = write(tmp_path, "book.tex", "{" * depth + "x" + "}" * depth)
        with pytest.raises(UnsupportedConstruct) as info:
            self.builder.build(root)
        assert isinstance(info.value, ConversionError)
        assert info.value.path == root.resolve()

    def test_bracket_after_environment_is_text(self, tmp_path):
        root = write(tmp_path, "book.tex", "\\begin{quote}[Note] q\\end{quote}")
        assert self.builder.build(root).ast == List(
            (BeginEnvironment("quote"), Text("[Note] q"), EndEnvironment("quote"))
        )

    def test_chapter_requires_title(self, tmp_path):
        root = write(tmp_path, "book.tex", "\\chapter")
        with pytest.raises(UnsupportedConstruct):
            self.builder.build(root)

    def test_environment_name_must_be_literal(self, tmp_path):
        root = write(tmp_path, "book.tex", "\\begin{\\emph{quote}}")
        with pytest.raises(UnsupportedConstruct):
            self.builder.build(root)
