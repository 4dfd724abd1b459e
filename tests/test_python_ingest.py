from __future__ import annotations

from pathlib import Path

import pytest

from doclinks.analysis.model import Span
from doclinks.config import ScanConfig
from doclinks.ingest.python_ingest import (
    BlockKind,
    extract_doc_blocks,
    ingest_python_file,
    ingest_python_source,
    iter_python_paths,
)
from doclinks.ingest.source_map import SourceMap, SourcePosition

SAMPLE = (
    '"""Module doc [ok](http://example.com)."""\n'
    "\n"
    "#: Width of the frame, see [docs](http://example.com/\n"
    "#: frame/width)\n"
    "WIDTH = 3\n"
    "\n"
    "\n"
    "class Frame:\n"
    '    """Frame.\n'
    "\n"
    "    See [guide](\n"
    "    http://example.com/guide)\n"
    '    """\n'
    "\n"
    "    #: [height](http://example.com/a b)\n"
    "    height: int = 2\n"
    "\n"
    "    # plain comment [x](http://\n"
    "    def render(self):\n"
    '        """Render [it](http://example.com/render"""\n'
)


def test_extract_doc_blocks_finds_comments_and_docstrings() -> None:
    blocks = extract_doc_blocks(SAMPLE)
    assert [(block.qualname, block.kind) for block in blocks] == [
        ("<module>", BlockKind.DOCSTRING),
        ("WIDTH", BlockKind.COMMENT),
        ("Frame", BlockKind.DOCSTRING),
        ("Frame.height", BlockKind.COMMENT),
        ("Frame.render", BlockKind.DOCSTRING),
    ]
    assert [fragment.text for fragment in blocks[1].fragments] == [
        " Width of the frame, see [docs](http://example.com/",
        " frame/width)",
    ]
    assert [fragment.text for fragment in blocks[2].fragments] == [
        "Frame.",
        "",
        "See [guide](",
        "http://example.com/guide)",
        "",
    ]
    assert blocks[0].fragments[0].text == "Module doc [ok](http://example.com)."


def test_fragment_spans_point_at_their_source_bytes() -> None:
    source = "#: ünïcode [x](http://é\n#: y)\nVALUE = 1\n\nclass A:\n    '''Ω [z](\n        http://q)'''\n"
    source_map = SourceMap(source)
    blocks = extract_doc_blocks(source, source_map=source_map)
    assert blocks
    for block in blocks:
        for fragment in block.fragments:
            assert source_map.text(fragment.span) == fragment.text


def test_docstrings_can_be_disabled() -> None:
    blocks = extract_doc_blocks(SAMPLE, docstrings=False)
    assert {block.kind for block in blocks} == {BlockKind.COMMENT}


def test_custom_comment_markers() -> None:
    source = "## [a](http://x y)\n#: [b](http://z\nVALUE = 1\n"
    blocks = extract_doc_blocks(source, comment_markers=("##",), docstrings=False)
    assert blocks == ()
    blocks = extract_doc_blocks(source, comment_markers=("##", "#:"), docstrings=False)
    assert len(blocks) == 1
    assert [fragment.text for fragment in blocks[0].fragments] == [" [a](http://x y)", " [b](http://z"]


def test_blank_line_or_plain_comment_ends_the_run() -> None:
    source = "#: [a](http://x\n\n#: first\n# plain\n#: second\nVALUE = 1\n"
    blocks = extract_doc_blocks(source, docstrings=False)
    assert len(blocks) == 1
    assert [fragment.text for fragment in blocks[0].fragments] == [" second"]


def test_decorators_split_comment_blocks() -> None:
    source = (
        "#: before [a](http://x\n"
        "@staticmethod\n"
        "#: after [b](http://y z)\n"
        "def f():\n"
        "    pass\n"
    )
    blocks = extract_doc_blocks(source, docstrings=False)
    assert [(block.qualname, block.fragments[0].text) for block in blocks] == [
        ("f", " before [a](http://x"),
        ("f", " after [b](http://y z)"),
    ]


def test_single_line_suite_docstring_and_bytes_docstring() -> None:
    blocks = extract_doc_blocks('def g(): "Doc [x](http://a b)"\n')
    assert [(block.qualname, block.fragments[0].text) for block in blocks] == [("g", "Doc [x](http://a b)")]
    assert extract_doc_blocks('b"""not [a](doc"""\n') == ()


def test_nested_qualnames() -> None:
    source = (
        "class Outer:\n"
        "    class Inner:\n"
        "        def method(self):\n"
        '            """Doc."""\n'
        "            #: [local](http://x)\n"
        "            value = 1\n"
    )
    blocks = extract_doc_blocks(source)
    assert [block.qualname for block in blocks] == ["Outer.Inner.method", "Outer.Inner.method.value"]


def test_ingest_source_records_parse_failures() -> None:
    carrier = ingest_python_source("def (:\n", Path("bad.py"), config=ScanConfig())
    assert carrier.blocks == ()
    assert carrier.source_map is None
    assert [witness.stage for witness in carrier.parse_failure_witnesses] == ["parse"]


def test_ingest_file_records_read_failures(tmp_path: Path) -> None:
    path = tmp_path / "latin.py"
    path.write_bytes("# caf\xe9\n".encode("latin-1"))
    carrier = ingest_python_file(path, config=ScanConfig())
    assert [witness.stage for witness in carrier.parse_failure_witnesses] == ["read"]


def test_iter_python_paths_skips_caches_and_excludes(write_module, tmp_path: Path) -> None:
    write_module("pkg/a.py", "A = 1\n")
    write_module("pkg/sub/b.py", "B = 1\n")
    write_module("pkg/__pycache__/c.py", "C = 1\n")
    write_module("pkg/notes.txt", "text\n")
    write_module("build/gen.py", "G = 1\n")
    config = ScanConfig(exclude=("build/*",), project_root=tmp_path)
    found = iter_python_paths([tmp_path], config=config)
    assert [path.relative_to(tmp_path).as_posix() for path in found] == ["pkg/a.py", "pkg/sub/b.py"]


def test_source_map_positions_round_trip() -> None:
    source = "aé\r\n𝄞b\rc\n"
    source_map = SourceMap(source)
    assert source_map.position(len(source.encode("utf-8"))) == SourcePosition(line=4, column=0)
    offset = source_map.offset(2, 1)
    assert offset == len("aé\r\n𝄞".encode("utf-8"))
    assert source_map.position(offset) == SourcePosition(line=2, column=1)
    assert source_map.position(source_map.offset(3, 1)) == SourcePosition(line=3, column=1)
    assert source_map.utf16_column(SourcePosition(line=2, column=1)) == 2


@pytest.mark.parametrize("offset", [-5, 0, 3, 10_000])
def test_source_map_position_clamps(offset: int) -> None:
    position = SourceMap("ab\ncd").position(offset)
    assert 1 <= position.line <= 2


def test_source_map_tolerates_lone_surrogates() -> None:
    source_map = SourceMap("a\ud800\nb")
    assert source_map.offset(2, 0) == 5
    assert source_map.position(5) == SourcePosition(line=2, column=0)
    assert source_map.position(4) == SourcePosition(line=1, column=2)
    assert source_map.text(Span(1, 4)) == "\ud800"
    assert source_map.utf16_column(SourcePosition(line=1, column=2)) == 2


def test_byte_order_mark_is_not_counted_in_spans(tmp_path: Path) -> None:
    source = "\ufeff#: [x](http://a b)\nX = 1\n"
    path = tmp_path / "bom.py"
    path.write_bytes(source.encode("utf-8"))
    for carrier in (
        ingest_python_source(source, Path("bom.py"), config=ScanConfig()),
        ingest_python_file(path, config=ScanConfig()),
    ):
        assert carrier.parse_failure_witnesses == ()
        assert carrier.source_map is not None
        [block] = carrier.blocks
        assert [fragment.text for fragment in block.fragments] == [" [x](http://a b)"]
        for fragment in block.fragments:
            assert carrier.source_map.text(fragment.span) == fragment.text


def test_docstring_margin_expands_tabs() -> None:
    source = 'def f():\n\t"""Doc.\n\tfirst [a](http://x)\n        second\n\t"""\n'
    source_map = SourceMap(source)
    [block] = extract_doc_blocks(source, source_map=source_map)
    assert [fragment.text for fragment in block.fragments] == ["Doc.", "first [a](http://x)", "second", ""]
    for fragment in block.fragments:
        assert source_map.text(fragment.span) == fragment.text
