import re
from pathlib import Path

import pytest
from reportlab.lib import colors
from reportlab.platypus import PageBreak, Paragraph, Spacer, Table

import strip_pdf
from strip_pdf import (
    BORDER_WIDTH,
    LABEL_HEIGHT,
    LABEL_WIDTH,
    OFFSET_PADDING,
    build_decade_table,
    build_story,
    decade_table_commands,
    generate_pdf,
    pdf_safe_text,
    sorted_decades,
)
from strip_records import group_strips


def test_label_size_is_seven_and_a_half_by_two_and_a_half_cm() -> None:
    assert LABEL_WIDTH == pytest.approx(212.625)
    assert LABEL_HEIGHT == pytest.approx(70.875)


def test_sorted_decades_is_plain_string_order() -> None:
    buckets = {"Unknown": ["u"], "1990s": ["b"], "1980s": ["a"], "800s": ["c"]}

    assert sorted_decades(buckets) == ["1980s", "1990s", "800s", "Unknown"]


def test_pdf_safe_text_escapes_and_keeps_spacing() -> None:
    assert pdf_safe_text("Rock & Roll\nQueen  1975") == "Rock &amp; Roll<br/>Queen&nbsp;&nbsp;1975"


def test_pdf_safe_text_transliterates_outside_cp1252() -> None:
    # Björk and the ellipsis are drawable, the Cyrillic title is not
    assert pdf_safe_text("Björk…") == "Björk…"
    assert pdf_safe_text("Кино") == "Kino"


def test_decade_table_commands_offset_odd_rows() -> None:
    commands = decade_table_commands(5)

    paddings = [c for c in commands if c[0] == "LEFTPADDING"]
    assert paddings == [("LEFTPADDING", (0, 1), (0, 1), OFFSET_PADDING)]

    boxes = [c[1] for c in commands if c[0] == "BOX"]
    assert boxes == [(0, 0), (1, 0), (0, 1), (1, 1), (0, 2)]
    assert all(c[3] == BORDER_WIDTH and c[4] == colors.black for c in commands if c[0] == "BOX")


def test_decade_table_commands_single_strip() -> None:
    commands = decade_table_commands(1)

    assert not [c for c in commands if c[0] == "LEFTPADDING"]
    assert [c for c in commands if c[0] == "BOX"] == [("BOX", (0, 0), (0, 0), BORDER_WIDTH, colors.black)]


def test_build_decade_table_fills_rows() -> None:
    table = build_decade_table(["one\nA  1981\n", "two\nB  1982\n", "three\nC  1983\n"])

    assert isinstance(table, Table)
    cells = table._cellvalues
    assert len(cells) == 2
    assert all(isinstance(cell, Paragraph) for cell in cells[0])
    assert isinstance(cells[1][0], Paragraph)
    assert cells[1][1] == ""


def test_build_story_one_table_and_break_per_decade() -> None:
    buckets = {"1990s": ["b\nB  1999\n"], "1980s": ["a\nA  1985\n"]}

    story = build_story(buckets)

    assert [type(f) for f in story] == [Table, PageBreak, Table, PageBreak, Spacer]
    assert len(story[0]._cellvalues) == 1
    assert len(story[2]._cellvalues) == 1


def test_build_story_empty_mapping() -> None:
    assert build_story({}) == []


def test_build_story_orders_tables_by_decade(monkeypatch: pytest.MonkeyPatch) -> None:
    seen = []
    real_build = strip_pdf.build_decade_table

    def spy(strips):
        seen.append(list(strips))
        return real_build(strips)

    monkeypatch.setattr(strip_pdf, "build_decade_table", spy)

    build_story({"Unknown": ["u\nU  \n"], "1970s": ["x\nX  1970\n", "y\nY  1971\n"]})

    assert seen == [["x\nX  1970\n", "y\nY  1971\n"], ["u\nU  \n"]]


def test_generate_pdf_writes_document(tmp_path: Path) -> None:
    buckets = {
        "1980s": ["One\nA  1985\n"],
        "1990s": ["Two\nB  1999\nAlbum\n"],
        "Unknown": ["Three & Four\nC  \n", "Five\nD  abc\n", "Six\nE  ?\n"],
    }
    target = tmp_path / "nested" / "TitleStrips.pdf"

    result = generate_pdf(buckets, target)

    assert result == target
    data = target.read_bytes()
    assert data.startswith(b"%PDF")
    assert data.rstrip().endswith(b"%%EOF")


def test_generate_pdf_two_decades_give_three_pages(tmp_path: Path) -> None:
    buckets = group_strips(["id,artist,title,album,genre,length,year", "1,A,One,,,,1985", "2,B,Two,,,,1999"])
    target = tmp_path / "TitleStrips.pdf"

    generate_pdf(buckets, target)

    # one page per decade plus the blank page after the last break
    counts = re.findall(rb"/Count (\d+)", target.read_bytes())
    assert b"3" in counts
    assert max(int(c) for c in counts) == 3


def test_generate_pdf_propagates_io_errors(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")

    with pytest.raises(OSError):
        generate_pdf({"1980s": ["One\nA  1985\n"]}, blocker / "TitleStrips.pdf")


def test_generate_pdf_closes_file_when_layout_fails(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    opened = []
    real_open = open

    def tracking_open(*args, **kwargs):
        handle = real_open(*args, **kwargs)
        opened.append(handle)
        return handle

    def broken_build(self, story, *args, **kwargs):
        raise RuntimeError("layout failed")

    monkeypatch.setattr(strip_pdf, "open", tracking_open, raising=False)
    monkeypatch.setattr(strip_pdf.SimpleDocTemplate, "build", broken_build)

    with pytest.raises(RuntimeError):
        generate_pdf({"1980s": ["One\nA  1985\n"]}, tmp_path / "TitleStrips.pdf")

    assert opened and all(handle.closed for handle in opened)
