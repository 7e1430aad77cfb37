import logging
from pathlib import Path
from typing import Dict, List
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.platypus import PageBreak, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from unidecode import unidecode

PAGE_SIZE = A4
MARGIN = 10
# centimetres to points
CM = 28.35
LABEL_WIDTH = 7.5 * CM
LABEL_HEIGHT = 2.5 * CM
COLUMNS = 2
FONT_SIZE = 10
LEADING = 1.2 * FONT_SIZE
BORDER_WIDTH = 0.5
OFFSET_PADDING = 20

STRIP_STYLE = ParagraphStyle(
    "TitleStrip",
    fontName="Helvetica",
    fontSize=FONT_SIZE,
    leading=LEADING,
    alignment=TA_CENTER,
)


def sorted_decades(strips_by_decade: Dict[str, List[str]]) -> List[str]:
    # Plain string order: "Unknown" lands after the numeric decades
    return sorted(strips_by_decade.keys())


def pdf_safe_text(text: str) -> str:
    """Make strip text drawable with the built-in Helvetica font.

    The standard fonts only cover the Windows-1252 repertoire, anything else
    is transliterated. Markup characters are escaped for the paragraph parser,
    line breaks become <br/> and runs of spaces are kept as non-breaking.
    """
    chars = []
    for ch in text:
        try:
            ch.encode("cp1252")
            chars.append(ch)
        except UnicodeEncodeError:
            chars.append(unidecode(ch))
    markup = escape("".join(chars))
    markup = markup.replace("  ", "&nbsp;&nbsp;")
    return markup.replace("\n", "<br/>")


def strip_cell(strip: str) -> Paragraph:
    return Paragraph(pdf_safe_text(strip.rstrip("\n")), STRIP_STYLE)


def decade_table_commands(count: int) -> list:
    """TableStyle commands for a grid holding `count` strips.

    Only occupied cells get a border. The first cell of every odd row gets
    extra left padding so the rows look staggered like brickwork.
    """
    commands = [
        ("ALIGN", (0, 0), (-1, -1), "CENTER"),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
    ]
    for i in range(count):
        row = i // COLUMNS
        col = i % COLUMNS
        if col == 0 and row % 2 == 1:
            commands.append(("LEFTPADDING", (0, row), (0, row), OFFSET_PADDING))
        commands.append(("BOX", (col, row), (col, row), BORDER_WIDTH, colors.black))
    return commands


def build_decade_table(strips: List[str]) -> Table:
    """Lay out one decade's strips as a grid of label cells, COLUMNS per row."""
    rows: List[list] = []
    for i, strip in enumerate(strips):
        if i % COLUMNS == 0:
            # a short last row keeps empty strings in its unused cells
            rows.append([""] * COLUMNS)
        rows[i // COLUMNS][i % COLUMNS] = strip_cell(strip)

    table = Table(
        rows,
        colWidths=[LABEL_WIDTH] * COLUMNS,
        rowHeights=[LABEL_HEIGHT] * len(rows),
        hAlign="LEFT",
    )
    table.setStyle(TableStyle(decade_table_commands(len(strips))))
    return table


def build_story(strips_by_decade: Dict[str, List[str]]) -> list:
    story: list = []
    for decade in sorted_decades(strips_by_decade):
        strips = strips_by_decade[decade]
        logging.debug("Laying out %s (%d strips)", decade, len(strips))
        story.append(build_decade_table(strips))
        # Every decade starts on a fresh page, the last one included
        story.append(PageBreak())
    if story:
        # reportlab drops a page break with nothing after it; keep the blank page
        story.append(Spacer(1, 1))
    return story


def generate_pdf(strips_by_decade: Dict[str, List[str]], file_path: Path) -> Path:
    """Render all decades into a single A4 document at file_path.

    The output file is opened here and closed on every exit path; I/O errors
    propagate to the caller.
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    logging.info("Writing PDF to: %s", file_path)

    story = build_story(strips_by_decade)
    with open(file_path, "wb") as f:
        doc = SimpleDocTemplate(
            f,
            pagesize=PAGE_SIZE,
            leftMargin=MARGIN,
            rightMargin=MARGIN,
            topMargin=MARGIN,
            bottomMargin=MARGIN,
            title="Jukebox Title Strips",
        )
        doc.build(story)

    logging.info("PDF successfully created!")
    return file_path
