import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

MIN_FIELDS = 7
MAX_STRIP_LENGTH = 100
ELLIPSIS = "…"
UNKNOWN_DECADE = "Unknown"

# Same bounds as a signed 32-bit integer parse
INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1
YEAR_PATTERN = re.compile(r"^\s*[+-]?\d+\s*$", re.ASCII)


@dataclass(frozen=True)
class SongRecord:
    artist: str
    title: str
    album: str
    year: str


def parse_csv_line(line: str) -> List[str]:
    """Split one CSV line on commas, ignoring commas inside double quotes.

    Quote characters only toggle the quoted state and are dropped from the
    field text. There is no escape for a literal quote; an unterminated quote
    simply keeps the rest of the line in the current field.
    """
    values: List[str] = []
    in_quotes = False
    current: List[str] = []
    for ch in line:
        if ch == '"':
            in_quotes = not in_quotes
        elif ch == "," and not in_quotes:
            values.append("".join(current))
            current = []
        else:
            current.append(ch)
    values.append("".join(current))
    return values


def extract_record(fields: List[str]) -> Optional[SongRecord]:
    """Pick artist/title/album/year out of a parsed row, or None if unusable."""
    if len(fields) < MIN_FIELDS:
        return None
    artist = fields[1].strip()
    title = fields[2].strip()
    album = fields[3].strip()
    year = fields[6].strip()
    if not artist or not title:
        return None
    return SongRecord(artist=artist, title=title, album=album, year=year)


def get_title_strip_text(artist: str, title: str, album: str, year: str) -> str:
    space = "  "
    text = f"{title}\n{artist + space + year}\n"
    if album.strip():
        text += f"{album}\n"
    return text


def truncate(text: str, max_length: int = MAX_STRIP_LENGTH) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length] + ELLIPSIS


def get_decade(year: str) -> str:
    """Return the decade label for a year string, e.g. "1985" -> "1980s"."""
    if not year or not YEAR_PATTERN.match(year):
        return UNKNOWN_DECADE
    y = int(year)
    if y < INT32_MIN or y > INT32_MAX:
        return UNKNOWN_DECADE
    # truncate toward zero, -15 -> -10
    decade_start = (abs(y) // 10) * 10
    if y < 0:
        decade_start = -decade_start
    return f"{decade_start}s"


def add_row(fields: List[str], strips_by_decade: Dict[str, List[str]]) -> Optional[Tuple[str, str]]:
    """Format one row into a strip and append it to its decade bucket.

    Returns (decade, strip) for an accepted row and None for a skipped one;
    skipped rows leave the mapping untouched.
    """
    record = extract_record(fields)
    if record is None:
        return None
    strip = get_title_strip_text(record.artist, record.title, record.album, record.year)
    strip = truncate(strip, MAX_STRIP_LENGTH)
    decade = get_decade(record.year)
    strips_by_decade.setdefault(decade, []).append(strip)
    return decade, strip


def group_strips(lines: Iterable[str]) -> Dict[str, List[str]]:
    """Group every data line (the header line is skipped) into decade buckets."""
    strips_by_decade: Dict[str, List[str]] = {}
    skipped = 0
    for i, line in enumerate(lines):
        if i == 0:
            continue
        added = add_row(parse_csv_line(line), strips_by_decade)
        if added is None:
            skipped += 1
            continue
        decade, strip = added
        logging.info("%s: %s", decade, strip)
    if skipped:
        logging.debug("Skipped %d malformed rows", skipped)
    return strips_by_decade


def read_csv_lines(csv_path: Path) -> List[str]:
    # utf-8-sig drops the BOM Excel writes on Windows
    text = Path(csv_path).read_text(encoding="utf-8-sig", errors="replace")
    # only CR/LF end a line; str.splitlines would also split on \x0b, \x85 etc.
    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return lines
