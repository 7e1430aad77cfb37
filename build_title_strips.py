import argparse
import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import Callable, List, Optional

from strip_pdf import generate_pdf
from strip_records import group_strips, read_csv_lines

DEFAULT_CSV_NAME = "songs.csv"
OUTPUT_FILENAME = "TitleStrips.pdf"
PROMPT = "Please drag and drop your CSV file into this window, then press Enter:"


def program_dir() -> Path:
    """Directory holding the running script (or the cwd when run interactively)."""
    if sys.argv and sys.argv[0]:
        return Path(sys.argv[0]).resolve().parent
    return Path.cwd()


def setup_logger(log_path: Optional[Path] = None, verbose: bool = False):
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, mode="w", encoding="utf-8"))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
        handlers=handlers,
        force=True,
    )


def read_answer(prompt: Optional[Callable[[str], str]]) -> str:
    try:
        return (prompt or input)("> ")
    except EOFError:
        return ""


def resolve_csv_path(arg: Optional[str], prompt: Optional[Callable[[str], str]] = None) -> Path:
    """Pick the input CSV: an existing argument, a typed path, or the default file."""
    if arg and Path(arg).exists():
        logging.info("Using dropped file: %s", arg)
        return Path(arg)

    print(PROMPT)
    # Dragging a file into a console wraps the path in quotes
    answer = read_answer(prompt).strip('" ')
    if not answer:
        csv_path = program_dir() / DEFAULT_CSV_NAME
        logging.info("No file provided. Using default: %s", csv_path)
        return csv_path
    return Path(answer)


def wait_for_key(prompt: Optional[Callable[[str], str]] = None):
    try:
        (prompt or input)("Press Enter to exit...")
    except EOFError:
        pass


def try_open_pdf(path: Path) -> bool:
    """Open the PDF with the OS default viewer. Failures are logged, never raised."""
    try:
        if not path.exists():
            logging.warning("PDF not found to open.")
            return False
        logging.info("Opening PDF: %s", path)
        if sys.platform.startswith("win"):
            os.startfile(str(path))  # type: ignore[attr-defined]
        elif sys.platform == "darwin":
            subprocess.Popen(["open", str(path)])
        else:
            subprocess.Popen(["xdg-open", str(path)], stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        return True
    except Exception as e:
        logging.warning("Could not open PDF automatically: %s", e)
        return False


def run(csv_path: Path, out_dir: Path, open_pdf: bool = True) -> Optional[Path]:
    """Turn csv_path into out_dir/TitleStrips.pdf.

    Returns the written file, or None when there was nothing to render
    (missing input, header-only file, no usable rows).
    """
    if not csv_path.exists():
        logging.error("CSV file not found at: %s", csv_path)
        return None

    try:
        out_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logging.error("Could not create output folder %s: %s", out_dir, e)
        raise
    file_path = out_dir / OUTPUT_FILENAME
    logging.info("Will save PDF to: %s", file_path)

    try:
        lines = read_csv_lines(csv_path)
    except OSError as e:
        logging.error("Could not read CSV file %s: %s", csv_path, e)
        raise
    if len(lines) <= 1:
        logging.warning("The CSV file is empty or missing rows.")
        return None

    logging.info("Generating jukebox title strips...")
    strips_by_decade = group_strips(lines)
    if not strips_by_decade:
        logging.warning("No rows with both artist and title found; nothing to print.")
        return None
    logging.info("All title strips grouped by decade!")

    try:
        generate_pdf(strips_by_decade, file_path)
    except OSError as e:
        logging.error("Failed to write PDF: %s", e)
        raise
    logging.info("PDF created successfully at: %s", file_path)
    if open_pdf:
        try_open_pdf(file_path)
    return file_path


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Print jukebox title strips from a CSV song list, one A4 page per decade.")
    parser.add_argument("csv", nargs="?", default=None, help="CSV file (artist, title, album in columns 2-4, year in column 7)")
    parser.add_argument("--no-open", action="store_true", help="Do not open the PDF after writing it")
    parser.add_argument("--log", default=None, help="Optional log file path; console output is mirrored there")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    setup_logger(Path(args.log).expanduser() if args.log else None, verbose=args.verbose)

    csv_path = resolve_csv_path(args.csv)
    if not csv_path.exists():
        logging.error("CSV file not found at: %s", csv_path)
        wait_for_key()
        return 1

    try:
        run(csv_path, program_dir(), open_pdf=not args.no_open)
    except OSError:
        # already logged with the step that failed
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
