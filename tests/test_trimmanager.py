import argparse
import logging

import pytest

import doctrim.trimmanager as trimmanager
from doctrim.common.status import LoggingStatusReporter
from conftest import build_epub, page_labels


@pytest.fixture(autouse=True)
def _detach_logger():
    yield
    logger = logging.getLogger("doctrim")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


@pytest.mark.parametrize(
    "text,expected",
    [("3-7", (3, 7)), ("9-", (9, None)), ("-2", (None, 2)), ("5", (5, 5)), (" 4 - 6 ", (4, 6))],
)
def test_parse_range(text, expected):
    assert trimmanager.parse_range(text) == expected


def test_parse_range_rejects_garbage():
    with pytest.raises(argparse.ArgumentTypeError):
        trimmanager.parse_range("a-b")


def test_pdf_keep_command_writes_output_and_csv_log(ten_page_pdf, tmp_path):
    out = tmp_path / "kept.pdf"

    code = trimmanager.main(["--no-color", "pdf-keep", str(ten_page_pdf), "-o", str(out), "--start", "3", "--end", "7"])

    assert code == 0
    assert page_labels(out) == [f"Page {n}" for n in range(3, 8)]
    log_lines = (tmp_path / "a_trimmanager.log").read_text(encoding="utf-8").splitlines()
    assert log_lines[0] == "Date,Level,Message,Stage,Path"
    assert any('"done"' in line for line in log_lines[1:])


def test_pdf_remove_command(ten_page_pdf, tmp_path):
    out = tmp_path / "body.pdf"

    code = trimmanager.main(
        ["--no-color", "pdf-remove", str(ten_page_pdf), "-o", str(out), "--range", "1-2", "--range", "9-"]
    )

    assert code == 0
    assert page_labels(out) == [f"Page {n}" for n in range(3, 9)]


def test_range_error_exit_code(ten_page_pdf, tmp_path):
    code = trimmanager.main(["--no-color", "pdf-keep", str(ten_page_pdf), "--start", "1", "--end", "10"])

    assert code == 2


def test_structural_error_exit_code(tmp_path):
    src = build_epub(tmp_path / "book.epub", with_container=False)

    code = trimmanager.main(["--no-color", "--log-dir", str(tmp_path / "logs"), "epub-keep", str(src), "--end", "2"])

    assert code == 3
    assert (tmp_path / "logs" / "a_trimmanager.log").exists()


def test_epub_keep_command(tmp_path):
    src = build_epub(tmp_path / "book.epub", spine_count=8)

    code = trimmanager.main(["--no-color", "epub-keep", str(src), "--start", "2", "--end", "5"])

    assert code == 0
    assert (tmp_path / "book_trimmed.epub").exists()


def test_info_command_lists_spine(tmp_path, capsys):
    src = build_epub(tmp_path / "book.epub", spine_count=3)

    code = trimmanager.main(["--no-color", "info", str(src)])

    assert code == 0
    captured = capsys.readouterr().out
    assert "3 spine items" in captured
    assert "[2] ch2 -> OEBPS/text/chap2.xhtml" in captured


def test_info_command_counts_pdf_pages(ten_page_pdf, capsys):
    code = trimmanager.main(["--no-color", "info", str(ten_page_pdf)])

    assert code == 0
    assert "10 pages" in capsys.readouterr().out


def test_logging_reporter_fills_csv_columns(tmp_path):
    from doctrim.common.custom_logger import setup_global_logger

    logger = setup_global_logger(script_name="trimlog", cwd=tmp_path, headers=["Date", "Level", "Message", "Stage", "Path"], color=False)
    LoggingStatusReporter(logger).warning("heads up", stage="range", path="x.pdf")

    rows = (tmp_path / "a_trimlog.log").read_text(encoding="utf-8").splitlines()
    assert rows[-1].endswith('"WARNING","heads up","range","x.pdf"')


def test_csv_log_defaults_to_trim_columns_and_stays_one_line(tmp_path):
    from doctrim.common.custom_logger import setup_global_logger

    logger = setup_global_logger(script_name="trimlog", cwd=tmp_path, color=False)
    LoggingStatusReporter(logger).error('bad "spine"\nsecond line', stage="structural", path="b.epub")

    rows = (tmp_path / "a_trimlog.log").read_text(encoding="utf-8").splitlines()
    assert rows[0] == "Date,Level,Message,Stage,Path"
    assert rows[-1].endswith('"ERROR","bad ""spine"" second line","structural","b.epub"')


def test_setup_global_logger_validates_headers(tmp_path):
    from doctrim.common.custom_logger import setup_global_logger

    with pytest.raises(ValueError):
        setup_global_logger(script_name="trimlog", cwd=tmp_path, headers=["Level", "Date", "Message"])
