import os
import stat
import sys
import zipfile
from pathlib import Path

import fitz
import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from doctrim.common.status import StatusReporter

OPF_NS = "http://www.idpf.org/2007/opf"
CONTAINER_XML = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">\n'
    '  <rootfiles>\n'
    '    <rootfile full-path="{opf_path}" media-type="application/oebps-package+xml"/>\n'
    '  </rootfiles>\n'
    '</container>\n'
)
# Arbitrary binary payload standing in for an image
COVER_BYTES = bytes(range(256)) * 4


class RecordingReporter(StatusReporter):
    def __init__(self):
        self.events = []

    def info(self, message, stage="", path=None):
        self.events.append(("info", stage, message))

    def warning(self, message, stage="", path=None):
        self.events.append(("warning", stage, message))

    def error(self, message, stage="", path=None):
        self.events.append(("error", stage, message))

    def levels(self):
        return [level for level, _, _ in self.events]


@pytest.fixture
def reporter():
    return RecordingReporter()


@pytest.fixture
def umask_022():
    old = os.umask(0o022)
    yield
    os.umask(old)


def file_mode(path: Path) -> int:
    return stat.S_IMODE(path.stat().st_mode)


def build_pdf(path: Path, pages: int, toc=None) -> Path:
    doc = fitz.open()
    for number in range(1, pages + 1):
        page = doc.new_page()
        page.insert_text((72, 72), f"Page {number}")
    if toc:
        doc.set_toc(toc)
    doc.save(str(path))
    doc.close()
    return path


def page_labels(path: Path):
    doc = fitz.open(str(path))
    try:
        return [page.get_text().strip() for page in doc]
    finally:
        doc.close()


@pytest.fixture
def ten_page_pdf(tmp_path):
    return build_pdf(tmp_path / "book.pdf", 10)


def build_opf(spine_count: int, namespaced: bool = True, with_spine: bool = True) -> str:
    xmlns = f' xmlns="{OPF_NS}"' if namespaced else ""
    items = "\n".join(
        f'    <item id="ch{i}" href="text/chap{i}.xhtml" media-type="application/xhtml+xml"/>'
        for i in range(spine_count)
    )
    # ch1 carries extra attributes so tests can check they survive verbatim
    itemrefs = "\n".join(
        f'    <itemref idref="ch{i}" linear="no" properties="page-spread-left"/>' if i == 1
        else f'    <itemref idref="ch{i}"/>'
        for i in range(spine_count)
    )
    spine = f'  <spine toc="ncx">\n{itemrefs}\n  </spine>\n' if with_spine else ""
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<package{xmlns} version="2.0" unique-identifier="bookid">\n'
        '  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/">\n'
        '    <dc:title>Sample Book</dc:title>\n'
        '    <dc:identifier id="bookid">urn:uuid:1234</dc:identifier>\n'
        '  </metadata>\n'
        '  <manifest>\n'
        f'{items}\n'
        '    <item id="ncx" href="toc.ncx" media-type="application/x-dtbncx+xml"/>\n'
        '    <item id="css" href="style.css" media-type="text/css"/>\n'
        '    <item id="cover" href="images/cover.png" media-type="image/png"/>\n'
        '  </manifest>\n'
        f'{spine}'
        '</package>\n'
    )


def build_epub(
    path: Path,
    spine_count: int = 8,
    opf_path: str = "OEBPS/content.opf",
    container_opf_path: str = None,
    opf_text: str = None,
    with_container: bool = True,
    with_opf: bool = True,
) -> Path:
    if opf_text is None:
        opf_text = build_opf(spine_count)
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr(zipfile.ZipInfo("mimetype", (2020, 1, 1, 0, 0, 0)), "application/epub+zip",
                    compress_type=zipfile.ZIP_STORED)
        if with_container:
            zf.writestr("META-INF/container.xml",
                        CONTAINER_XML.format(opf_path=container_opf_path or opf_path),
                        compress_type=zipfile.ZIP_DEFLATED)
        if with_opf:
            zf.writestr(opf_path, opf_text, compress_type=zipfile.ZIP_DEFLATED)
        zf.writestr("OEBPS/toc.ncx", "<ncx/>", compress_type=zipfile.ZIP_DEFLATED)
        zf.writestr("OEBPS/style.css", "body { margin: 0; }", compress_type=zipfile.ZIP_DEFLATED)
        zf.writestr("OEBPS/images/cover.png", COVER_BYTES, compress_type=zipfile.ZIP_STORED)
        for i in range(spine_count):
            zf.writestr(
                f"OEBPS/text/chap{i}.xhtml",
                f"<html><body><h1>Chapter {i}</h1></body></html>",
                compress_type=zipfile.ZIP_DEFLATED,
            )
    return path


@pytest.fixture
def eight_item_epub(tmp_path):
    return build_epub(tmp_path / "book.epub", spine_count=8)
