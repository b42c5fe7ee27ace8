"""
EPUB spine trimmer.

Purpose: keep one contiguous range of the spine (reading order) of an EPUB and write a
new EPUB. Only the spine of the OPF package document is rewritten; every other archive
entry (content files, CSS, images, fonts, NCX, container.xml, mimetype) is copied
byte-for-byte with its original name, timestamp and compression.

Notes:
- Spine positions are 0-based inclusive: (2, 5) keeps the 3rd through 6th itemref.
- Manifest items whose itemrefs were dropped stay in the archive and the manifest.
- Internal hyperlinks into dropped chapters are not rewritten.
"""

from __future__ import annotations
import copy
import zipfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import List, Optional, Tuple

from lxml import etree

from doctrim.common.file_utils import PathLike, direct_output, resolve_output_path, staged_output, validate_input_path
from doctrim.common.range_utils import IndexBase, NormalizedRange, RangeRejection, normalize_range
from doctrim.common.status import StatusReporter, resolve_reporter
from doctrim.common.trim_result import TrimError, TrimErrorKind, TrimResult
from doctrim.config.trimconfig import *

# resolve_entities=False: OPF files never need external entities
XML_PARSER = etree.XMLParser(resolve_entities=False, no_network=True)


@dataclass
class OpfData:
    path: str                      # entry name inside the archive
    tree: etree._ElementTree
    namespace: str                 # "" when the package element has none
    spine: etree._Element
    itemrefs: List[etree._Element]


@dataclass
class SpineItem:
    index: int
    idref: str
    href: Optional[str]
    linear: bool


def _qname(namespace: str, local: str) -> str:
    return f"{{{namespace}}}{local}" if namespace else local


def _parse_xml(data: bytes, what: str) -> etree._ElementTree:
    try:
        return etree.ElementTree(etree.fromstring(data, XML_PARSER))
    except etree.XMLSyntaxError as e:
        raise TrimError(TrimErrorKind.STRUCTURAL, f"{what} is not well-formed XML: {e}") from e


def _find_entry(zipf: zipfile.ZipFile, name: str) -> Optional[zipfile.ZipInfo]:
    """Exact entry lookup, falling back to a case-insensitive match."""
    try:
        return zipf.getinfo(name)
    except KeyError:
        wanted = name.lower()
        for info in zipf.infolist():
            if info.filename.lower() == wanted:
                return info
    return None


def find_container_opf(zipf: zipfile.ZipFile, reporter: StatusReporter) -> str:
    reporter.info("Extracting container.xml.", stage="container")
    entry = _find_entry(zipf, CONTAINER_XML_PATH)
    if entry is None:
        raise TrimError(TrimErrorKind.STRUCTURAL, f"{CONTAINER_XML_PATH} not found in EPUB")
    root = _parse_xml(zipf.read(entry), CONTAINER_XML_PATH).getroot()

    reporter.info("Searching container.xml for the OPF package path.", stage="container")
    for rootfile in root.iter(f"{{{CONTAINER_NS}}}rootfile"):
        full_path = rootfile.get("full-path")
        if full_path:
            reporter.info(f"OPF path found: {full_path}", stage="container")
            return full_path
    raise TrimError(TrimErrorKind.STRUCTURAL, "Couldn't locate the OPF path in container.xml")


def parse_opf(zipf: zipfile.ZipFile, reporter: StatusReporter) -> OpfData:
    opf_path = find_container_opf(zipf, reporter)
    entry = _find_entry(zipf, opf_path)
    if entry is None:
        raise TrimError(TrimErrorKind.STRUCTURAL, f"OPF entry missing from EPUB: {opf_path}")
    reporter.info("OPF entry found.", stage="opf")

    tree = _parse_xml(zipf.read(entry), opf_path)
    root = tree.getroot()
    namespace = etree.QName(root).namespace or ""
    if not namespace:
        reporter.warning("OPF namespace not found; continuing without a namespace.", stage="opf")

    spine = next(root.iter(_qname(namespace, "spine")), None)
    if spine is None:
        raise TrimError(TrimErrorKind.STRUCTURAL, "OPF is missing its <spine> element")
    reporter.info("Found the spine.", stage="opf")

    itemrefs = spine.findall(_qname(namespace, "itemref"))
    if not itemrefs:
        raise TrimError(TrimErrorKind.STRUCTURAL, "OPF spine has no <itemref> entries")
    reporter.info(f"Found {len(itemrefs)} references in the spine.", stage="opf")

    # Keep the archive's own spelling of the entry name for the rewrite comparison
    return OpfData(entry.filename, tree, namespace, spine, itemrefs)


def _open_epub(src: Path) -> zipfile.ZipFile:
    try:
        return zipfile.ZipFile(src, "r")
    except zipfile.BadZipFile as e:
        raise TrimError(TrimErrorKind.STRUCTURAL, f"Not a readable EPUB archive: {src}: {e}") from e


def list_spine(epub_path: PathLike) -> List[SpineItem]:
    """Spine entries of an EPUB in reading order, with hrefs resolved through the manifest.

    Raises TrimError (INPUT/STRUCTURAL) for unusable files.
    """
    reporter = StatusReporter()
    src = validate_input_path(epub_path, EPUB_EXTENSION, reporter)
    with _open_epub(src) as zipf:
        opf = parse_opf(zipf, reporter)

    manifest = {
        item.get("id"): item.get("href")
        for item in opf.tree.getroot().iter(_qname(opf.namespace, "item"))
        if item.get("id")
    }
    opf_dir = PurePosixPath(opf.path).parent
    items = []
    for index, itemref in enumerate(opf.itemrefs):
        idref = itemref.get("idref", "")
        href = manifest.get(idref)
        if href is not None and str(opf_dir) not in ("", "."):
            href = str(opf_dir / href)
        items.append(SpineItem(index, idref, href, itemref.get("linear", "yes") != "no"))
    return items


def _require_range(start, end, total: int, reporter: StatusReporter) -> NormalizedRange:
    result = normalize_range(start, end, total, IndexBase.ZERO)
    if isinstance(result, RangeRejection):
        raise TrimError(TrimErrorKind.RANGE, result.message)
    if result.start_defaulted:
        reporter.warning("Start position not specified; starting at spine position 0.", stage="range")
    if result.end_defaulted:
        reporter.info(f"End position not specified; using the last spine position, {result.end}.", stage="range")
    return result


def _splice_spine(opf: OpfData, rng: NormalizedRange) -> None:
    """Drop every itemref outside rng; kept ones stay in place with attributes untouched."""
    keep_ids = {id(el) for el in opf.itemrefs[rng.to_slice(IndexBase.ZERO)]}
    for itemref in opf.itemrefs:
        if id(itemref) not in keep_ids:
            opf.spine.remove(itemref)


def _serialize_opf(opf: OpfData) -> bytes:
    docinfo = opf.tree.docinfo
    return etree.tostring(
        opf.tree,
        xml_declaration=True,
        encoding=docinfo.encoding or "utf-8",
        standalone=docinfo.standalone,
    )


def _copy_archive(zin: zipfile.ZipFile, out_path: Path, opf_path: str, opf_bytes: bytes) -> int:
    """Copy every entry of zin into a new zip at out_path, substituting the OPF. Returns entry count."""
    count = 0
    opf_key = opf_path.lower()
    with zipfile.ZipFile(out_path, "w") as zout:
        for info in zin.infolist():
            if info.filename.lower() == opf_key:
                data = opf_bytes
            else:
                data = zin.read(info)
            # Reusing the source ZipInfo keeps name, date_time, compress_type and attributes
            zout.writestr(copy.copy(info), data)
            count += 1
    return count


def keep_spine_range(
    input_epub_path: PathLike,
    output_epub_path: Optional[PathLike] = None,
    start: Optional[int] = None,
    end: Optional[int] = None,
    reporter: Optional[StatusReporter] = None,
) -> TrimResult:
    """Write a new EPUB whose spine holds only positions start..end (0-based, inclusive).

    Inputs
    - input_epub_path: existing .epub file.
    - output_epub_path: destination; None -> <stem>_trimmed.epub beside the input.
    - start, end: inclusive spine positions; either may be None but not both.
    - reporter: status observer.

    Returns
    - TrimResult; falsy with kind INPUT/RANGE/STRUCTURAL/PERSISTENCE when nothing was written.
    """
    reporter = resolve_reporter(reporter)
    total = 0
    try:
        src = validate_input_path(input_epub_path, EPUB_EXTENSION, reporter)
        reporter.info("Opening EPUB.", stage="open", path=src)
        with _open_epub(src) as zin:
            opf = parse_opf(zin, reporter)
            total = len(opf.itemrefs)
            rng = _require_range(start, end, total, reporter)

            reporter.info(f"Replacing the spine with positions {rng.start}-{rng.end}.", stage="spine")
            _splice_spine(opf, rng)
            opf_bytes = _serialize_opf(opf)

            dest = resolve_output_path(src, output_epub_path, reporter)
            output = staged_output(dest) if ATOMIC_OVERWRITE else direct_output(dest, reporter)
            try:
                with output as out_path:
                    entries = _copy_archive(zin, out_path, opf.path, opf_bytes)
            except (OSError, zipfile.BadZipFile, zipfile.LargeZipFile) as e:
                raise TrimError(TrimErrorKind.PERSISTENCE, f"Error saving {dest}: \"{e}\"") from e
    except TrimError as e:
        reporter.error(e.message, stage=e.kind.value, path=input_epub_path)
        return TrimResult.failure(e, total)

    reporter.info(f"spine={total} keep={rng.count} entries={entries} -> {dest}", stage="done", path=dest)
    return TrimResult.success(dest, total, rng.count)
