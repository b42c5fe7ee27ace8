# ============================
# OUTPUT NAMING
# ============================
TRIM_SUFFIX = "_trimmed"        # report.pdf -> report_trimmed.pdf when no output path is given
PDF_EXTENSION = ".pdf"
EPUB_EXTENSION = ".epub"

# ============================
# PDF TRIM CONFIGURATION
# ============================
PDF_SAVE_OPTIONS = {"garbage": 4, "deflate": True, "clean": True}  # passed to fitz Document.save
PRESERVE_PDF_TOC = True         # Copy bookmarks that point at kept pages into the output

# ============================
# EPUB TRIM CONFIGURATION
# ============================
CONTAINER_XML_PATH = "META-INF/container.xml"
CONTAINER_NS = "urn:oasis:names:tc:opendocument:xmlns:container"
ATOMIC_OVERWRITE = True         # False: delete an existing output first, then write (no rollback)

# ============================
# LOGGING
# ============================
LOG_LEVEL = "INFO"
LOG_HEADER = ["Date", "Level", "Message", "Stage", "Path"]
LOG_DIR = None                  # None: write the CSV log next to the input document
COLOR_CONSOLE = True            # ANSI truecolor console output
