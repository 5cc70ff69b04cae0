import io
import logging
import re

import docx
import fitz  # pyMuPDF

logger = logging.getLogger(__name__)

PDF = "application/pdf"
DOC = "application/msword"
DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

ALLOWED_MIME_TYPES = (PDF, DOC, DOCX)

EXTENSION_MIME_TYPES = {
    ".pdf": PDF,
    ".doc": DOC,
    ".docx": DOCX,
}


def guess_mime_type(filename, declared=None):
    """Prefer the declared content type; fall back to the file extension."""
    if declared in ALLOWED_MIME_TYPES:
        return declared
    lowered = (filename or "").lower()
    for extension, mime_type in EXTENSION_MIME_TYPES.items():
        if lowered.endswith(extension):
            return mime_type
    return declared


def extract_text(data, mime_type):
    """
    Extract plain text from an uploaded CV (PDF via PyMuPDF, DOCX via python-docx).
    Legacy .doc files only get their printable text runs.
    Returns None when nothing could be read.
    """
    try:
        if mime_type == PDF:
            doc = fitz.open(stream=data, filetype="pdf")
            all_blocks = []
            for page in doc:
                all_blocks.extend(page.get_text("blocks"))
            doc.close()

            # reading order: top to bottom, then left to right
            all_blocks.sort(key=lambda b: (b[1], b[0]))
            text = "\n".join(block[4] for block in all_blocks)

        elif mime_type == DOCX:
            doc = docx.Document(io.BytesIO(data))
            text = "\n".join(para.text for para in doc.paragraphs)

        elif mime_type == DOC:
            runs = re.findall(rb"[\x20-\x7e\r\n\t]{4,}", data)
            text = "\n".join(run.decode("ascii").strip() for run in runs)

        else:
            return None

    except Exception as e:
        logger.warning("Could not extract text from %s upload: %s", mime_type, e)
        return None

    text = text.strip()
    return text or None
