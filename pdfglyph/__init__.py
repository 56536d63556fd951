"""
pdfglyph: glyph widths and Unicode text for PDF fonts.

Basic usage:

    from pdfglyph import Font, ObjectStore

    doc = ObjectStore({...})  # or anything with an `object` method
    font = Font(doc.object(font_ref), doc)
    print(font.to_utf8(b"Hello"), font.string_width(b"Hello"))
"""

from pdfglyph._version import __version__  # noqa: F401
from pdfglyph.encodingdb import UNKNOWN_CHAR, Encoding, EncodingDB  # noqa: F401
from pdfglyph.exceptions import (  # noqa: F401
    PDFException,
    PDFFontError,
    PDFUnsupportedFeature,
)
from pdfglyph.font import Font  # noqa: F401
from pdfglyph.pdftypes import (  # noqa: F401
    LIT,
    ContentStream,
    ObjectStore,
    ObjRef,
    Resolver,
)
