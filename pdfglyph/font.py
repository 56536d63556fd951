import logging
from dataclasses import dataclass, field
from typing import (
    Any,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Set,
    Union,
)

from pdfglyph import settings
from pdfglyph.cmapdb import ToUnicodeMap, parse_tounicode
from pdfglyph.descriptor import FontDescriptor
from pdfglyph.encodingdb import UNKNOWN_CHAR, Encoding, EncodingDB
from pdfglyph.exceptions import PDFException, PDFFontError, PDFUnsupportedFeature
from pdfglyph.fontmetrics import BuiltinMetrics, get_builtin_metrics
from pdfglyph.pdftypes import (
    ContentStream,
    PDFObject,
    Resolver,
    int_value,
    list_value,
    literal_name,
    num_value,
    resolve_all,
)

log = logging.getLogger(__name__)

CID_SUBTYPES = ("CIDFontType0", "CIDFontType2")
# Width of every glyph in a builtin font we have no metrics for
DEFAULT_BUILTIN_WIDTH = 500.0
# Default for /DW, see Section 9.7.4.1 PDF 32000-1:2008 pp 269
DEFAULT_CID_WIDTH = 1000
STANDARD_ENCODING = EncodingDB.get_encoding("StandardEncoding")


def get_widths(
    seq: Iterable[PDFObject], logger: logging.Logger = log
) -> Dict[int, float]:
    """Build a mapping of character widths for horizontal writing.

    The `/W` array of a CIDFont mixes two forms:

        c [w1 w2 ... wn]       widths for c, c+1, ... c+n-1
        cfirst clast w         the same width for cfirst to clast
    """
    widths: Dict[int, float] = {}
    r: List[float] = []
    for v in seq:
        if isinstance(v, list):
            if r:
                char1 = r[-1]
                for i, w in enumerate(v):
                    try:
                        widths[int_value(char1) + i] = num_value(w)
                    except TypeError:
                        logger.warning("Invalid width %r in W array", w)
                r = []
            else:
                logger.warning("Width list %r without a starting code", v)
        elif isinstance(v, (int, float)) and not isinstance(v, bool):
            r.append(v)
            if len(r) == 3:
                (char1, char2, w) = r
                try:
                    for i in range(int_value(char1), int_value(char2) + 1):
                        widths[i] = w
                except TypeError:
                    logger.warning("Invalid code range %r %r in W array", char1, char2)
                r = []
        else:
            logger.warning("Invalid entry %r in W array", v)
    if r:
        if settings.STRICT:
            raise PDFFontError(f"Trailing entries {r!r} in W array")
        logger.warning("Ignoring trailing entries %r in W array", r)
    return widths


class CIDWidths:
    """Sparse table of glyph widths for a CIDFont."""

    def __init__(self, widths: Union[Mapping[int, float], None] = None) -> None:
        self.widths: Dict[int, float] = dict(widths or {})

    @classmethod
    def from_array(
        cls, seq: Iterable[PDFObject], logger: logging.Logger = log
    ) -> "CIDWidths":
        return cls(get_widths(seq, logger))

    def __repr__(self) -> str:
        return f"<CIDWidths: {len(self.widths)} entries>"

    def __len__(self) -> int:
        return len(self.widths)

    def __contains__(self, code: object) -> bool:
        return code in self.widths

    def get(self, code: int) -> Optional[float]:
        """The width for `code`, or None if the table has none (note
        that 0 is a perfectly good width)."""
        return self.widths.get(code)


@dataclass
class BuiltinShape:
    """A standard 14 font with no descriptor: the reader supplies metrics."""

    metrics: Optional[BuiltinMetrics] = None


@dataclass
class CompositeShape:
    """A Type0 font, which passes everything off to its descendant."""

    descendants: List["Font"] = field(default_factory=list)


@dataclass
class CIDShape:
    """A CIDFont, with sparse widths and a default."""

    widths: CIDWidths = field(default_factory=CIDWidths)
    default_width: float = DEFAULT_CID_WIDTH


@dataclass
class SimpleShape:
    """A Type1, TrueType or Type3 font with a `/Widths` array."""

    widths: List[Optional[float]] = field(default_factory=list)
    first_char: Optional[int] = None
    last_char: Optional[int] = None


FontShape = Union[BuiltinShape, CompositeShape, CIDShape, SimpleShape]


class Font:
    """A font dictionary from a PDF, mainly useful for getting the
    widths of glyphs and converting strings to Unicode.

    The width cache is filled in as widths are looked up, so a `Font`
    should not be shared between threads until every code of
    interest has been looked up once (or some external locking is
    used).
    """

    def __init__(
        self,
        spec: Mapping[str, Any],
        doc: Resolver,
        default_encoding: Union[Encoding, str, None] = STANDARD_ENCODING,
        logger: Optional[logging.Logger] = None,
        _ancestors: Optional[Set[int]] = None,
    ) -> None:
        """Create a font from its dictionary.

        :param spec: The font dictionary.
        :param doc: Used to resolve indirect objects.
        :param default_encoding: Encoding to use if the font has no
            `/Encoding` of its own.
        :param logger: Where to send complaints about broken fonts.
        """
        self.doc = doc
        self.log = logger or log
        self.encoding: Union[Encoding, str, None] = None
        self.unicode_map: Optional[ToUnicodeMap] = None
        self._width_cache: Dict[int, Optional[float]] = {}

        self.subtype = self._get_subtype(spec)
        self.is_cid = self.subtype in CID_SUBTYPES
        self.is_composite = self.subtype == "Type0"
        # Type1 fonts can be one of 14 "built in" standard fonts. In these cases,
        # the reader is expected to have it's own copy of the font metrics.
        # see Section 9.6.2.2, PDF 32000-1:2008, pp 256
        self.is_builtin = self.subtype == "Type1" and spec.get("FontDescriptor") is None
        self._basefont = self._get_basefont(spec)

        shape: FontShape
        if self.is_cid:
            # CID Fonts are not required to have a W or DW entry, if they don't exist,
            # the default cid width = 1000, see Section 9.7.4.1 PDF 32000-1:2008 pp 269
            shape = self._get_cid_shape(spec)
        else:
            shape = self._get_simple_shape(spec)
            self._get_encoding(spec)
            self._get_tounicode(spec)
        self.font_descriptor = self._get_descriptor(spec)

        ancestors = set(_ancestors or ()) | {id(spec)}
        self.descendants = self._get_descendants(spec, ancestors)
        if self.is_composite:
            shape = CompositeShape(self.descendants)
        elif self.is_builtin:
            shape = BuiltinShape(get_builtin_metrics(self._basefont))
        self.shape: FontShape = shape

        if self.encoding is None:
            self.encoding = default_encoding

    def __repr__(self) -> str:
        return f"<Font: subtype={self.subtype!r}, basefont={self.basefont!r}>"

    def _get_subtype(self, spec: Mapping[str, Any]) -> Optional[str]:
        subtype = self.doc.object(spec.get("Subtype"))
        try:
            return literal_name(subtype)
        except TypeError:
            self.log.warning("Font spec has invalid Subtype: %r", subtype)
            return None

    def _get_basefont(self, spec: Mapping[str, Any]) -> Optional[str]:
        basefont = self.doc.object(spec.get("BaseFont"))
        if basefont is None:
            # Type3 fonts don't need one
            if self.subtype != "Type3":
                self.log.warning("Font spec is missing BaseFont: %r", spec)
            return None
        try:
            return literal_name(basefont)
        except TypeError:
            self.log.warning("Font spec has invalid BaseFont: %r", basefont)
            return None

    def _get_cid_shape(self, spec: Mapping[str, Any]) -> CIDShape:
        w = resolve_all(spec.get("W", []), self.doc)
        try:
            widths = CIDWidths.from_array(list_value(w), self.log)
        except TypeError:
            self.log.warning("Invalid W in CIDFont: %r", w)
            widths = CIDWidths()
        dw = self.doc.object(spec.get("DW", DEFAULT_CID_WIDTH))
        try:
            default_width = num_value(dw)
        except TypeError:
            self.log.warning("Invalid DW in CIDFont: %r", dw)
            default_width = DEFAULT_CID_WIDTH
        return CIDShape(widths, default_width)

    def _get_simple_shape(self, spec: Mapping[str, Any]) -> SimpleShape:
        # TrueType has the same entries as Type1, see Section 9.6.3 PDF 32000-1:2008 pp 257
        # Type1 and Type3 are required to have a Widths, FirstChar, LastChar
        raw_widths = resolve_all(spec.get("Widths", []), self.doc)
        widths: List[Optional[float]] = []
        if isinstance(raw_widths, list):
            for w in raw_widths:
                try:
                    widths.append(num_value(w))
                except TypeError:
                    self.log.warning("Invalid entry %r in Widths", w)
                    widths.append(None)
        else:
            self.log.warning("Invalid Widths in font: %r", raw_widths)
        first_char = self._get_char(spec, "FirstChar")
        last_char = self._get_char(spec, "LastChar")
        if widths and first_char is None:
            if settings.STRICT:
                raise PDFFontError(f"Problem with font {self.basefont!r}, no FirstChar")
            self.log.warning(
                "Problem with font %r, no FirstChar, assuming 0", self.basefont
            )
        return SimpleShape(widths, first_char, last_char)

    def _get_char(self, spec: Mapping[str, Any], key: str) -> Optional[int]:
        value = self.doc.object(spec.get(key))
        if value is None:
            return None
        try:
            return int_value(value)
        except TypeError:
            self.log.warning("Invalid %s in font: %r", key, value)
            return None

    def _get_encoding(self, spec: Mapping[str, Any]) -> None:
        # Encoding is required for Type3, optional for Type1
        if spec.get("Encoding") is not None:
            self.encoding = EncodingDB.from_spec(spec["Encoding"], self.doc, self.log)

    def _get_tounicode(self, spec: Mapping[str, Any]) -> None:
        # ToUnicode is optional for Type1 and Type3
        if spec.get("ToUnicode") is None:
            return
        strm = self.doc.object(spec["ToUnicode"])
        if not isinstance(strm, ContentStream):
            self.log.warning("ToUnicode is not a stream, ignoring it: %r", strm)
            return
        try:
            self.unicode_map = parse_tounicode(strm.buffer)
        except (PDFException, ValueError) as e:
            if settings.STRICT:
                raise
            self.log.warning("Failed to read ToUnicode %r: %s", strm, e)
            return
        self.log.debug("ToUnicode: %r", self.unicode_map)

    def _get_descriptor(self, spec: Mapping[str, Any]) -> Optional[FontDescriptor]:
        if spec.get("FontDescriptor") is None:
            return None
        fd = self.doc.object(spec["FontDescriptor"])
        if not isinstance(fd, dict):
            self.log.warning("FontDescriptor is not a dict: %r", fd)
            return None
        return FontDescriptor(fd, self.doc, self.log)

    def _get_descendants(
        self, spec: Mapping[str, Any], ancestors: Set[int]
    ) -> List["Font"]:
        # per PDF 32000-1:2008 pp. 280 :DescendentFonts is:
        # A one-element array specifying the CIDFont dictionary that is the
        # descendant of this Type 0 font.
        if spec.get("DescendantFonts") is None:
            return []
        descendants = self.doc.object(spec["DescendantFonts"])
        if isinstance(descendants, dict):
            descendants = [descendants]
        if not isinstance(descendants, list):
            self.log.warning("Invalid DescendantFonts: %r", descendants)
            return []
        fonts = []
        for desc in descendants:
            desc = self.doc.object(desc)
            if not isinstance(desc, dict):
                self.log.warning("Descendant font is not a dict: %r", desc)
                continue
            if id(desc) in ancestors:
                self.log.warning("Font is its own descendant: %r", desc)
                continue
            fonts.append(
                Font(
                    desc,
                    self.doc,
                    default_encoding=None,
                    logger=self.log,
                    _ancestors=ancestors,
                )
            )
        return fonts

    @property
    def basefont(self) -> Optional[str]:
        return self._basefont

    @basefont.setter
    def basefont(self, font: Optional[str]) -> None:
        # setup a default encoding for the selected font. It can always be
        # overridden by setting encoding if required
        if font == "Symbol":
            self.encoding = EncodingDB.get_encoding("SymbolEncoding")
        elif font == "ZapfDingbats":
            self.encoding = EncodingDB.get_encoding("ZapfDingbatsEncoding")
        else:
            self.encoding = None
        self._basefont = font
        if isinstance(self.shape, BuiltinShape):
            # Widths already looked up stay as they are
            self.shape.metrics = get_builtin_metrics(font)

    @property
    def tounicode(self) -> Optional[ToUnicodeMap]:
        return self.unicode_map

    @property
    def has_to_unicode_table(self) -> bool:
        return self.unicode_map is not None

    @property
    def widths(self) -> List[Optional[float]]:
        if isinstance(self.shape, SimpleShape):
            return self.shape.widths
        return []

    @property
    def first_char(self) -> Optional[int]:
        if isinstance(self.shape, SimpleShape):
            return self.shape.first_char
        return None

    @property
    def last_char(self) -> Optional[int]:
        if isinstance(self.shape, SimpleShape):
            return self.shape.last_char
        return None

    @property
    def cid_widths(self) -> Optional[CIDWidths]:
        if isinstance(self.shape, CIDShape):
            return self.shape.widths
        return None

    @property
    def cid_default_width(self) -> Optional[float]:
        if isinstance(self.shape, CIDShape):
            return self.shape.default_width
        return None

    def can_convert_to_utf8(self) -> bool:
        if self.unicode_map is not None and len(self.unicode_map) > 0:
            return True
        return isinstance(self.encoding, Encoding)

    def unpack(self, data: bytes) -> List[int]:
        """Get the character codes in a string."""
        if isinstance(self.encoding, Encoding):
            return self.encoding.unpack(data)
        # No idea, so treat it as a simple font
        return list(data)

    def split_binary_data(self, data: bytes) -> List[bytes]:
        """Split a string into the bytes for each character code."""
        if isinstance(self.encoding, Encoding):
            return [self.encoding.pack(code) for code in self.encoding.unpack(data)]
        return [bytes((code,)) for code in data]

    def glyph_width(self, code: Union[int, bytes, None]) -> Optional[float]:
        """Look up the width of a character code in glyph space (1000
        glyph units = 1 text space unit).

        `code` may also be the bytes for a single character.  Returns
        None if the font has no idea how wide the glyph is.
        """
        if isinstance(code, bytes):
            codes = self.unpack(code)
            code = codes[0] if codes else None
        if code is None or code < 0:
            return 0
        if code not in self._width_cache:
            self._width_cache[code] = self._glyph_width(code)
        return self._width_cache[code]

    def _glyph_width(self, code: int) -> Optional[float]:
        shape = self.shape
        if isinstance(shape, BuiltinShape):
            metrics = shape.metrics
            if metrics is None:
                return DEFAULT_BUILTIN_WIDTH
            w = metrics.width_for(code)
            return None if w is None else float(w)

        # Type0 (or Composite) fonts are a "root font" that rely on a
        # "descendant font" to do the heavy lifting.
        # see Section 9.7.1, PDF 32000-1:2008, pp 267
        if isinstance(shape, CompositeShape):
            if shape.descendants:
                w = shape.descendants[0].glyph_width(code)
                if w is not None:
                    return float(w)

        # CIDFontType2 will contain a true type font program which
        # could be used to calculate width, however, a conforming
        # writer is supposed to convert the widths for the codepoints
        # used into the W array so that it can be used.
        # see Section 9.7.4.1, PDF 32000-1:2008, pp 269-270
        elif isinstance(shape, CIDShape):
            w = shape.widths.get(code)
            # 0 is a valid width
            if w is None:
                w = shape.default_width
            return float(w)

        # Any value not in the Widths table is defined in
        # FontDescriptor[MissingWidth], or 0 if there isn't one.
        # see Section 9.6.2.1 PDF 32000-1:2008 pp 254-255 (Type1)
        # see Section 9.6.5 PDF 32000-1:2008 pp 258-259 (Type3)
        elif shape.widths:
            descriptor = self.font_descriptor
            missing_width = descriptor.missing_width if descriptor else 0
            first_char = shape.first_char or 0
            w = None
            # Never look up a negative index, that would wrap around
            if code >= first_char and code - first_char < len(shape.widths):
                w = shape.widths[code - first_char]
            if w is None:
                w = missing_width
            # TODO: scale Type3 widths by the FontMatrix
            return float(w)

        return self._program_width(code)

    def _program_width(self, code: int) -> Optional[float]:
        # true type fonts will have most of their information contained
        # with-in a program inside the font descriptor, however the widths
        # may not be in standard PDF glyph widths (1000 units => 1 text space unit)
        # so this width will need to be scaled
        descriptor = self.font_descriptor
        if descriptor is None:
            return None
        w = descriptor.find_glyph_width(code)
        if w is None:
            return None
        return float(w) * descriptor.glyph_to_document_scale

    def string_width(self, data: bytes) -> float:
        """Total width of a string in glyph space, counting unknown
        widths as zero."""
        return sum(self.glyph_width(code) or 0 for code in self.unpack(data))

    def to_utf8(self, params: Any) -> Any:
        """Convert a string, or a list of strings, to Unicode.

        Anything else is passed through unchanged.
        """
        if not isinstance(self.encoding, Encoding):
            raise PDFUnsupportedFeature(
                f"font encoding {self.encoding!r} currently unsupported"
            )
        if self.unicode_map is not None:
            return self._to_utf8_via_cmap(params, self.encoding, self.unicode_map)
        else:
            return self._to_utf8_via_encoding(params, self.encoding)

    def _to_utf8_via_cmap(
        self, params: Any, encoding: Encoding, unicode_map: ToUnicodeMap
    ) -> Any:
        if isinstance(params, bytes):
            return "".join(
                unicode_map.decode(code) or UNKNOWN_CHAR
                for code in encoding.unpack(params)
            )
        elif isinstance(params, (list, tuple)):
            return [
                self._to_utf8_via_cmap(param, encoding, unicode_map)
                for param in params
            ]
        else:
            return params

    def _to_utf8_via_encoding(self, params: Any, encoding: Encoding) -> Any:
        if isinstance(params, bytes):
            return encoding.bytes_to_text(params)
        elif isinstance(params, (list, tuple)):
            return [self._to_utf8_via_encoding(param, encoding) for param in params]
        else:
            return params

    def __iter__(self) -> Iterator["Font"]:
        """Iterate over this font and its descendants."""
        yield self
        for desc in self.descendants:
            yield from desc
