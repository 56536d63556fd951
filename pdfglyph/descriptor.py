"""Font descriptors and the widths of embedded font programs."""

import logging
import struct
from io import BytesIO
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from fontTools.ttLib import TTFont, TTLibError

from pdfglyph import settings
from pdfglyph.exceptions import PDFException, PDFFontError
from pdfglyph.pdftypes import (
    ContentStream,
    PSLiteral,
    Resolver,
    literal_name,
    num_value,
    resolve_all,
)

log = logging.getLogger(__name__)
Rect = Tuple[float, float, float, float]


class FontDescriptor:
    """The `/FontDescriptor` of a font, plus whatever we can get from
    its embedded TrueType program.

    Widths in the font program are in its own design units, use
    `glyph_to_document_scale` to convert them to glyph space (1000
    glyph units = 1 text space unit).
    """

    def __init__(
        self,
        spec: Mapping[str, Any],
        doc: Resolver,
        logger: logging.Logger = log,
    ) -> None:
        self.doc = doc
        self.log = logger
        self.font_name = self._name(spec.get("FontName"))
        self.font_family = self._string(spec.get("FontFamily"))
        self.flags = int(self._number(spec, "Flags", 0))
        self.italic_angle = self._number(spec, "ItalicAngle", 0)
        self.ascent = self._number(spec, "Ascent", 0)
        self.descent = self._number(spec, "Descent", 0)
        self.leading = self._number(spec, "Leading", 0)
        self.cap_height = self._number(spec, "CapHeight", 0)
        self.x_height = self._number(spec, "XHeight", 0)
        self.stem_v = self._number(spec, "StemV", 0)
        self.avg_width = self._number(spec, "AvgWidth", 0)
        self.max_width = self._number(spec, "MaxWidth", 0)
        self.missing_width = self._number(spec, "MissingWidth", 0)
        self.bbox = self._bbox(spec.get("FontBBox"))

        # PDF RM 9.8.1 specifies /Descent should always be a negative number.
        # PScript5.dll seems to produce Descent with a positive number, but
        # text analysis will be wrong if this is taken as correct. So force
        # descent to negative.
        if self.descent > 0:
            self.descent = -self.descent

        self.fontfile: Optional[ContentStream] = None
        fontfile = doc.object(spec.get("FontFile2"))
        if fontfile is None:
            fontfile3 = doc.object(spec.get("FontFile3"))
            if (
                isinstance(fontfile3, ContentStream)
                and doc.object(fontfile3.get("Subtype")) == PSLiteral("OpenType")
            ):
                fontfile = fontfile3
        if isinstance(fontfile, ContentStream):
            self.fontfile = fontfile
        elif fontfile is not None:
            self.log.warning("Font program is not a stream: %r", fontfile)
        self._ttf: Union[TTFont, None, bool] = None

    def __repr__(self) -> str:
        return f"<FontDescriptor: font_name={self.font_name!r}>"

    def _number(self, spec: Mapping[str, Any], key: str, default: float) -> float:
        value = self.doc.object(spec.get(key, default))
        try:
            return num_value(value)
        except TypeError:
            self.log.warning("Invalid %s in font descriptor: %r", key, value)
            return default

    def _name(self, value: Any) -> Optional[str]:
        value = self.doc.object(value)
        if value is None:
            return None
        try:
            return literal_name(value)
        except TypeError:
            self.log.debug("FontName is not a name: %r", value)
            return None

    def _string(self, value: Any) -> Optional[str]:
        value = self.doc.object(value)
        if isinstance(value, bytes):
            return value.decode("latin-1")
        return None

    def _bbox(self, value: Any) -> Rect:
        value = resolve_all(value, self.doc)
        if isinstance(value, list) and len(value) == 4:
            try:
                x0, y0, x1, y1 = (num_value(v) for v in value)
                return (x0, y0, x1, y1)
            except TypeError:
                pass
        if value is not None:
            self.log.debug("Invalid FontBBox: %r", value)
        return (0, 0, 0, 0)

    @property
    def is_ttf(self) -> bool:
        """Do we have an embedded TrueType (or OpenType) program?"""
        return self.fontfile is not None

    @property
    def ttf(self) -> Optional[TTFont]:
        """The parsed font program, if there is one and it parses."""
        if self._ttf is None:
            self._ttf = False
            if self.fontfile is not None:
                try:
                    ttf = TTFont(BytesIO(self.fontfile.buffer), lazy=True)
                    # Make sure the tables we need are actually there
                    ttf["head"]
                    ttf["hmtx"]
                    self._ttf = ttf
                except (
                    PDFException,
                    TTLibError,
                    KeyError,
                    struct.error,
                    AssertionError,
                ) as e:
                    if settings.STRICT:
                        raise PDFFontError(
                            f"Unparseable font program in {self!r}: {e}"
                        ) from e
                    self.log.warning("Failed to parse font program %r: %s", self, e)
        return self._ttf or None

    def _cmaps(self, ttf: TTFont) -> Tuple[Dict[int, str], ...]:
        if "cmap" not in ttf:
            return ()
        best = ttf.getBestCmap()
        if best:
            cmaps = [best]
        else:
            cmaps = [t.cmap for t in ttf["cmap"].tables[:1]]
        # Symbolic fonts put everything at 0xF000 in a (3, 0) subtable
        symbol = ttf["cmap"].getcmap(3, 0)
        if symbol is not None:
            cmaps.append({code & 0xFF: name for code, name in symbol.cmap.items()})
        return tuple(cmaps)

    def find_glyph_width(self, code: int) -> Optional[float]:
        """Look up the advance width of a code in the font program.

        Returns None if there is no font program, or it has no glyph
        for this code.
        """
        ttf = self.ttf
        if ttf is None:
            return None
        hmtx = ttf["hmtx"]
        for cmap in self._cmaps(ttf):
            glyph = cmap.get(code)
            if glyph is not None and glyph in hmtx.metrics:
                return hmtx.metrics[glyph][0]
        return None

    @property
    def glyph_to_document_scale(self) -> float:
        """Factor from font program units to glyph space."""
        ttf = self.ttf
        if ttf is None:
            return 1.0
        units_per_em = ttf["head"].unitsPerEm
        if not units_per_em:
            self.log.warning("Font program has no unitsPerEm: %r", self)
            return 1.0
        return 1000.0 / units_per_em
