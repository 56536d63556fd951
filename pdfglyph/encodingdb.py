"""Byte encodings for simple and composite fonts.

An `Encoding` knows how many bytes make up one character code and
what text each code stands for.  The tables here cover the named
encodings from Annex D of PDF 32000-1:2008 plus the two-byte
`Identity-H` and `Identity-V` CMaps used by Type0 fonts.
"""

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Union

from fontTools.agl import toUnicode
from fontTools.encodings.StandardEncoding import StandardEncoding

from pdfglyph.pdftypes import (
    ContentStream,
    PDFObject,
    PSLiteral,
    Resolver,
    literal_name,
    list_value,
    resolve_all,
)

log = logging.getLogger(__name__)

# WHITE VERTICAL RECTANGLE, used for codes that map to nothing
UNKNOWN_CHAR = "\u25af"

LITERAL_STANDARD_ENCODING = PSLiteral("StandardEncoding")
# Stands in for the name of an embedded CMap that has none
EMBEDDED_CMAP = "embedded CMap"


def name2unicode(name: str, zapfdingbats: bool = False) -> Optional[str]:
    """Map a glyph name to text using the Adobe Glyph List.

    Handles `uniXXXX`, `uXXXX[XX]`, ligatures (`f_f_i`) and suffixed
    names (`a.sc`) as well as the names in the list itself.
    """
    text = toUnicode(name, isZapfDingbats=zapfdingbats)
    if not text:
        return None
    return text


def cid2unicode_from_names(
    names: Iterable[str], zapfdingbats: bool = False
) -> Dict[int, str]:
    """Build a code to text table from a list of 256 glyph names."""
    table: Dict[int, str] = {}
    for code, name in enumerate(names):
        if name == ".notdef":
            continue
        text = name2unicode(name, zapfdingbats)
        if text is not None:
            table[code] = text
    return table


def cid2unicode_from_codec(codec: str) -> Dict[int, str]:
    """Build a code to text table for the printable range of a codec."""
    table: Dict[int, str] = {}
    for code in range(0x20, 0x100):
        if code == 0x7F:
            continue
        try:
            table[code] = bytes((code,)).decode(codec)
        except UnicodeDecodeError:
            pass
    return table


# Symbol font built-in encoding.  Codes which map to the Adobe
# private use area (bracket and arrow extenders, sans-serif
# copyright signs and so forth) are left out.
SYMBOL_BUILTIN_ENCODING: Dict[int, str] = {
    0x20: " ", 0x21: "!", 0x22: "∀", 0x23: "#", 0x24: "∃",
    0x25: "%", 0x26: "&", 0x27: "∋", 0x28: "(", 0x29: ")",
    0x2A: "∗", 0x2B: "+", 0x2C: ",", 0x2D: "−", 0x2E: ".",
    0x2F: "/", 0x30: "0", 0x31: "1", 0x32: "2", 0x33: "3", 0x34: "4",
    0x35: "5", 0x36: "6", 0x37: "7", 0x38: "8", 0x39: "9", 0x3A: ":",
    0x3B: ";", 0x3C: "<", 0x3D: "=", 0x3E: ">", 0x3F: "?",
    0x40: "≅", 0x41: "Α", 0x42: "Β", 0x43: "Χ",
    0x44: "Δ", 0x45: "Ε", 0x46: "Φ", 0x47: "Γ",
    0x48: "Η", 0x49: "Ι", 0x4A: "ϑ", 0x4B: "Κ",
    0x4C: "Λ", 0x4D: "Μ", 0x4E: "Ν", 0x4F: "Ο",
    0x50: "Π", 0x51: "Θ", 0x52: "Ρ", 0x53: "Σ",
    0x54: "Τ", 0x55: "Υ", 0x56: "ς", 0x57: "Ω",
    0x58: "Ξ", 0x59: "Ψ", 0x5A: "Ζ", 0x5B: "[",
    0x5C: "∴", 0x5D: "]", 0x5E: "⊥", 0x5F: "_",
    0x61: "α", 0x62: "β", 0x63: "χ", 0x64: "δ",
    0x65: "ε", 0x66: "φ", 0x67: "γ", 0x68: "η",
    0x69: "ι", 0x6A: "ϕ", 0x6B: "κ", 0x6C: "λ",
    0x6D: "μ", 0x6E: "ν", 0x6F: "ο", 0x70: "π",
    0x71: "θ", 0x72: "ρ", 0x73: "σ", 0x74: "τ",
    0x75: "υ", 0x76: "ϖ", 0x77: "ω", 0x78: "ξ",
    0x79: "ψ", 0x7A: "ζ", 0x7B: "{", 0x7C: "|", 0x7D: "}",
    0x7E: "∼",
    0xA0: "€", 0xA1: "ϒ", 0xA2: "′", 0xA3: "≤",
    0xA4: "⁄", 0xA5: "∞", 0xA6: "ƒ", 0xA7: "♣",
    0xA8: "♦", 0xA9: "♥", 0xAA: "♠", 0xAB: "↔",
    0xAC: "←", 0xAD: "↑", 0xAE: "→", 0xAF: "↓",
    0xB0: "°", 0xB1: "±", 0xB2: "″", 0xB3: "≥",
    0xB4: "×", 0xB5: "∝", 0xB6: "∂", 0xB7: "•",
    0xB8: "÷", 0xB9: "≠", 0xBA: "≡", 0xBB: "≈",
    0xBC: "…", 0xBF: "↵",
    0xC0: "ℵ", 0xC1: "ℑ", 0xC2: "ℜ", 0xC3: "℘",
    0xC4: "⊗", 0xC5: "⊕", 0xC6: "∅", 0xC7: "∩",
    0xC8: "∪", 0xC9: "⊃", 0xCA: "⊇", 0xCB: "⊄",
    0xCC: "⊂", 0xCD: "⊆", 0xCE: "∈", 0xCF: "∉",
    0xD0: "∠", 0xD1: "∇", 0xD2: "®", 0xD3: "©",
    0xD4: "™", 0xD5: "∏", 0xD6: "√", 0xD7: "⋅",
    0xD8: "¬", 0xD9: "∧", 0xDA: "∨", 0xDB: "⇔",
    0xDC: "⇐", 0xDD: "⇑", 0xDE: "⇒", 0xDF: "⇓",
    0xE0: "◊", 0xE1: "〈", 0xE2: "®", 0xE3: "©",
    0xE4: "™", 0xE5: "∑",
    0xF1: "〉", 0xF2: "∫", 0xF3: "⌠", 0xF4: "⎮",
    0xF5: "⌡",
}


def _zapfdingbats_encoding() -> Dict[int, str]:
    # The Dingbats block was laid out from this font, so most codes
    # sit at a fixed offset from it, except for the ones that Unicode
    # already had elsewhere.
    table = {0x20: " "}
    for code in range(0x21, 0x7F):
        table[code] = chr(0x26E0 + code)
    for code in range(0xA1, 0xFF):
        if code != 0xF0:
            table[code] = chr(0x26C0 + code)
    table.update(
        {
            0x25: "☎",
            0x2A: "☛",
            0x2B: "☞",
            0x48: "★",
            0x6C: "●",
            0x6E: "■",
            0x73: "▲",
            0x74: "▼",
            0x75: "◆",
            0x77: "◗",
            0xA8: "♣",
            0xA9: "♦",
            0xAA: "♥",
            0xAB: "♠",
            0xD5: "→",
            0xD6: "↔",
            0xD7: "↕",
        }
    )
    for code in range(0xAC, 0xB6):
        table[code] = chr(0x2460 + code - 0xAC)
    return table


ZAPFDINGBATS_BUILTIN_ENCODING: Dict[int, str] = _zapfdingbats_encoding()


class Encoding:
    """A byte encoding: splits strings into codes and codes into text."""

    def __init__(
        self,
        name: str,
        cid2unicode: Mapping[int, str],
        code_length: int = 1,
        identity: bool = False,
    ) -> None:
        self.name = name
        self.cid2unicode = dict(cid2unicode)
        self.code_length = code_length
        self.identity = identity

    def __repr__(self) -> str:
        return f"<Encoding: {self.name}>"

    def unpack(self, data: bytes) -> List[int]:
        """Split a byte string into character codes.

        Trailing bytes that do not make up a whole code are dropped.
        """
        if self.code_length == 1:
            return list(data)
        n = self.code_length
        end = len(data) - len(data) % n
        return [int.from_bytes(data[i : i + n], "big") for i in range(0, end, n)]

    def pack(self, code: int) -> bytes:
        """Get the bytes for a single character code."""
        return code.to_bytes(self.code_length, "big")

    def decode(self, code: int) -> str:
        """Get the text for a single character code."""
        if self.identity:
            if 0xD800 <= code <= 0xDFFF:
                return UNKNOWN_CHAR
            return chr(code)
        return self.cid2unicode.get(code, UNKNOWN_CHAR)

    def bytes_to_text(self, data: bytes) -> str:
        """Convert a whole byte string to text."""
        return "".join(self.decode(code) for code in self.unpack(data))

    def apply_differences(self, diff: Iterable[PDFObject]) -> "Encoding":
        """Return a copy of this encoding with a `/Differences` array applied."""
        zapfdingbats = self.name == "ZapfDingbatsEncoding"
        cid2unicode = dict(self.cid2unicode)
        cid = 0
        for x in diff:
            if isinstance(x, int):
                cid = x
            elif isinstance(x, PSLiteral):
                text = name2unicode(x.name, zapfdingbats)
                if text is None:
                    log.debug("No Unicode for glyph %r at code %d", x.name, cid)
                    cid2unicode.pop(cid, None)
                else:
                    cid2unicode[cid] = text
                cid += 1
            else:
                log.debug("Ignoring %r in Differences", x)
        return Encoding(self.name, cid2unicode, self.code_length, self.identity)


class EncodingDB:
    """Named encodings, and construction of encodings from font dictionaries."""

    encodings: Dict[str, Encoding] = {
        "StandardEncoding": Encoding(
            "StandardEncoding", cid2unicode_from_names(StandardEncoding)
        ),
        "WinAnsiEncoding": Encoding(
            "WinAnsiEncoding", cid2unicode_from_codec("cp1252")
        ),
        "MacRomanEncoding": Encoding(
            "MacRomanEncoding", cid2unicode_from_codec("mac_roman")
        ),
        "SymbolEncoding": Encoding("SymbolEncoding", SYMBOL_BUILTIN_ENCODING),
        "ZapfDingbatsEncoding": Encoding(
            "ZapfDingbatsEncoding", ZAPFDINGBATS_BUILTIN_ENCODING
        ),
        "Identity-H": Encoding("Identity-H", {}, code_length=2, identity=True),
        "Identity-V": Encoding("Identity-V", {}, code_length=2, identity=True),
    }

    @classmethod
    def get_encoding(
        cls, name: str, diff: Optional[Iterable[PDFObject]] = None
    ) -> Encoding:
        """Get a named encoding, optionally with differences applied.

        Raises KeyError for encodings we do not know about.
        """
        encoding = cls.encodings[name]
        if diff:
            encoding = encoding.apply_differences(diff)
        return encoding

    @classmethod
    def from_spec(
        cls,
        spec: PDFObject,
        doc: Resolver,
        logger: logging.Logger = log,
    ) -> Union[Encoding, str]:
        """Get the encoding for the `/Encoding` entry of a font.

        Font encoding is specified either by a name of built-in
        encoding or a dictionary that describes the differences.
        Names we cannot decode are returned as plain strings, which
        marks the encoding as unsupported.
        """
        spec = doc.object(spec)
        if isinstance(spec, ContentStream):
            # Embedded CMaps can be any multi-byte encoding at all
            try:
                name = literal_name(doc.object(spec.get("CMapName")))
            except TypeError:
                name = EMBEDDED_CMAP
            logger.warning("Unsupported embedded CMap encoding %r", name)
            return name
        if isinstance(spec, dict):
            base = doc.object(spec.get("BaseEncoding", LITERAL_STANDARD_ENCODING))
            try:
                diff = list_value(resolve_all(spec.get("Differences", []), doc))
            except TypeError:
                logger.warning("Invalid Differences in encoding %r", spec)
                diff = []
            try:
                name = literal_name(base)
                return cls.get_encoding(name, diff)
            except (TypeError, KeyError):
                logger.warning(
                    "Unknown BaseEncoding %r, using StandardEncoding", base
                )
                return cls.get_encoding("StandardEncoding", diff)
        try:
            name = literal_name(spec)
        except TypeError:
            logger.warning("Invalid font encoding %r, using StandardEncoding", spec)
            return cls.get_encoding("StandardEncoding")
        try:
            return cls.get_encoding(name)
        except KeyError:
            logger.warning("Unsupported font encoding %r", name)
            return name
