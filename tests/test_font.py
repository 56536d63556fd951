"""
Test glyph widths and text decoding for all the kinds of fonts.
"""

import logging

import pytest

from pdfglyph import settings
from pdfglyph.encodingdb import UNKNOWN_CHAR, Encoding
from pdfglyph.exceptions import PDFFontError, PDFUnsupportedFeature
from pdfglyph.font import (
    BuiltinShape,
    CIDShape,
    CIDWidths,
    CompositeShape,
    Font,
    SimpleShape,
)
from pdfglyph.pdftypes import LIT, ContentStream, ObjectStore, ObjRef

from .data import TOUNICODE, TTF_ADVANCES, TTF_CMAP, make_ttf, ttf_stream


def make_type0(doc, descendant=None, **kwargs):
    if descendant is None:
        descendant = {
            "Type": LIT("Font"),
            "Subtype": LIT("CIDFontType2"),
            "BaseFont": LIT("ABCDEF+Frobozz"),
            "W": [1, [500, 600], 10, 12, 700, 5, [0]],
            "DW": doc.add(900),
        }
    spec = {
        "Type": LIT("Font"),
        "Subtype": LIT("Type0"),
        "BaseFont": LIT("ABCDEF+Frobozz"),
        "Encoding": LIT("Identity-H"),
        "DescendantFonts": [doc.add(descendant)],
        "ToUnicode": doc.add(ContentStream({}, TOUNICODE)),
    }
    spec.update(kwargs)
    return spec


def test_builtin_font():
    """Test the standard 14 fonts."""
    doc = ObjectStore()
    font = Font({"Subtype": LIT("Type1"), "BaseFont": LIT("Helvetica")}, doc)
    assert font.is_builtin
    assert not font.is_composite
    assert not font.is_cid
    assert isinstance(font.shape, BuiltinShape)
    assert font.glyph_width(0x41) == 667.0
    assert font.glyph_width(0x20) == 278.0
    # Not in the metrics
    assert font.glyph_width(0x80) is None
    assert font.encoding.name == "StandardEncoding"
    assert font.to_utf8(b"Hello") == "Hello"
    font = Font({"Subtype": LIT("Type1"), "BaseFont": LIT("Courier")}, doc)
    assert font.glyph_width(0x41) == 500.0
    assert font.glyph_width(0x80) == 500.0


def test_builtin_ignores_widths():
    """Builtin fonts use their own metrics even if there are Widths."""
    doc = ObjectStore()
    spec = {
        "Subtype": LIT("Type1"),
        "BaseFont": LIT("Helvetica"),
        "FirstChar": 65,
        "Widths": [1234],
    }
    font = Font(spec, doc)
    assert font.glyph_width(65) == 667.0


def test_basefont_setter():
    doc = ObjectStore()
    font = Font({"Subtype": LIT("Type1"), "BaseFont": LIT("Helvetica")}, doc)
    assert font.glyph_width(0x41) == 667.0
    font.basefont = "Symbol"
    assert font.basefont == "Symbol"
    assert font.encoding.name == "SymbolEncoding"
    assert font.to_utf8(b"abg") == "αβγ"
    # Widths already looked up never change
    assert font.glyph_width(0x41) == 667.0
    # But new ones come from the new font
    assert font.glyph_width(0x42) == 500.0
    font.basefont = "ZapfDingbats"
    assert font.encoding.name == "ZapfDingbatsEncoding"
    font.basefont = "Courier"
    assert font.encoding is None
    with pytest.raises(PDFUnsupportedFeature):
        font.to_utf8(b"abc")
    font.encoding = Encoding("Custom", {0x41: "Z"})
    assert font.to_utf8(b"A") == "Z"


def test_basefont_keeps_widths():
    """Changing the font does not change widths we already know."""
    doc = ObjectStore()
    font = Font({"Subtype": LIT("Type1"), "BaseFont": LIT("Courier")}, doc)
    assert font.glyph_width(0x41) == 500.0
    font.basefont = "Helvetica"
    assert font.glyph_width(0x41) == 500.0
    assert font.glyph_width(0x42) == 667.0
    assert font._width_cache == {0x41: 500.0, 0x42: 667.0}


def test_simple_widths():
    """Test Widths, FirstChar and MissingWidth."""
    doc = ObjectStore()
    spec = {
        "Subtype": LIT("TrueType"),
        "BaseFont": LIT("Arial"),
        "FirstChar": 32,
        "LastChar": 34,
        "Widths": doc.add([278, doc.add(355), 556]),
        "Encoding": LIT("WinAnsiEncoding"),
        "FontDescriptor": doc.add({"MissingWidth": 250}),
    }
    font = Font(spec, doc)
    assert isinstance(font.shape, SimpleShape)
    assert font.first_char == 32
    assert font.last_char == 34
    assert font.widths == [278, 355, 556]
    assert font.glyph_width(32) == 278.0
    assert font.glyph_width(33) == 355.0
    assert font.glyph_width(34) == 556.0
    assert isinstance(font.glyph_width(34), float)
    # Past the end, and before the start
    assert font.glyph_width(35) == 250.0
    assert font.glyph_width(31) == 250.0
    assert font.glyph_width(0) == 250.0
    assert font.glyph_width(-1) == 0
    assert font.glyph_width(None) == 0
    assert font.glyph_width(b" ") == 278.0
    assert font.cid_widths is None
    assert font.cid_default_width is None


def test_simple_widths_no_descriptor():
    doc = ObjectStore()
    spec = {"Subtype": LIT("TrueType"), "FirstChar": 65, "Widths": [600]}
    font = Font(spec, doc)
    assert font.font_descriptor is None
    assert font.glyph_width(65) == 600.0
    assert font.glyph_width(66) == 0.0
    assert font.glyph_width(64) == 0.0


def test_missing_firstchar(caplog):
    doc = ObjectStore()
    spec = {"Subtype": LIT("TrueType"), "BaseFont": LIT("Arial"), "Widths": [500, 600]}
    font = Font(spec, doc)
    assert "no FirstChar" in caplog.text
    assert font.first_char is None
    assert font.glyph_width(0) == 500.0
    assert font.glyph_width(1) == 600.0


def test_missing_firstchar_strict(monkeypatch):
    monkeypatch.setattr(settings, "STRICT", True)
    doc = ObjectStore()
    spec = {"Subtype": LIT("TrueType"), "BaseFont": LIT("Arial"), "Widths": [500, 600]}
    with pytest.raises(PDFFontError):
        Font(spec, doc)


def test_type3(caplog):
    """Type3 fonts have Widths and no BaseFont."""
    doc = ObjectStore()
    spec = {
        "Subtype": LIT("Type3"),
        "FirstChar": 0,
        "LastChar": 1,
        "Widths": [0.5, 0.75],
        "Encoding": {"Differences": [0, LIT("a"), LIT("b")]},
    }
    font = Font(spec, doc)
    assert "BaseFont" not in caplog.text
    assert font.basefont is None
    assert font.glyph_width(1) == 0.75
    assert font.to_utf8(b"\x00\x01") == "ab"


def test_program_widths():
    """Fonts with no Widths get them from the font program."""
    doc = ObjectStore()
    fontfile = doc.add(ttf_stream(make_ttf(TTF_ADVANCES, TTF_CMAP)))
    spec = {
        "Subtype": LIT("TrueType"),
        "BaseFont": LIT("ABCDEF+Frobozz"),
        "FontDescriptor": doc.add({"FontFile2": fontfile}),
    }
    font = Font(spec, doc)
    assert font.font_descriptor.is_ttf
    assert font.glyph_width(0x41) == 1366 * 1000 / 2048
    assert font.glyph_width(0x20) == 569 * 1000 / 2048
    assert font.glyph_width(0x43) is None


def test_no_widths_at_all():
    doc = ObjectStore()
    font = Font({"Subtype": LIT("TrueType"), "BaseFont": LIT("Arial")}, doc)
    assert font.glyph_width(0x41) is None


def test_composite_font():
    """Test Type0 fonts and their CIDFont descendants."""
    doc = ObjectStore()
    font = Font(make_type0(doc), doc)
    assert font.is_composite
    assert isinstance(font.shape, CompositeShape)
    assert len(font.descendants) == 1
    cidfont = font.descendants[0]
    assert cidfont.is_cid
    assert isinstance(cidfont.shape, CIDShape)
    assert cidfont.encoding is None
    assert cidfont.cid_default_width == 900
    assert len(cidfont.cid_widths) == 6
    assert font.glyph_width(1) == 500.0
    assert font.glyph_width(2) == 600.0
    assert font.glyph_width(11) == 700.0
    # An explicit zero is not the default
    assert font.glyph_width(5) == 0.0
    assert font.glyph_width(3) == 900.0
    assert font.glyph_width(b"\x00\x02") == 600.0
    assert font.widths == []
    assert font.first_char is None


def test_cid_default_width():
    doc = ObjectStore()
    descendant = {"Subtype": LIT("CIDFontType0"), "BaseFont": LIT("Frobozz")}
    font = Font(make_type0(doc, descendant), doc)
    assert font.descendants[0].cid_default_width == 1000
    assert font.glyph_width(42) == 1000.0


def test_cid_widths_array(caplog, monkeypatch):
    """Test both forms of W array, and broken ones."""
    widths = CIDWidths.from_array([1, [500, 600], 10, 12, 700, 5, [0]])
    assert widths.get(1) == 500
    assert widths.get(12) == 700
    assert widths.get(5) == 0
    assert widths.get(4) is None
    assert 2 in widths
    widths = CIDWidths.from_array([1, [500], LIT("spam"), 3, 4])
    assert widths.get(1) == 500
    assert len(widths) == 1
    assert "Invalid entry" in caplog.text
    assert "trailing entries" in caplog.text
    monkeypatch.setattr(settings, "STRICT", True)
    with pytest.raises(PDFFontError):
        CIDWidths.from_array([1, [500], 3, 4])


def test_composite_fallback():
    """If the descendant doesn't know, the root's program is used."""
    doc = ObjectStore()
    fontfile = doc.add(ttf_stream(make_ttf(TTF_ADVANCES, TTF_CMAP)))
    descendant = {"Subtype": LIT("TrueType"), "BaseFont": LIT("Frobozz")}
    spec = make_type0(
        doc, descendant, FontDescriptor=doc.add({"FontFile2": fontfile})
    )
    font = Font(spec, doc)
    assert font.descendants[0].glyph_width(0x41) is None
    assert font.glyph_width(0x41) == 1366 * 1000 / 2048
    font = Font(make_type0(doc, descendant), doc)
    assert font.glyph_width(0x41) is None


def test_no_descendants():
    doc = ObjectStore()
    font = Font(make_type0(doc, DescendantFonts=[]), doc)
    assert font.descendants == []
    assert font.glyph_width(1) is None


def test_own_descendant(caplog):
    """Fonts that are their own descendants are not infinitely deep."""
    doc = ObjectStore()
    spec = {"Subtype": LIT("Type0"), "BaseFont": LIT("Frobozz")}
    doc[1] = spec
    spec["DescendantFonts"] = [ObjRef(1)]
    font = Font(doc.object(ObjRef(1)), doc)
    assert font.descendants == []
    assert "own descendant" in caplog.text


def test_width_cache():
    """Widths are only looked up once, even if there are none."""
    doc = ObjectStore()
    spec = {"Subtype": LIT("TrueType"), "FirstChar": 65, "Widths": [600]}
    font = Font(spec, doc)
    assert font.glyph_width(65) == 600.0
    font.shape.widths[0] = 1234
    assert font.glyph_width(65) == 600.0
    font = Font({"Subtype": LIT("Type1"), "BaseFont": LIT("Helvetica")}, doc)
    assert font.glyph_width(0x80) is None
    assert 0x80 in font._width_cache
    assert font._width_cache[0x80] is None


def test_to_utf8_tounicode():
    """Test decoding with a ToUnicode map."""
    doc = ObjectStore()
    font = Font(make_type0(doc), doc)
    assert font.has_to_unicode_table
    assert font.tounicode is font.unicode_map
    assert font.can_convert_to_utf8()
    assert font.to_utf8(b"\x00\x24\x00\x03\x00\x44\x00\x46") == "A ac"
    assert font.to_utf8(b"\x00\x24\x00\x99") == "A" + UNKNOWN_CHAR
    assert font.to_utf8([b"\x00\x24", 42, (b"\x00\x45",), "spam"]) == [
        "A",
        42,
        ["b"],
        "spam",
    ]
    assert font.to_utf8(42) == 42


def test_to_utf8_encoding():
    """Test decoding with the font encoding."""
    doc = ObjectStore()
    spec = {
        "Subtype": LIT("TrueType"),
        "BaseFont": LIT("Arial"),
        "Encoding": doc.add(LIT("WinAnsiEncoding")),
    }
    font = Font(spec, doc)
    assert not font.has_to_unicode_table
    assert font.can_convert_to_utf8()
    assert font.to_utf8(b"caf\xe9 \x80") == "café €"
    assert font.to_utf8([b"a", [b"b", b"c"]]) == ["a", ["b", "c"]]


def test_identity_without_tounicode():
    doc = ObjectStore()
    spec = make_type0(doc)
    del spec["ToUnicode"]
    font = Font(spec, doc)
    assert font.to_utf8(b"\x00\x41\x30\x42") == "Aあ"


def test_unsupported_encoding(caplog):
    """Encodings we don't know about can't be decoded."""
    doc = ObjectStore()
    font = Font(make_type0(doc, Encoding=LIT("UniJIS-UCS2-H")), doc)
    assert "Unsupported font encoding" in caplog.text
    assert font.encoding == "UniJIS-UCS2-H"
    # Even though there is a ToUnicode
    assert font.has_to_unicode_table
    with pytest.raises(PDFUnsupportedFeature):
        font.to_utf8(b"\x00\x24")
    with pytest.raises(NotImplementedError):
        font.to_utf8([b"\x00\x24"])
    # No encoding at all is just as bad
    with pytest.raises(PDFUnsupportedFeature):
        font.descendants[0].to_utf8(b"\x00\x24")


def test_can_convert_to_utf8():
    doc = ObjectStore()
    empty = doc.add(ContentStream({}, b"begincmap endcmap"))
    font = Font(make_type0(doc, Encoding=LIT("Bogus"), ToUnicode=empty), doc)
    assert font.has_to_unicode_table
    assert not font.can_convert_to_utf8()
    font.encoding = Encoding("Custom", {})
    assert font.can_convert_to_utf8()
    assert font.to_utf8(b"A") == UNKNOWN_CHAR


def test_tounicode_not_stream(caplog):
    doc = ObjectStore()
    logger = logging.getLogger("pdfglyph.test.fonts")
    spec = {
        "Subtype": LIT("TrueType"),
        "BaseFont": LIT("Arial"),
        "ToUnicode": LIT("Identity-H"),
    }
    font = Font(spec, doc, logger=logger)
    assert not font.has_to_unicode_table
    assert [r.name for r in caplog.records] == ["pdfglyph.test.fonts"]
    assert "not a stream" in caplog.text


def test_injected_logger(caplog):
    """Descendants complain to the same logger as their parent."""
    doc = ObjectStore()
    logger = logging.getLogger("pdfglyph.test.fonts")
    descendant = {"Subtype": LIT("CIDFontType2"), "W": [1, 2]}
    Font(make_type0(doc, descendant), doc, logger=logger)
    assert "trailing entries" in caplog.text
    assert {r.name for r in caplog.records} == {"pdfglyph.test.fonts"}


def test_auxiliary():
    """Test unpacking, splitting and measuring strings."""
    doc = ObjectStore()
    font = Font(make_type0(doc), doc)
    data = b"\x00\x01\x00\x02\x00\x63\x00"
    assert font.unpack(data) == [1, 2, 0x63]
    assert font.split_binary_data(data) == [b"\x00\x01", b"\x00\x02", b"\x00\x63"]
    assert font.string_width(data) == 500 + 600 + 900
    simple = Font({"Subtype": LIT("Type1"), "BaseFont": LIT("Helvetica")}, doc)
    assert simple.unpack(b"AB") == [65, 66]
    assert simple.split_binary_data(b"AB") == [b"A", b"B"]
    # Unknown widths count as zero
    assert simple.string_width(b"A\x80") == 667.0


def test_repr_and_iter():
    doc = ObjectStore()
    font = Font(make_type0(doc), doc)
    assert repr(font) == "<Font: subtype='Type0', basefont='ABCDEF+Frobozz'>"
    assert [f.subtype for f in font] == ["Type0", "CIDFontType2"]


def test_embedded_cmap_encoding(caplog):
    """Embedded CMaps are refused rather than decoded as single bytes."""
    doc = ObjectStore()
    cmap = doc.add(
        ContentStream({"Type": LIT("CMap"), "CMapName": LIT("Custom-H")}, b"")
    )
    font = Font(make_type0(doc, Encoding=cmap), doc)
    assert font.encoding == "Custom-H"
    assert "embedded CMap" in caplog.text
    assert font.has_to_unicode_table
    with pytest.raises(PDFUnsupportedFeature):
        font.to_utf8(b"\x00\x24\x00\x03")
