import base64
import binascii
import logging
import re
import zlib
from typing import (
    Any,
    Dict,
    Final,
    Iterable,
    Iterator,
    List,
    Mapping,
    Protocol,
    Set,
    Tuple,
    Union,
)

from pdfglyph.exceptions import PDFNotImplementedError

logger: Final = logging.getLogger(__name__)
PDFObject = Union[
    int,
    float,
    bool,
    "PSLiteral",
    bytes,
    List,
    Dict,
    "ObjRef",
    "PSKeyword",
    "ContentStream",
    None,
]


class PSLiteral:
    """A class that represents a PostScript literal.

    Postscript literals are used as identifiers, such as variable
    names, property names and dictionary keys.  Literals are case
    sensitive and denoted by a preceding slash sign (e.g. "/Name").
    They are globally unique objects stored in PSLiteralTable.
    """

    name: str

    def __new__(cls, name: str) -> "PSLiteral":
        if name not in PSLiteralTable:
            PSLiteralTable[name] = object.__new__(cls)
            PSLiteralTable[name].name = name
        return PSLiteralTable[name]

    def __getnewargs__(self) -> Tuple:
        return (self.name,)

    def __repr__(self) -> str:
        return "/%r" % self.name


class PSKeyword:
    """A class that represents a PostScript keyword.

    Keywords in a CMap (`begincmap`, `beginbfchar`, `def`, ...) come
    out of the lexer as these.  They are globally unique objects
    stored in PSKeywordTable.
    """

    name: bytes

    def __new__(cls, name: bytes) -> "PSKeyword":
        if name not in PSKeywordTable:
            PSKeywordTable[name] = object.__new__(cls)
            PSKeywordTable[name].name = name
        return PSKeywordTable[name]

    def __getnewargs__(self) -> Tuple:
        return (self.name,)

    def __repr__(self) -> str:
        return "/%r" % self.name


# Do not make these generic as they are performance-critical
PSLiteralTable: Final[Dict[str, PSLiteral]] = {}
PSKeywordTable: Final[Dict[bytes, PSKeyword]] = {}

# Compatibility aliases
LIT: Final = PSLiteral
KWD: Final = PSKeyword

# Abbreviation of Filter names in PDF 4.8.6. "Inline Images"
LITERALS_FLATE_DECODE: Final = (LIT("FlateDecode"), LIT("Fl"))
LITERALS_ASCII85_DECODE: Final = (LIT("ASCII85Decode"), LIT("A85"))
LITERALS_ASCIIHEX_DECODE: Final = (LIT("ASCIIHexDecode"), LIT("AHx"))


def name_str(x: bytes) -> str:
    """Get the string representation for a name object.

    According to the PDF 1.7 spec (p.18):

    > Ordinarily, the bytes making up the name are never treated as
    > text to be presented to a human user or to an application
    > external to a conforming reader. However, occasionally the need
    > arises to treat a name object as text... In such situations, the
    > sequence of bytes (after expansion of NUMBER SIGN sequences, if
    > any) should be interpreted according to UTF-8.

    Accordingly, if they *can* be decoded to UTF-8, then they *will*
    be, and if not, we will just decode them as ISO-8859-1 since that
    gives a unique (if possibly nonsensical) value for an 8-bit string.
    """
    try:
        return x.decode("utf-8")
    except UnicodeDecodeError:
        return x.decode("iso-8859-1")


def literal_name(x: Any) -> str:
    if not isinstance(x, PSLiteral):
        raise TypeError(f"Literal required: {x!r}")
    else:
        return x.name


class ObjRef:
    def __init__(self, objid: int = 0, genno: int = 0) -> None:
        """Reference to an indirect PDF object.

        :param objid: The object number.
        :param genno: The generation number.
        """
        self.objid = objid
        self.genno = genno

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, ObjRef):
            return NotImplemented
        return self.objid == other.objid and self.genno == other.genno

    def __hash__(self) -> int:
        return self.objid

    def __repr__(self) -> str:
        return "<ObjRef:%d>" % (self.objid)


class Resolver(Protocol):
    """Anything that can dereference indirect objects."""

    def object(self, x: PDFObject) -> PDFObject:
        """Return `x`, or what it refers to if it is an `ObjRef`."""
        ...


class ObjectStore:
    """In-memory collection of indirect objects.

    This is the smallest possible thing that satisfies `Resolver`:
    it maps object numbers to (already parsed) objects, and follows
    chains of references to them.
    """

    def __init__(self, objects: Union[Mapping[int, PDFObject], None] = None) -> None:
        self.objects: Dict[int, PDFObject] = dict(objects or {})

    def __getitem__(self, objid: int) -> PDFObject:
        return self.objects[objid]

    def __setitem__(self, objid: int, obj: PDFObject) -> None:
        self.objects[objid] = obj

    def __contains__(self, objid: object) -> bool:
        return objid in self.objects

    def __len__(self) -> int:
        return len(self.objects)

    def add(self, obj: PDFObject) -> ObjRef:
        """Store a new object and return a reference to it."""
        objid = max(self.objects, default=0) + 1
        self.objects[objid] = obj
        return ObjRef(objid)

    def object(self, x: PDFObject) -> PDFObject:
        seen: Set[int] = set()
        while isinstance(x, ObjRef):
            if x.objid in seen:
                logger.warning("Circular reference to object %d", x.objid)
                return None
            seen.add(x.objid)
            if x.objid not in self.objects:
                logger.debug("Reference to missing object %d", x.objid)
                return None
            x = self.objects[x.objid]
        return x


def resolve_all(x: PDFObject, doc: Resolver) -> PDFObject:
    """Resolves all indirect object references inside the given object.

    This creates new copies of any lists or dictionaries, so the
    original object is not modified.  However, it will ultimately
    create circular references if they exist, so beware.
    """

    def resolver(x: PDFObject, seen: Dict[int, PDFObject]) -> PDFObject:
        if isinstance(x, ObjRef):
            ref = x
            if ref.objid in seen:
                return seen[ref.objid]
            x = doc.object(ref)
            seen[ref.objid] = x
        if isinstance(x, list):
            return [resolver(v, seen) for v in x]
        elif isinstance(x, dict):
            return {k: resolver(v, seen) for k, v in x.items()}
        return x

    return resolver(x, {})


def int_value(x: PDFObject) -> int:
    if not isinstance(x, int) or isinstance(x, bool):
        raise TypeError("Integer required: %r" % (x,))
    return x


def num_value(x: PDFObject) -> float:
    if not isinstance(x, (int, float)) or isinstance(x, bool):
        raise TypeError("Int or Float required: %r" % (x,))
    return x


def list_value(x: PDFObject) -> Union[List[Any], Tuple[Any, ...]]:
    if not isinstance(x, (list, tuple)):
        raise TypeError("List required: %r" % (x,))
    return x


def decompress_corrupted(data: bytes, bufsiz: int = 4096) -> bytes:
    """Decompress (possibly with data loss) a corrupted FlateDecode stream."""
    d = zlib.decompressobj()
    size = len(data)
    result_str = b""
    pos = end = 0
    try:
        while pos < size:
            # Skip the CRC checksum unless it's the only thing left
            end = min(size - 3, pos + bufsiz)
            if end == pos:
                end = size
            result_str += d.decompress(data[pos:end])
            pos = end
            logger.debug(
                "decompress_corrupted: %d bytes in, %d bytes out", pos, len(result_str)
            )
    except zlib.error as e:
        # Let the error propagates if we're not yet in the CRC checksum
        if pos != size - 3:
            logger.warning(
                "Data loss in decompress_corrupted: %s: bytes %d:%d", e, pos, end
            )
    return result_str


WHITESPACE = re.compile(rb"\s+")


def asciihexdecode(data: bytes) -> bytes:
    """Decode ASCIIHexDecode data, ignoring whitespace, up to the EOD marker."""
    data = WHITESPACE.sub(b"", data)
    eod = data.find(b">")
    if eod != -1:
        data = data[:eod]
    if len(data) % 2 == 1:
        data += b"0"
    return binascii.unhexlify(data)


def ascii85decode(data: bytes) -> bytes:
    """Decode ASCII85Decode data, up to the EOD marker."""
    data = data.strip()
    if data.startswith(b"<~"):
        data = data[2:]
    eod = data.find(b"~>")
    if eod != -1:
        data = data[:eod]
    return base64.a85decode(data)


class ContentStream(Mapping[str, PDFObject]):
    _data: Union[bytes, None] = None
    objid: Union[int, None] = None
    genno: Union[int, None] = None

    def __init__(
        self,
        attrs: Union[Dict[str, Any], None] = None,
        rawdata: bytes = b"",
    ) -> None:
        if attrs is None:
            attrs = {}
        self.attrs = attrs
        self.rawdata = rawdata

    def __repr__(self) -> str:
        if self._data is None:
            return "<ContentStream(%r): raw=%d, %r>" % (
                self.objid,
                len(self.rawdata),
                self.attrs,
            )
        else:
            return "<ContentStream(%r): len=%d, %r>" % (
                self.objid,
                len(self._data),
                self.attrs,
            )

    def __contains__(self, name: object) -> bool:
        return name in self.attrs

    def __getitem__(self, name: str) -> Any:
        return self.attrs[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self.attrs)

    def __len__(self) -> int:
        return len(self.attrs)

    def get_any(self, names: Iterable[str], default: PDFObject = None) -> PDFObject:
        for name in names:
            if name in self.attrs:
                return self.attrs[name]
        return default

    @property
    def filters(self) -> List[PSLiteral]:
        filters = self.get_any(("F", "Filter"))
        if not filters:
            return []
        if not isinstance(filters, list):
            filters = [filters]
        return [f for f in filters if isinstance(f, PSLiteral)]

    def decode(self, strict: bool = False) -> bytes:
        data = self.rawdata
        for f in self.filters:
            if f in LITERALS_FLATE_DECODE:
                try:
                    data = zlib.decompress(data)
                except zlib.error as e:
                    if strict:
                        error_msg = f"Invalid zlib bytes: {e!r}, {data!r}"
                        raise ValueError(error_msg)
                    else:
                        logger.warning("%s: %r", e, self)
                    data = decompress_corrupted(data)
            elif f in LITERALS_ASCII85_DECODE:
                data = ascii85decode(data)
            elif f in LITERALS_ASCIIHEX_DECODE:
                data = asciihexdecode(data)
            else:
                raise PDFNotImplementedError("Unsupported filter: %r" % f)
        self._data = data
        return data

    @property
    def buffer(self) -> bytes:
        """The decoded contents of the stream."""
        if self._data is None:
            return self.decode()
        return self._data
