"""ToUnicode CMaps.

A ToUnicode CMap maps character codes in a font to the Unicode text
they represent (PDF 32000-1:2008, section 9.10.3).  Only the parts of
the CMap syntax that are allowed in a ToUnicode CMap are handled here:
code space ranges, `bfchar` and `bfrange`.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from pdfglyph.encodingdb import name2unicode
from pdfglyph.parser import KEYWORD_ARRAY_BEGIN, KEYWORD_ARRAY_END, Lexer
from pdfglyph.pdftypes import KWD, PSKeyword, PSLiteral

log = logging.getLogger(__name__)

KEYWORD_BEGINCODESPACERANGE = KWD(b"begincodespacerange")
KEYWORD_ENDCODESPACERANGE = KWD(b"endcodespacerange")
KEYWORD_BEGINBFCHAR = KWD(b"beginbfchar")
KEYWORD_ENDBFCHAR = KWD(b"endbfchar")
KEYWORD_BEGINBFRANGE = KWD(b"beginbfrange")
KEYWORD_ENDBFRANGE = KWD(b"endbfrange")

# Refuse to expand ranges bigger than this
MAX_RANGE = 0x10000


class ToUnicodeMap:
    """Mapping of character codes to Unicode text."""

    def __init__(self) -> None:
        self.cid2unichr: Dict[int, str] = {}
        self.code_space: List[Tuple[bytes, bytes]] = []
        self.code_lengths: List[int] = []

    def __repr__(self) -> str:
        return f"<ToUnicodeMap: {len(self.cid2unichr)} entries>"

    def __len__(self) -> int:
        return len(self.cid2unichr)

    def __contains__(self, code: object) -> bool:
        return code in self.cid2unichr

    def add_code2unichr(self, code: int, text: str) -> None:
        self.cid2unichr[code] = text

    def decode(self, code: int) -> Optional[str]:
        """Get the text for a character code, or None if it has none."""
        return self.cid2unichr.get(code)


def unichr_value(dst: Any) -> Optional[str]:
    """Interpret the destination of a bfchar or bfrange mapping."""
    if isinstance(dst, PSLiteral):
        return name2unicode(dst.name)
    if not isinstance(dst, bytes):
        return None
    if len(dst) == 1:
        # Not UTF-16BE, but it happens
        return chr(dst[0])
    return dst.decode("utf-16be", errors="replace")


class CMapParser:
    """Parse a ToUnicode CMap into a `ToUnicodeMap`."""

    def __init__(self, cmap: ToUnicodeMap, data: bytes) -> None:
        self.cmap = cmap
        self._lexer = Lexer(data)
        self.stack: List[Any] = []

    def run(self) -> None:
        for _, token in self._lexer:
            if token is KEYWORD_ARRAY_BEGIN:
                self.stack.append(token)
            elif token is KEYWORD_ARRAY_END:
                self.pop_array()
            elif isinstance(token, PSKeyword):
                self.do_keyword(token)
            else:
                self.stack.append(token)

    def pop_array(self) -> None:
        array: List[Any] = []
        while self.stack:
            obj = self.stack.pop()
            if obj is KEYWORD_ARRAY_BEGIN:
                array.reverse()
                self.stack.append(array)
                return
            array.append(obj)
        log.debug("Unmatched ] in CMap")

    def do_keyword(self, token: PSKeyword) -> None:
        if token is KEYWORD_ENDCODESPACERANGE:
            self.do_codespacerange()
        elif token is KEYWORD_ENDBFCHAR:
            self.do_bfchar()
        elif token is KEYWORD_ENDBFRANGE:
            self.do_bfrange()
        # Anything else (including the begin keywords) just clears
        # whatever operands were pending
        self.stack.clear()

    def do_codespacerange(self) -> None:
        args = self.stack
        for start, end in zip(args[::2], args[1::2]):
            if not isinstance(start, bytes) or not isinstance(end, bytes):
                log.debug("Invalid code space range %r %r", start, end)
                continue
            self.cmap.code_space.append((start, end))
            if len(start) not in self.cmap.code_lengths:
                self.cmap.code_lengths.append(len(start))
        self.cmap.code_lengths.sort()

    def do_bfchar(self) -> None:
        args = self.stack
        for src, dst in zip(args[::2], args[1::2]):
            if not isinstance(src, bytes):
                log.debug("Invalid bfchar source %r", src)
                continue
            text = unichr_value(dst)
            if text is None:
                log.debug("Invalid bfchar destination %r", dst)
                continue
            self.cmap.add_code2unichr(int.from_bytes(src, "big"), text)

    def do_bfrange(self) -> None:
        args = self.stack
        for start_b, end_b, dst in zip(args[::3], args[1::3], args[2::3]):
            if not isinstance(start_b, bytes) or not isinstance(end_b, bytes):
                log.debug("Invalid bfrange %r %r", start_b, end_b)
                continue
            start = int.from_bytes(start_b, "big")
            end = int.from_bytes(end_b, "big")
            if end < start or end - start >= MAX_RANGE:
                log.debug("Ignoring bfrange %r %r", start_b, end_b)
                continue
            if isinstance(dst, list):
                for code, item in zip(range(start, end + 1), dst):
                    text = unichr_value(item)
                    if text is not None:
                        self.cmap.add_code2unichr(code, text)
            elif isinstance(dst, bytes) and dst:
                base = int.from_bytes(dst, "big")
                limit = 1 << (8 * len(dst))
                for offset in range(end - start + 1):
                    if base + offset >= limit:
                        log.debug("bfrange destination %r overflows", dst)
                        break
                    text = unichr_value((base + offset).to_bytes(len(dst), "big"))
                    if text is not None:
                        self.cmap.add_code2unichr(start + offset, text)
            else:
                log.debug("Invalid bfrange destination %r", dst)


def parse_tounicode(data: bytes) -> ToUnicodeMap:
    cmap = ToUnicodeMap()
    CMapParser(cmap, data).run()
    return cmap
