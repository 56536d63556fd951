# Advance widths from the Helvetica AFM file in:
# https://mirrors.ctan.org/fonts/adobe/afm/Adobe-Core35_AFMs-314.tar.gz

# This file and the 35 PostScript(R) AFM files it accompanies may be
# used, copied, and distributed for any purpose and without charge,
# with or without modification, provided that all copyright notices
# are retained; that the AFM files are not distributed without this
# file; that all modifications to this file or any of the AFM files
# are prominently noted in the modified file(s); and that this
# paragraph is not modified. Adobe Systems has no responsibility or
# obligation to support the use of the AFM files.

from typing import Dict, Optional


class BuiltinMetrics:
    """Widths for one of the standard 14 fonts, keyed by its built-in
    (StandardEncoding) character codes."""

    def __init__(self, name: str, widths: Dict[int, float]) -> None:
        self.name = name
        self.widths = widths

    def __repr__(self) -> str:
        return f"<BuiltinMetrics: {self.name}>"

    def width_for(self, code: int) -> Optional[float]:
        return self.widths.get(code)


HELVETICA = BuiltinMetrics(
    "Helvetica",
    {
        32: 278, 33: 278, 34: 355, 35: 556, 36: 556, 37: 889, 38: 667,
        39: 222, 40: 333, 41: 333, 42: 389, 43: 584, 44: 278, 45: 333,
        46: 278, 47: 278, 48: 556, 49: 556, 50: 556, 51: 556, 52: 556,
        53: 556, 54: 556, 55: 556, 56: 556, 57: 556, 58: 278, 59: 278,
        60: 584, 61: 584, 62: 584, 63: 556, 64: 1015, 65: 667, 66: 667,
        67: 722, 68: 722, 69: 667, 70: 611, 71: 778, 72: 722, 73: 278,
        74: 500, 75: 667, 76: 556, 77: 833, 78: 722, 79: 778, 80: 667,
        81: 778, 82: 722, 83: 667, 84: 611, 85: 722, 86: 667, 87: 944,
        88: 667, 89: 667, 90: 611, 91: 278, 92: 278, 93: 278, 94: 469,
        95: 556, 96: 222, 97: 556, 98: 556, 99: 500, 100: 556, 101: 556,
        102: 278, 103: 556, 104: 556, 105: 222, 106: 222, 107: 500,
        108: 222, 109: 833, 110: 556, 111: 556, 112: 556, 113: 556,
        114: 333, 115: 500, 116: 278, 117: 556, 118: 500, 119: 722,
        120: 500, 121: 500, 122: 500, 123: 334, 124: 260, 125: 334,
        126: 584, 161: 333, 162: 556, 163: 556, 164: 167, 165: 556,
        166: 556, 167: 556, 168: 556, 169: 191, 170: 333, 171: 556,
        172: 333, 173: 333, 174: 500, 175: 500, 177: 556, 178: 556,
        179: 556, 180: 278, 182: 537, 183: 350, 184: 222, 185: 333,
        186: 333, 187: 556, 188: 1000, 189: 1000, 191: 611, 193: 333,
        194: 333, 195: 333, 196: 333, 197: 333, 198: 333, 199: 333,
        200: 333, 202: 333, 203: 333, 205: 333, 206: 333, 207: 333,
        208: 1000, 225: 1000, 227: 370, 232: 556, 233: 778, 234: 1000,
        235: 365, 241: 889, 245: 278, 248: 222, 249: 611, 250: 944,
        251: 611,
    },
)

BUILTIN_METRICS: Dict[str, BuiltinMetrics] = {"Helvetica": HELVETICA}


def get_builtin_metrics(basefont: Optional[str]) -> Optional[BuiltinMetrics]:
    """Get the metrics we carry for a standard font, if any."""
    if basefont is None:
        return None
    return BUILTIN_METRICS.get(basefont)
