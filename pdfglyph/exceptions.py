"""
Perhaps excessively hierarchical exception hierarchy.
"""


class PSException(Exception):
    pass


class PDFException(PSException):
    pass


class PDFNotImplementedError(PDFException, NotImplementedError):
    pass


class PDFFontError(PDFException):
    pass


class PDFUnsupportedFeature(PDFFontError, NotImplementedError):
    """The font uses something we can't (or won't) decode."""
