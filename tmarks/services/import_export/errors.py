class BookmarkImportError(Exception):
    """Base class for failures that abort a whole import."""


class DecodeError(BookmarkImportError):
    """The upload is not syntactically valid structured text."""


class FormatError(BookmarkImportError):
    """The document decodes but matches none of the known shapes."""


class StructureError(BookmarkImportError):
    """A recognized format is missing a required field or has the wrong shape."""
