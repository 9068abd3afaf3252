"""Exceptions raised by the listing photo pipeline."""


class ListingPhotosError(Exception):
    """Base class for errors raised by this package."""


class RecordLoadError(ListingPhotosError):
    """The listing spreadsheet could not be read or parsed."""
