"""error types raised while reading, writing or validating drcov data"""


class DrCovError(Exception):
    """Base exception for DrCov parsing, writing or validation errors."""

    pass


class DrCovIOError(DrCovError):
    """The underlying stream failed, or ended in the middle of binary data."""

    pass


class InvalidFormatError(DrCovError):
    """An outer header line is missing or does not carry its literal prefix."""

    pass


class UnsupportedVersionError(DrCovError):
    """The file declares an outer format version other than the supported one."""

    def __init__(self, version: int):
        super().__init__(f"Unsupported drcov version: {version}")
        self.version = version


class InvalidModuleTableError(DrCovError):
    """The module table header, columns line or a module record is malformed."""

    pass


class InvalidBBTableError(DrCovError):
    """The basic block table header is malformed."""

    pass


class ValidationError(DrCovError):
    """Well-formed data that breaks a cross-section invariant."""

    pass
