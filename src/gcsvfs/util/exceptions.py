class GCSVFSError(Exception):
    """Super-type of all errors raised by gcsvfs code"""

    def __init__(self, msg: str, code_space: str = "GEN", code_number: int = None, is_recoverable: bool = False):
        self.internal_code = "" if code_number is None else f"{code_space}-{code_number}"
        super().__init__(f"{msg} [{self.internal_code}]")
        self.is_recoverable = is_recoverable


class ConfigError(GCSVFSError):
    """Raised when the file system cannot be set up from its configuration."""

    def __init__(self, msg: str, code_number: int = None, code_space: str = "CONFIG"):
        super().__init__(msg, code_space, code_number, is_recoverable=False)
