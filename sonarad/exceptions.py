"""Exceptions raised by SonarAD."""


class SonarADError(Exception):
    """Base class for all SonarAD errors."""


class DirectoryUnavailableError(SonarADError):
    """The directory service could not be reached or bound."""


class DirectoryQueryError(SonarADError):
    """An LDAP search failed."""
    
    def __init__(self, message: str, search_filter: str = None):
        super().__init__(message)
        self.search_filter = search_filter


class GroupNotFoundError(SonarADError):
    """A named group does not exist or is not visible to the bound account."""
    
    def __init__(self, group_name: str):
        super().__init__(f"Group not found: {group_name}")
        self.group_name = group_name


class ReportWriteError(SonarADError):
    """The report file could not be written."""
    
    def __init__(self, path: str, reason: str):
        super().__init__(f"Failed to write {path}: {reason}")
        self.path = path
        self.reason = reason
