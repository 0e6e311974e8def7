"""Error taxonomy for a scan run."""


class ScannerError(Exception):
    """Base class for errors that terminate a scan."""


class ConfigurationError(ScannerError, ValueError):
    """Required configuration is missing or malformed."""


class AuthenticationError(ScannerError):
    """The GitHub App could not be authenticated."""


class RepositoryListingError(ScannerError):
    def __init__(self, org: str, reason: str = ''):
        self.org = org
        self.reason = reason
        message = f"failed to retrieve repos for org {org}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class IngestionError(ScannerError):
    def __init__(self, repo: str, reason: str = ''):
        self.repo = repo
        self.reason = reason
        message = f"failed to retrieve SBOM for repo {repo}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
