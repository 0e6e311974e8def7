"""Configuration management for license-scanner.

Every value defaults from the environment (optionally seeded from a `.env`
file) and can be overridden from the command line. The resulting
`ScannerConfig` is built once, validated before any network call and then
passed explicitly to the services that need it.
"""
import os
from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from pathlib import Path
from urllib.parse import urlparse

import dotenv

from license_scanner.core.errors import ConfigurationError


class FailurePolicy(str, Enum):
    """What to do when the SBOM of one repository cannot be fetched."""
    ABORT = 'abort'
    CONTINUE = 'continue'

    def __str__(self) -> str:
        return self.value


def parse_blacklist(text: str | None) -> tuple[str, ...]:
    """Split a comma (or newline) separated license list, keeping order."""
    if not text:
        return ()
    entries: list[str] = []
    for line in text.splitlines():
        if line.strip().startswith('#'):
            continue
        for item in line.split(','):
            item = item.strip()
            if item and item not in entries:
                entries.append(item)
    return tuple(entries)


def load_blacklist_file(path: str | Path) -> tuple[str, ...]:
    try:
        return parse_blacklist(Path(path).read_text(encoding='utf-8'))
    except OSError as e:
        raise ConfigurationError(f"cannot read blacklist file {path}: {e}") from e


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from e


@dataclass
class GitHubAppConfig:
    """GitHub App identity and the organization to scan."""
    app_id: str | None = field(default_factory=lambda: os.getenv('GH_APP_ID'))
    private_key: str | None = field(
        default_factory=lambda: os.getenv('GH_APP_PRIVATE_KEY'),
    )
    installation_id: str | None = field(
        default_factory=lambda: os.getenv('GH_ORG_INSTALLATION_ID'),
    )
    org_url: str | None = field(default_factory=lambda: os.getenv('GH_ORG_URL'))
    api_base_url: str = 'https://api.github.com'
    timeout: float = 20.0

    def __repr__(self) -> str:
        return (
            f"GitHubAppConfig(app_id={self.app_id!r}, private_key='*****', "
            f"installation_id={self.installation_id!r}, org_url={self.org_url!r}, "
            f"api_base_url={self.api_base_url!r}, timeout={self.timeout!r})"
        )

    @property
    def pem(self) -> str:
        # CI secrets often store the PEM on one line with literal \n escapes
        return (self.private_key or '').replace('\\n', '\n')

    @property
    def org_name(self) -> str:
        if not self.org_url:
            return ''
        return urlparse(self.org_url).path.strip('/')

    def repo_url(self, repo: str) -> str:
        return f"{(self.org_url or '').rstrip('/')}/{repo}"


@dataclass
class ScanConfig:
    blacklist: tuple[str, ...] = field(
        default_factory=lambda: parse_blacklist(os.getenv('LICENSE_BLACKLIST')),
    )
    max_workers: int = field(
        default_factory=lambda: _env_int('SCANNER_MAX_WORKERS', 8),
    )
    failure_policy: FailurePolicy = field(
        default_factory=lambda: FailurePolicy(
            os.getenv('SCANNER_ON_ERROR', FailurePolicy.ABORT.value),
        ),
    )
    registry_url: str = 'https://registry.npmjs.org'
    registry_timeout: float = 15.0
    registry_cache: str = '.requests-cache/registry.sqlite3'


@dataclass
class NotifierConfig:
    webhook_url: str | None = field(
        default_factory=lambda: os.getenv('SLACK_WEBHOOK_URL'),
    )
    timeout: float = 10.0

    def __repr__(self) -> str:
        masked = '*****' if self.webhook_url else None
        return f"NotifierConfig(webhook_url={masked!r}, timeout={self.timeout!r})"


@dataclass
class ScannerConfig:
    github: GitHubAppConfig = field(default_factory=GitHubAppConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    notifier: NotifierConfig = field(default_factory=NotifierConfig)

    @classmethod
    def load(cls, env_file: str | Path | None = None) -> 'ScannerConfig':
        """Build a config from the environment, reading `.env` if present."""
        dotenv.load_dotenv(env_file)
        return cls()

    def validate(self) -> 'ScannerConfig':
        """Fail fast on anything a scan cannot run without."""
        gh = self.github
        if not gh.app_id or not gh.private_key or not gh.installation_id:
            raise ConfigurationError('missing credentials!')
        try:
            int(gh.installation_id)
        except ValueError as e:
            raise ConfigurationError(
                f"installation id must be numeric, got {gh.installation_id!r}",
            ) from e

        if not self.scan.blacklist:
            raise ConfigurationError('no blacklist provided!')

        if not gh.org_url:
            raise ConfigurationError('no organisation github URL provided!')
        parsed = urlparse(gh.org_url)
        if not parsed.scheme or not parsed.netloc:
            raise ConfigurationError(f"invalid organisation URL {gh.org_url!r}")
        if not gh.org_name or '/' in gh.org_name:
            raise ConfigurationError(
                f"organisation URL {gh.org_url!r} must end with the organisation name",
            )

        if self.scan.max_workers < 1:
            raise ConfigurationError('max workers must be at least 1')
        return self
