from dataclasses import dataclass
from dataclasses import field

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

UNKNOWN_LICENSE = 'Unknown'
MISSING_VERSION = 'Missing version data'
# versionInfo of the SPDX package describing the repository itself
ROOT_PACKAGE_VERSION = 'main'


class SbomPackage(BaseModel):
    """A package entry of a GitHub dependency graph SPDX document."""
    name: str | None = None
    version_info: str | None = Field(alias='versionInfo', default=None)
    license_concluded: str | None = Field(
        alias='licenseConcluded', default=None,
    )

    model_config = ConfigDict(
        populate_by_name=True,
        extra='ignore',
    )

    @property
    def is_dependency(self) -> bool:
        return bool(self.name) and self.version_info != ROOT_PACKAGE_VERSION


@dataclass(frozen=True)
class LicenseResolution:
    """
    Outcome of resolving one package license.

    `license` is None when nothing could be resolved; `value` then reads as
    'Unknown'. `source` tells where a resolved license came from.
    """
    license: str | None = None
    source: str | None = None

    @property
    def resolved(self) -> bool:
        return self.license is not None

    @property
    def value(self) -> str:
        return self.license if self.license is not None else UNKNOWN_LICENSE

    @classmethod
    def unresolvable(cls) -> 'LicenseResolution':
        return cls()


@dataclass(frozen=True)
class PackageFinding:
    name: str
    version: str
    license: str

    @property
    def is_unknown(self) -> bool:
        return self.license == UNKNOWN_LICENSE


@dataclass(frozen=True)
class Occurrence:
    repo: str
    version: str


@dataclass
class RepositoryResult:
    repo: str
    packages: list[PackageFinding] = field(default_factory=list)


@dataclass(frozen=True)
class RepositoryFailure:
    repo: str
    error: str
