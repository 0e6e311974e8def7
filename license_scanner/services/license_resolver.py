import structlog

from license_scanner.core.stats import ScanStats
from license_scanner.models.package import LicenseResolution
from license_scanner.services.registry_service import RegistryService

logger = structlog.get_logger('license_resolver')


def normalize_license(license_text: str) -> str:
    """Make a license usable as a grouping key and table cell."""
    return license_text.replace(' ', '-')


class LicenseResolver:
    """Resolve package licenses, preferring what the SBOM declares."""

    def __init__(self, registry: RegistryService, stats: ScanStats | None = None):
        self.registry = registry
        self.stats = stats or ScanStats()

    def resolve(
        self,
        declared_license: str | None,
        package_name: str,
        version: str | None = None,
    ) -> LicenseResolution:
        if declared_license:
            return LicenseResolution(declared_license, source='sbom')

        self.stats.inc_registry_lookups()
        try:
            found = self.registry.get_license(package_name, version)
        except Exception as e:
            # A registry client bug must not stop the scan of a whole repository
            logger.warning(
                'License lookup raised', package=package_name,
                version=version, error=str(e),
            )
            return LicenseResolution.unresolvable()

        if not found:
            return LicenseResolution.unresolvable()
        return LicenseResolution(found, source='registry')
