from typing import Any
from urllib.parse import quote

import requests
import structlog
from nodesemver import max_satisfying

from license_scanner.core.client import get_cached_http_client

logger = structlog.get_logger('registry_service')


def extract_license(metadata: dict[str, Any]) -> str | None:
    """Read the license of an npm version manifest, in any of its shapes."""
    value = metadata.get('license')
    if isinstance(value, str) and value.strip():
        return value.strip()
    if isinstance(value, dict) and value.get('type'):
        return str(value['type']).strip() or None

    legacy = metadata.get('licenses')
    if isinstance(legacy, list) and legacy:
        first = legacy[0]
        if isinstance(first, dict) and first.get('type'):
            return str(first['type']).strip() or None
        if isinstance(first, str) and first.strip():
            return first.strip()
    return None


def _max_satisfying(versions: list[str], spec: str) -> str | None:
    """Highest published version matching an npm range, as npm itself picks it."""
    try:
        return max_satisfying(versions, spec, loose=True)
    except (ValueError, TypeError):
        return None


class RegistryService:
    """License lookups against the public npm registry."""

    def __init__(
        self,
        base_url: str = 'https://registry.npmjs.org',
        timeout: float = 15.0,
        session: requests.Session | None = None,
        cache_name: str = '.requests-cache/registry.sqlite3',
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or get_cached_http_client(cache_name=cache_name)

    def package_url(self, name: str) -> str:
        # Scoped packages keep the '@' but escape the slash: @scope%2Fname
        return f"{self.base_url}/{quote(name, safe='@')}"

    def get_license(self, name: str, version: str | None = None) -> str | None:
        """
        Return the license declared on the registry, or None.

        Never raises: a failed lookup only means the license stays unknown.
        """
        try:
            response = self.session.get(self.package_url(name), timeout=self.timeout)
        except requests.RequestException as e:
            logger.debug('Registry lookup failed', package=name, error=str(e))
            return None

        if response.status_code != 200:
            logger.debug(
                'Registry lookup failed',
                package=name, status=response.status_code,
            )
            return None

        try:
            packument = response.json()
        except ValueError:
            logger.debug('Registry returned invalid JSON', package=name)
            return None
        if not isinstance(packument, dict):
            return None

        manifest = self._select_version(packument, version)
        if manifest is None:
            logger.debug('Version not on registry', package=name, version=version)
            return None
        return extract_license(manifest)

    @staticmethod
    def _select_version(packument: dict[str, Any], version: str | None) -> dict[str, Any] | None:
        versions = packument.get('versions') or {}
        dist_tags = packument.get('dist-tags') or {}
        if not isinstance(versions, dict) or not isinstance(dist_tags, dict):
            return None

        wanted = version or 'latest'
        if wanted in versions:
            manifest = versions[wanted]
        elif wanted in dist_tags:
            manifest = versions.get(dist_tags[wanted])
        else:
            # Manifests without a lockfile report ranges such as ^4.17.0
            matched = _max_satisfying(list(versions), wanted)
            if matched is None:
                return None
            manifest = versions.get(matched)
        return manifest if isinstance(manifest, dict) else None
