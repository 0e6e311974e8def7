import time
from typing import Any

import jwt
import requests
import structlog
from ratelimit import limits
from ratelimit import sleep_and_retry

from license_scanner.core.client import get_http_client
from license_scanner.core.config import GitHubAppConfig
from license_scanner.core.errors import AuthenticationError
from license_scanner.core.errors import IngestionError
from license_scanner.core.errors import RepositoryListingError
from license_scanner.models.repository import Repository

logger = structlog.get_logger('github_service')

# GitHub App installations get 5000 core requests/hour, keep a margin
CORE_CALLS = 4500
CORE_PERIOD = 3600
PAGE_SIZE = 100


class GitHubService:
    """GitHub REST client authenticated as a GitHub App installation."""

    def __init__(self, config: GitHubAppConfig):
        self.config = config
        self.base_url = config.api_base_url.rstrip('/')
        self.timeout = config.timeout
        self.session = get_http_client()
        self.session.headers.update({
            'Accept': 'application/vnd.github+json',
            'X-GitHub-Api-Version': '2022-11-28',
            'User-Agent': 'license-scanner',
        })
        self.app_name: str | None = None

    def _create_app_jwt(self) -> str:
        now = int(time.time())
        payload = {
            # Backdated to tolerate clock drift against GitHub
            'iat': now - 60,
            'exp': now + 9 * 60,
            'iss': str(self.config.app_id),
        }
        return jwt.encode(payload, self.config.pem, algorithm='RS256')

    def _handle_api_rate_limit(self, response: requests.Response):
        """Sleep until GitHub lifts a 403/429 rate limit."""
        reset_time = response.headers.get('X-RateLimit-Reset')
        retry_after = response.headers.get('Retry-After')

        wait_seconds = 60.0
        if retry_after:
            wait_seconds = float(retry_after) + 1.0
        elif reset_time:
            wait_seconds = float(reset_time) - time.time() + 1.0

        if wait_seconds < 0:
            wait_seconds = 1.0

        if wait_seconds > 3600:
            logger.error(
                'Rate limit reset too far in future',
                wait_seconds=wait_seconds,
            )
            raise requests.RequestException(
                'Rate limit exceeded and reset time is too long (circuit breaker).',
            )

        logger.warning(
            'API Rate limit hit',
            status=response.status_code,
            wait_seconds=f"{wait_seconds:.2f}s",
        )
        time.sleep(wait_seconds)

    @sleep_and_retry
    @limits(calls=CORE_CALLS, period=CORE_PERIOD)
    def _make_core_request(self, method: str, url: str, **kwargs) -> requests.Response:
        return self._make_request(method, url, **kwargs)

    def _make_request(self, method: str, url: str, **kwargs) -> requests.Response:
        kwargs.setdefault('timeout', self.timeout)
        while True:
            response = self.session.request(method, url, **kwargs)

            if response.status_code == 429:
                self._handle_api_rate_limit(response)
                continue

            if response.status_code == 403 and 'rate limit' in response.text.lower():
                self._handle_api_rate_limit(response)
                continue

            return response

    def authenticate(self) -> str:
        """
        Exchange the App private key for an installation access token.

        The identity check (`GET /app`) runs first so that a bad key or app id
        is reported as an authentication failure rather than a listing one.
        """
        try:
            app_jwt = self._create_app_jwt()
        except (jwt.PyJWTError, ValueError, TypeError) as e:
            raise AuthenticationError(f"cannot sign app token: {e}") from e

        headers = {'Authorization': f"Bearer {app_jwt}"}
        try:
            response = self._make_core_request(
                'GET', f"{self.base_url}/app", headers=headers,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise AuthenticationError(f"authentication failed: {e}") from e
        if not data:
            raise AuthenticationError('authentication failed')

        self.app_name = data.get('name') or data.get('slug')
        logger.info('Authenticated', app=self.app_name)

        url = (
            f"{self.base_url}/app/installations/"
            f"{self.config.installation_id}/access_tokens"
        )
        try:
            response = self._make_core_request('POST', url, headers=headers)
            response.raise_for_status()
            token = response.json().get('token')
        except (requests.RequestException, ValueError) as e:
            raise AuthenticationError(
                f"cannot create installation token: {e}",
            ) from e
        if not token:
            raise AuthenticationError('installation token missing from response')

        self.session.headers['Authorization'] = f"Bearer {token}"
        return self.app_name or ''

    def list_org_repositories(self, org: str) -> list[Repository]:
        """Fetch every repository of an organization, following pagination."""
        url = f"{self.base_url}/orgs/{org}/repos"
        repositories: list[Repository] = []
        page = 1

        while True:
            params = {'per_page': str(PAGE_SIZE), 'page': str(page)}
            try:
                response = self._make_core_request('GET', url, params=params)
                response.raise_for_status()
                items = response.json()
            except (requests.RequestException, ValueError) as e:
                raise RepositoryListingError(org, str(e)) from e

            if not isinstance(items, list):
                raise RepositoryListingError(org, 'unexpected response body')

            repositories.extend(Repository.model_validate(item) for item in items)
            if len(items) < PAGE_SIZE:
                break
            page += 1

        logger.info('Listed repositories', org=org, count=len(repositories))
        return repositories

    def get_sbom(self, owner: str, repo: str) -> dict[str, Any]:
        """Fetch the SPDX document of a repository's dependency graph."""
        url = f"{self.base_url}/repos/{owner}/{repo}/dependency-graph/sbom"
        try:
            response = self._make_core_request('GET', url)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise IngestionError(repo, str(e)) from e

        sbom = data.get('sbom') if isinstance(data, dict) else None
        if not isinstance(sbom, dict):
            raise IngestionError(repo, 'response has no sbom document')
        return sbom
