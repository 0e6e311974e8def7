from datetime import timedelta
from pathlib import Path

import requests
import requests_cache
import structlog
from requests.adapters import HTTPAdapter

logger = structlog.get_logger('client')


def logging_hook(response, *args, **kwargs):
    """Log every HTTP response with timing and GitHub rate limit info."""
    if getattr(response, '_logged', False):
        return
    response._logged = True

    is_cached = getattr(response, 'from_cache', False)
    log_kwargs = {
        'method': response.request.method,
        'url': response.url,
        'status': response.status_code,
        'elapsed': f"{response.elapsed.total_seconds():.3f}s",
        'cached': is_cached,
    }

    remaining = response.headers.get('X-RateLimit-Remaining')
    limit = response.headers.get('X-RateLimit-Limit')
    if remaining and limit:
        log_kwargs['ratelimit'] = f"{remaining}/{limit}"

    if is_cached:
        logger.debug('HTTP Request', _style='dim', **log_kwargs)
    else:
        logger.debug('HTTP Request', **log_kwargs)


def _mount_adapter(session: requests.Session, pool_size: int) -> None:
    # Failed calls are not retried: a failed SBOM fetch has to surface as-is
    adapter = HTTPAdapter(
        pool_connections=pool_size,
        pool_maxsize=pool_size,
        max_retries=0,
    )
    session.mount('https://', adapter)
    session.mount('http://', adapter)


def get_http_client(pool_size: int = 20) -> requests.Session:
    """
    Returns a plain requests session for GitHub API calls.
    GitHub responses are never cached; every run must see the current SBOMs.
    """
    session = requests.Session()
    session.hooks['response'].append(logging_hook)
    _mount_adapter(session, pool_size)
    return session


def get_cached_http_client(
    cache_name: str = '.requests-cache/registry.sqlite3',
    expire_after: int = 86400,
    pool_size: int = 20,
) -> requests_cache.CachedSession:
    """
    Returns a caching session for package registry metadata.
    404 responses are cached too, so unknown packages are not re-fetched.
    """
    cache_path = Path(cache_name)
    cache_path.parent.mkdir(parents=True, exist_ok=True)

    session = requests_cache.CachedSession(
        cache_name=cache_name,
        backend='sqlite',
        expire_after=timedelta(seconds=expire_after),
        allowable_codes=[200, 404],
    )
    session.hooks['response'].append(logging_hook)
    _mount_adapter(session, pool_size)

    logger.debug(
        'Initialized Cached HTTP Client',
        cache_name=cache_name,
        expire_after=expire_after,
    )
    return session
