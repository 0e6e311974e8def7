import requests
import structlog

from license_scanner.core.client import get_http_client

logger = structlog.get_logger('notifier_service')


class NotifierService:
    """Deliver the chat rendering of a report to an incoming webhook."""

    def __init__(
        self,
        webhook_url: str | None,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ):
        self.webhook_url = webhook_url
        self.timeout = timeout
        self.session = session or get_http_client(pool_size=1)

    def send(self, text: str) -> bool:
        """
        POST `{"text": text}` to the webhook.

        Delivery is best-effort: failures are logged and reported through the
        return value, never raised.
        """
        if not self.webhook_url:
            logger.info('No webhook configured, skipping chat delivery')
            return False

        try:
            response = self.session.post(
                self.webhook_url, json={'text': text}, timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning('Chat delivery failed', error=str(e))
            return False

        if not response.ok:
            logger.warning('Chat delivery rejected', status=response.status_code)
            return False

        logger.info('Chat message delivered', status=response.status_code)
        return True
