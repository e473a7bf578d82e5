"""HTTP fetching with bounded exponential-backoff retries."""
import logging
import time
from typing import Callable, Dict, Optional, Tuple, Type, TypeVar

import requests

logger = logging.getLogger(__name__)

T = TypeVar('T')

USER_AGENT = 'Woodlands Events Ingestion (woodlands-events@example.com)'
ACCEPT_HTML = 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8'


def retry_operation(
    operation: Callable[[], T],
    max_retries: int = 2,
    base_delay: float = 0.5,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], None] = time.sleep
) -> T:
    """
    Call ``operation`` until it succeeds or the retries run out.

    Makes at most ``max_retries + 1`` attempts, sleeping
    ``base_delay * 2 ** attempt`` seconds after each failed attempt.

    Args:
        operation: Zero-argument callable, safe to invoke repeatedly
        max_retries: Retries after the first attempt
        base_delay: Delay in seconds before the first retry
        retry_on: Exception types that trigger a retry
        sleep: Sleep function (injectable for tests)

    Returns:
        The operation's result

    Raises:
        The last exception raised by ``operation`` once retries are exhausted
    """
    attempts = max_retries + 1

    for attempt in range(attempts):
        try:
            return operation()
        except retry_on as e:
            if attempt < max_retries:
                delay = base_delay * (2 ** attempt)
                logger.warning(
                    f"Attempt {attempt + 1}/{attempts} failed: {e}. "
                    f"Retrying in {delay} seconds..."
                )
                sleep(delay)
            else:
                logger.error(
                    f"All {attempts} attempts failed. Last error: {e}"
                )
                raise


class HtmlFetcher:
    """Fetches listing pages over HTTP with timeout and retries."""

    def __init__(
        self,
        timeout: float = 10,
        max_retries: int = 2,
        base_delay: float = 0.5,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Initialize the fetcher.

        Args:
            timeout: Per-request timeout in seconds (default: 10)
            max_retries: Retries after the first attempt (default: 2)
            base_delay: Backoff base delay in seconds (default: 0.5)
            session: Optional requests session to reuse connections
            sleep: Sleep function used between retries
        """
        self.timeout = timeout
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.session = session or requests.Session()
        self.sleep = sleep

    def get(self, url: str, params: Optional[Dict[str, str]] = None) -> str:
        """
        Fetch a page and return its body.

        Raises:
            requests.RequestException: If all retry attempts fail
        """
        def attempt() -> str:
            logger.info(f"Fetching {url}")
            response = self.session.get(
                url,
                params=params,
                headers={'User-Agent': USER_AGENT, 'Accept': ACCEPT_HTML},
                timeout=self.timeout
            )
            response.raise_for_status()
            return response.text

        return retry_operation(
            attempt,
            max_retries=self.max_retries,
            base_delay=self.base_delay,
            retry_on=(requests.RequestException,),
            sleep=self.sleep
        )
