"""
Trigger the site's bulk feed import and wait for it to finish.
"""
import json
import re
import time
import logging
from typing import Callable, Dict, Iterable, Optional
from urllib.parse import urlencode

import requests

# Configure logging
logger = logging.getLogger(__name__)

POLL_INTERVAL = 60  # seconds
MAX_ATTEMPTS = 30
REQUEST_TIMEOUT = 30

_COUNT_PATTERN = re.compile(r'(\d+)')


def import_endpoint(site_url: str, import_id: int, import_key: str) -> str:
    """
    Build the import URL for one import job.

    Args:
        site_url: WordPress site root
        import_id: Import job id
        import_key: Secret key configured in the import plugin

    Returns:
        Endpoint without the action parameter
    """
    query = urlencode({'import_key': import_key, 'import_id': import_id})
    return f"{site_url.rstrip('/')}/wp-load.php?{query}"


class ImportCoordinator:
    """
    Drives the import plugin's trigger/processing endpoints.
    """
    def __init__(
        self,
        session: Optional[requests.Session] = None,
        poll_interval: float = POLL_INTERVAL,
        max_attempts: int = MAX_ATTEMPTS,
        timeout: float = REQUEST_TIMEOUT,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the ImportCoordinator.

        Args:
            session: HTTP session, a new requests.Session by default
            poll_interval: Seconds between progress checks
            max_attempts: Progress checks before giving up waiting
            timeout: Per-request timeout in seconds
            sleep: Sleep function used between polls
        """
        self.session = session or requests.Session()
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self.timeout = timeout
        self.sleep = sleep

    def _check_progress(self, text: str) -> Optional[int]:
        """
        Interpret a processing response.

        Returns:
            0 when the import is complete, the remaining count when one is
            reported, None when the body says neither
        """
        try:
            data = json.loads(text)
        except ValueError:
            data = None

        if isinstance(data, dict):
            message = str(data.get('message') or '')
            status = data.get('status', 200)
            if 'complete' in message and str(status) == '200':
                return 0
            return None

        match = _COUNT_PATTERN.search(text)
        if match:
            return int(match.group(1))
        return None

    def import_and_wait(self, endpoint: str) -> bool:
        """
        Trigger an import and poll until it completes.

        Args:
            endpoint: Import endpoint without the action parameter

        Returns:
            False if the trigger request fails; True otherwise, including when
            polling gives up after max_attempts
        """
        logger.info(f"Triggering import: {endpoint}")
        try:
            response = self.session.get(f"{endpoint}&action=trigger", timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"Import trigger failed: {e}")
            return False

        if not response.ok:
            logger.error(f"Import trigger failed with status {response.status_code}")
            return False
        logger.info("Import triggered, waiting for completion")

        attempts = 0
        while attempts < self.max_attempts:
            attempts += 1
            logger.info(f"Checking import progress ({attempts}/{self.max_attempts})")
            remaining = None
            try:
                progress = self.session.get(f"{endpoint}&action=processing", timeout=self.timeout)
                if progress.ok:
                    logger.debug(f"Progress response: {progress.text}")
                    remaining = self._check_progress(progress.text)
                else:
                    logger.error(f"Progress check failed with status {progress.status_code}")
            except requests.exceptions.RequestException as e:
                logger.error(f"Progress check failed: {e}")

            if remaining == 0:
                logger.info("Import complete")
                return True
            if remaining is not None:
                logger.info(f"Remaining items to import: {remaining}")

            if attempts < self.max_attempts:
                self.sleep(self.poll_interval)

        logger.warning(
            f"Import did not report completion after {self.max_attempts} checks, continuing anyway"
        )
        return True

    def import_all(self, site_url: str, import_ids: Iterable[int], import_key: str) -> Dict[int, bool]:
        """
        Run every configured import job in turn.

        Returns:
            Mapping of import id to whether its trigger succeeded
        """
        results = {}
        for import_id in import_ids:
            success = self.import_and_wait(import_endpoint(site_url, import_id, import_key))
            if not success:
                logger.error(f"Import {import_id} failed")
            results[import_id] = success
        return results
