import re
import logging
import requests

from exceptions import DocumentRetrievalError, ValidationError

logger = logging.getLogger(__name__)

USER_AGENT = ('Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
              '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36')


def sanitize_filename(title):
    name = re.sub(r'[^a-z0-9]', '_', title or '', flags=re.IGNORECASE).lower()
    return f"{name or 'document'}.pdf"


def download_document(url, title, session=None, timeout=30):
    """Fetch an order/judgment PDF and return ``(content, filename)``."""
    if not url:
        raise ValidationError('PDF URL is required')

    http = session or requests
    try:
        response = http.get(url, headers={'User-Agent': USER_AGENT}, timeout=timeout)
    except requests.RequestException as e:
        logger.error(f"Error downloading PDF from {url}: {e}")
        raise DocumentRetrievalError() from e

    if not response.ok:
        logger.error(f"Error downloading PDF from {url}: status {response.status_code}")
        raise DocumentRetrievalError()

    return response.content, sanitize_filename(title)
