"""Client for the extraction proxy, used by the admin panel's extract screen."""

import logging
import os
from typing import Any

import requests
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

EXTRACT_PROXY_URL = os.getenv("EXTRACT_PROXY_URL", "http://127.0.0.1:8000/api/extract")


class ExtractionError(Exception):
    """User-facing extraction failure."""


def request_extraction(url: str, proxy_url: str = EXTRACT_PROXY_URL) -> Any:
    """Ask the proxy to extract metadata for a URL.

    Args:
        url: Page URL to extract
        proxy_url: Extraction proxy endpoint

    Returns:
        Parsed JSON returned by the extraction service

    Raises:
        ExtractionError: With a message suitable for display
    """
    if not url or not url.strip():
        raise ExtractionError("Please enter a URL")

    try:
        response = requests.post(proxy_url, json={"url": url})
    except requests.RequestException as e:
        logger.error(f"Extraction failed: {e}")
        raise ExtractionError(str(e)) from e

    try:
        data = response.json()
    except ValueError:
        logger.error(f"Response is not JSON: {response.text}")
        raise ExtractionError("Unexpected response format from server.") from None

    if not response.ok:
        message = data.get("error") if isinstance(data, dict) else None
        raise ExtractionError(message or "Failed to extract content")

    return data
