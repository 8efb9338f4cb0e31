"""Utility functions for loading entity-spec documents.

Documents are JSON and can come from a local file, a URL or standard input.
"""

import json
import sys
from pathlib import Path
from typing import Any, TextIO
from urllib.parse import urlparse

import requests

from .logging_config import get_logger

logger = get_logger(__name__)


class SpecLoaderError(Exception):
    """Raised when an entity-spec document cannot be loaded."""

    pass


def load_spec_from_file(file_path: str | Path) -> tuple[str, Any]:
    """Load an entity-spec document from a local file.

    Args:
        file_path: Path to the JSON file.

    Returns:
        Tuple of (source description, parsed document).

    Raises:
        FileNotFoundError: If file doesn't exist.
        SpecLoaderError: If file cannot be read or JSON is invalid.
    """
    file_path = Path(file_path)
    logger.debug("Loading entity spec from file: %s", file_path)

    if not file_path.exists():
        logger.error("File not found: %s", file_path)
        raise FileNotFoundError(f"File not found: {file_path}")

    if file_path.suffix.lower() != ".json":
        # might still be valid JSON
        logger.warning("File does not have .json extension: %s", file_path)

    try:
        with file_path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        logger.info("Loaded entity spec from %s", file_path)
        return str(file_path), data
    except json.JSONDecodeError as e:
        logger.error("Invalid JSON in file %s: %s", file_path, e)
        raise SpecLoaderError(f"Invalid JSON in file {file_path}: {e}") from e
    except UnicodeDecodeError as e:
        logger.error("File %s is not valid UTF-8: %s", file_path, e)
        raise SpecLoaderError(f"File {file_path} is not valid UTF-8: {e}") from e
    except OSError as e:
        logger.error("Error reading file %s: %s", file_path, e)
        raise SpecLoaderError(f"Error reading file {file_path}: {e}") from e


def load_spec_from_url(url: str, timeout: int = 30) -> tuple[str, Any]:
    """Load an entity-spec document from a URL.

    Args:
        url: URL to fetch the document from.
        timeout: Request timeout in seconds.

    Returns:
        Tuple of (source description, parsed document).

    Raises:
        SpecLoaderError: If URL is invalid, request fails, or response isn't valid JSON.
    """
    logger.debug("Loading entity spec from URL: %s", url)

    parsed_url = urlparse(url)
    if not all([parsed_url.scheme, parsed_url.netloc]):
        logger.error("Invalid URL format: %s", url)
        raise SpecLoaderError(f"Invalid URL: {url}")

    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()

        content_type = response.headers.get("content-type", "").lower()
        if "application/json" not in content_type and not url.endswith(".json"):
            logger.warning("URL %s does not have JSON content type: %s", url, content_type)

        data = response.json()
        logger.info("Loaded entity spec from %s", url)
        return url, data

    except requests.exceptions.Timeout as e:
        logger.error("Request timeout for URL: %s", url)
        raise SpecLoaderError(f"Request timeout for URL: {url}") from e
    except requests.exceptions.ConnectionError as e:
        logger.error("Connection error for URL %s: %s", url, e)
        raise SpecLoaderError(f"Connection error for URL: {url}") from e
    except requests.exceptions.HTTPError as e:
        logger.error("HTTP error %s for URL: %s", e.response.status_code, url)
        raise SpecLoaderError(
            f"HTTP error {e.response.status_code} for URL: {url}"
        ) from e
    except requests.exceptions.RequestException as e:
        logger.error("Request error for URL %s: %s", url, e)
        raise SpecLoaderError(f"Request error for URL {url}: {e}") from e
    except ValueError as e:
        # requests raises a ValueError subclass for undecodable bodies
        logger.error("Invalid JSON response from URL %s: %s", url, e)
        raise SpecLoaderError(f"Invalid JSON response from URL {url}: {e}") from e


def load_spec_from_stream(stream: TextIO | None = None) -> tuple[str, Any]:
    """Load an entity-spec document from a text stream (stdin by default)."""
    stream = stream or sys.stdin
    try:
        data = json.load(stream)
    except json.JSONDecodeError as e:
        logger.error("Invalid JSON on standard input: %s", e)
        raise SpecLoaderError(f"Invalid JSON on standard input: {e}") from e
    except UnicodeDecodeError as e:
        logger.error("Standard input is not valid UTF-8: %s", e)
        raise SpecLoaderError(f"Standard input is not valid UTF-8: {e}") from e
    logger.info("Loaded entity spec from standard input")
    return "<stdin>", data


def load_spec(
    file_path: str | Path | None = None,
    url: str | None = None,
    timeout: int = 30,
) -> tuple[str, Any]:
    """Load an entity-spec document from either a file or URL.

    Args:
        file_path: Path to local JSON file (mutually exclusive with url).
        url: URL to fetch JSON from (mutually exclusive with file_path).
        timeout: Request timeout in seconds (only used for URLs).

    Returns:
        Tuple of (source description, parsed document).

    Raises:
        SpecLoaderError: If neither or both parameters are provided, or loading fails.
        FileNotFoundError: If file doesn't exist.
    """
    if not file_path and not url:
        raise SpecLoaderError("Either file_path or url must be provided")

    if file_path and url:
        raise SpecLoaderError("Cannot specify both file_path and url")

    if file_path:
        return load_spec_from_file(file_path)
    return load_spec_from_url(url, timeout)
