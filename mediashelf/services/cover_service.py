"""
Cover acquisition service.

Downloads a remote cover image, checks it and stores it under
``covers/`` in local storage. Acquisition is always best-effort: every
failure is logged and reported as ``None`` so item creation never depends
on a cover.

Entry points:
1. fetch_and_store(url, seed) - any remote image URL
2. fetch_cover_by_isbn(isbn) - cover URL from the ISBN resolver
3. fetch_cover_by_lccn(lccn) - cover URL from the LCCN resolver
"""

import io
import ipaddress
import logging
import re
import socket
import time
from typing import Optional
from urllib.parse import urlparse

import requests
from PIL import Image

from mediashelf.services.errors import CoverAcquisitionFailed, InvalidIdentifierFormat
from mediashelf.services.storage import LocalFileStorage

logger = logging.getLogger(__name__)


def resolve_host_addresses(hostname: str):
    """Return the IP strings a host name resolves to; empty when DNS fails."""
    try:
        infos = socket.getaddrinfo(hostname, None)
    except (socket.gaierror, UnicodeError):
        return []
    return [info[4][0] for info in infos]


class CoverService:
    """Service for downloading and storing item covers."""

    COVERS_DIR = "covers"
    MAX_COVER_SIZE = 5 * 1024 * 1024  # 5MB
    TIMEOUT = 10
    USER_AGENT = "Mozilla/5.0 (compatible; MediaShelf/1.0)"
    MAX_SEED_LENGTH = 50

    def __init__(
        self,
        storage: LocalFileStorage,
        isbn_resolver=None,
        lccn_resolver=None,
        http=None,
        timeout: float = TIMEOUT,
        max_size: int = MAX_COVER_SIZE,
        user_agent: str = USER_AGENT
    ):
        self.storage = storage
        self.isbn_resolver = isbn_resolver
        self.lccn_resolver = lccn_resolver
        self.http = http or requests
        self.timeout = timeout
        self.max_size = max_size
        self.user_agent = user_agent

    def fetch_and_store(self, cover_url: Optional[str], seed: Optional[str]) -> Optional[str]:
        """
        Download cover image from URL and save it in storage.

        Args:
            cover_url: remote image URL
            seed: identifier or title used to build the filename

        Returns:
            Relative path (``covers/<name>``) if successful, None otherwise
        """
        if not cover_url:
            return None
        if self.is_placeholder(cover_url):
            logger.info("CoverService: Cover URL is placeholder, ignoring")
            return None

        try:
            content, content_type = self._download(cover_url)
            self._verify_image(content, cover_url)
        except CoverAcquisitionFailed as e:
            logger.warning(f"CoverService: {e}")
            return None
        except requests.exceptions.Timeout:
            logger.warning(f"CoverService: Download timeout for {cover_url[:50]}...")
            return None
        except requests.exceptions.RequestException as e:
            logger.error(f"CoverService: Download error: {e}")
            return None

        relative_path = f"{self.COVERS_DIR}/{self.build_filename(seed, content_type)}"
        try:
            self.storage.save(relative_path, content)
        except OSError as e:
            logger.error(f"CoverService: Save error: {e}")
            return None

        logger.info(f"CoverService: Saved cover as {relative_path}")
        return relative_path

    def fetch_cover_by_isbn(self, isbn: Optional[str]) -> Optional[str]:
        """Resolve an ISBN and store its cover. Invalid ISBNs yield None."""
        if not isbn or self.isbn_resolver is None:
            return None
        try:
            metadata = self.isbn_resolver.resolve(isbn)
        except InvalidIdentifierFormat:
            logger.debug(f"CoverService: Skipping cover lookup for invalid ISBN {isbn!r}")
            return None
        if metadata is None or not metadata.cover_url:
            return None
        return self.fetch_and_store(metadata.cover_url, isbn)

    def fetch_cover_by_lccn(self, lccn: Optional[str]) -> Optional[str]:
        if not lccn or self.lccn_resolver is None:
            return None
        metadata = self.lccn_resolver.resolve(lccn)
        if metadata is None or not metadata.cover_url:
            return None
        return self.fetch_and_store(metadata.cover_url, lccn)

    def delete(self, relative_path: Optional[str]) -> bool:
        """Delete a stored cover. Missing files are not an error."""
        if not relative_path:
            return False
        return self.storage.delete(relative_path)

    def _download(self, cover_url: str):
        logger.info(f"CoverService: Downloading cover from {cover_url[:50]}...")

        if not self.is_allowed_url(cover_url):
            raise CoverAcquisitionFailed(f"URL not allowed: {cover_url}")

        with self.http.get(
            cover_url,
            stream=True,
            timeout=self.timeout,
            headers={"User-Agent": self.user_agent}
        ) as response:
            response.raise_for_status()

            # Re-validate final URL after redirects
            final_url = getattr(response, 'url', None) or cover_url
            if not self.is_allowed_url(final_url):
                raise CoverAcquisitionFailed(f"Redirected to disallowed URL: {final_url}")

            headers = getattr(response, 'headers', None) or {}
            content_length = headers.get('content-length')
            if content_length and content_length.isdigit() and int(content_length) > self.max_size:
                raise CoverAcquisitionFailed(f"File too large: {content_length} bytes")

            content = b''
            for chunk in response.iter_content(chunk_size=8192):
                content += chunk
                if len(content) > self.max_size:
                    raise CoverAcquisitionFailed("Downloaded content exceeds limit")

            if not content:
                raise CoverAcquisitionFailed(f"Empty response from {cover_url[:50]}")

            return content, headers.get('content-type', '')

    @staticmethod
    def _verify_image(content: bytes, cover_url: str) -> None:
        try:
            img = Image.open(io.BytesIO(content))
            img.verify()
        except Exception:
            raise CoverAcquisitionFailed(f"Downloaded content is not a valid image: {cover_url}")

    @staticmethod
    def extension_for_content_type(content_type: Optional[str]) -> str:
        content_type = (content_type or '').lower()
        if 'png' in content_type:
            return '.png'
        if 'gif' in content_type:
            return '.gif'
        if 'webp' in content_type:
            return '.webp'
        return '.jpg'

    @classmethod
    def sanitize_seed(cls, seed: Optional[str]) -> str:
        """Keep letters, digits and whitespace; collapse whitespace to '-', lowercase, cap length."""
        cleaned = re.sub(r'[^A-Za-z0-9\s]', '', seed or '')
        cleaned = re.sub(r'\s+', '-', cleaned.strip()).lower()
        return cleaned[:cls.MAX_SEED_LENGTH] or 'unknown'

    @classmethod
    def build_filename(cls, seed: Optional[str], content_type: Optional[str]) -> str:
        timestamp = int(time.time() * 1000)
        return f"cover-{cls.sanitize_seed(seed)}-{timestamp}{cls.extension_for_content_type(content_type)}"

    @staticmethod
    def is_placeholder(url: str) -> bool:
        """Return True if the URL points to a known "no cover" placeholder."""
        return 'no-cover' in url

    @staticmethod
    def is_allowed_url(url: str) -> bool:
        """
        Validate URL for security (prevent SSRF).

        Rejects non-HTTP schemes, malformed URLs, localhost and any host that
        is, or resolves to, a private, loopback, link-local or unspecified
        address. Hosts that do not resolve at all are allowed; the download
        itself will fail.

        Args:
            url: URL to validate

        Returns:
            True if URL is allowed, False otherwise
        """
        try:
            parsed_url = urlparse(url)
            hostname = (parsed_url.hostname or '').lower()
        except ValueError:
            return False

        if parsed_url.scheme not in ['http', 'https']:
            return False
        if not hostname or hostname in ['localhost', '0.0.0.0']:
            return False

        try:
            addresses = [ipaddress.ip_address(hostname)]
        except ValueError:
            addresses = []
            for address in resolve_host_addresses(hostname):
                try:
                    addresses.append(ipaddress.ip_address(address.split('%', 1)[0]))
                except ValueError:
                    continue

        return not any(CoverService._is_internal(ip) for ip in addresses)

    @staticmethod
    def _is_internal(ip) -> bool:
        return ip.is_private or ip.is_loopback or ip.is_link_local or ip.is_unspecified
