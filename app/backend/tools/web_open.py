from __future__ import annotations

import logging
import re
import webbrowser
from typing import Callable
from urllib.parse import urlparse

from app.backend.tools.base import ChatTool


logger = logging.getLogger(__name__)

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)


def normalize_url(raw: str) -> str | None:
	url = (raw or "").strip().strip("\"'")
	if not url:
		return None
	if not _SCHEME_RE.match(url):
		if "." not in url or " " in url:
			return None
		url = f"https://{url}"
	parsed = urlparse(url)
	if not parsed.netloc or " " in parsed.netloc:
		return None
	return url


class WebOpenTool(ChatTool):
	name = "web_open"
	description = (
		"Open URLs and web pages in the user's default browser. Use when the user asks to open, "
		"launch, view, or navigate to a website. Input: a URL, ideally with http:// or https://."
	)
	argument_hint = "URL to open"

	def __init__(self, opener: Callable[[str], bool] | None = None):
		self._opener = opener or webbrowser.open

	async def invoke(self, argument: str) -> str:
		url = normalize_url(argument)
		if url is None:
			logger.warning("URL does not appear to be valid", extra={"url": argument})
			return "Please provide a valid URL with http:// or https:// protocol."
		try:
			opened = self._opener(url)
		except webbrowser.Error:
			logger.error("Failed to open web page", extra={"url": url}, exc_info=True)
			return "Failed to open the web page. Please try again or open the URL manually."
		if not opened:
			logger.warning("No browser available to open URL", extra={"url": url})
			return "Unable to open browser. No default browser application found on this system."
		logger.info("Opened web page", extra={"url": url})
		return f"Successfully opened {url} in your default browser."
