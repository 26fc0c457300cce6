"""Clean a source image reference into a safe path relative to the web root."""

import re

_LEADING_DOT_RE = re.compile(r"^\./")
_PARENT_RE = re.compile(r"(^|/)[^/]+/\.\./")
_LEADING_PARENT_RE = re.compile(r"^\.\./[^/]+/")


class UrlSanitizer:
    def __init__(self, base_url: str = ""):
        self.base_url = base_url.rstrip("/")

    def sanitize(self, raw: str) -> str:
        """Return a relative path without traversal segments, or '' if none is left.

        Idempotent: sanitizing the result again returns it unchanged.
        """
        url = (raw or "").replace("\\", "/")
        url = _LEADING_DOT_RE.sub("", url, count=1)
        while "/./" in url:
            url = url.replace("/./", "/")
        while _PARENT_RE.search(url):
            url = _PARENT_RE.sub(r"\1", url)
        url = _LEADING_PARENT_RE.sub("", url, count=1)
        url = url.split("#", 1)[0].split("?", 1)[0]

        if self.base_url and url.startswith(self.base_url + "/"):
            url = url[len(self.base_url):]
        url = url.lstrip("/")

        segments = [s for s in url.split("/") if s != "."]
        if ".." in segments:
            # traversal above the web root
            return ""
        return "/".join(segments)
