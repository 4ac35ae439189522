import asyncio

import pytest

from shortcuts.config import settings
from shortcuts.fetcher import FetchError, FetchResponse


def site_url(name):
    return settings.site_url_template.format(name=name)


def github_url(account):
    return settings.github_shortcuts_url_template.format(github=account)


def config_url(account):
    return settings.github_config_url_template.format(github=account)


class FakeFetcher:
    """In-memory fetcher: url -> YAML text, HTTP status int, or exception."""

    def __init__(self, documents=None):
        self.documents = dict(documents or {})
        self.calls = []

    async def fetch(self, url, reload=False):
        self.calls.append((url, reload))
        # Let other fetches interleave like real I/O would
        await asyncio.sleep(0)
        doc = self.documents.get(url)
        if doc is None:
            return FetchResponse(status=404, text="Not Found", url=url)
        if isinstance(doc, Exception):
            raise doc
        if isinstance(doc, int):
            return FetchResponse(status=doc, text="", url=url)
        return FetchResponse(status=200, text=doc, url=url)

    def urls(self):
        return [url for url, _ in self.calls]


O_YML = """
g 1:
  url: https://www.google.com/search?q={1:query}
  title: Google Web Search
  tags: [web-search]
g 0: https://www.google.com/
w 1:
  url: https://en.wikipedia.org/wiki/Special:Search?search={1}
  title: Wikipedia
x 1: https://o.example.com/{1}
"""

DE_YML = """
w 1:
  url: https://de.wikipedia.org/wiki/Special:Search?search={1}
  title: Wikipedia (DE)
db 2:
  url: https://reiseauskunft.bahn.de/?S=<from>&Z=<to>
  title: Deutsche Bahn
"""


@pytest.fixture
def fetcher():
    return FakeFetcher({
        site_url("o"): O_YML,
        site_url("de"): DE_YML,
    })


@pytest.fixture
def run():
    return asyncio.run
