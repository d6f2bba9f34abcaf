"""HTTP client module for dsc.

:class:`DocspellClient` wraps :mod:`httpx` with credential injection,
dry-run mode and error mapping; :mod:`dsc.client.api` holds one function
per Docspell endpoint the commands use.

Example::

    from dsc.client import DocspellClient, api

    with DocspellClient(config.docspell_url) as client:
        info = api.version(client)
"""

from dsc.client import api
from dsc.client.sync_client import DocspellClient

__all__ = ["DocspellClient", "api"]
