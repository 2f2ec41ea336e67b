"""
In-memory release archives served through an httpx mock transport.
"""

import io
import tarfile
from typing import Dict, List

import httpx

RUN_SCRIPT = b"""#!/bin/sh
echo "args: $*"
exit 3
"""


def make_tarball(members: Dict[str, bytes]) -> bytes:
    """Build a gzipped tarball holding the given file names and contents."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for name, content in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            info.mode = 0o644
            tar.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


class ArchiveServer:
    """Serves archives by URL and records every request it receives."""

    def __init__(self):
        self.archives: Dict[str, bytes] = {}
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        content = self.archives.get(str(request.url))
        if content is None:
            return httpx.Response(404)
        if request.method == "HEAD":
            return httpx.Response(200, headers={"Content-Length": str(len(content))})
        return httpx.Response(200, content=content)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler), follow_redirects=True)
