"""Static storefront pages and the cache-first service worker."""

import json
from pathlib import Path
from typing import Iterable, Optional

from fastapi.responses import FileResponse, Response

INDEX_PAGE = "index.html"
DELIVERY_PAGE = "delivery.html"
SERVICE_WORKER_MEDIA_TYPE = "application/javascript"

_SERVICE_WORKER_TEMPLATE = """\
const CACHE_NAME = {cache_name};
const urlsToCache = {assets};

self.addEventListener('install', e => {{
  e.waitUntil(
    caches.open(CACHE_NAME).then(cache => cache.addAll(urlsToCache))
  );
}});

self.addEventListener('fetch', e => {{
  e.respondWith(
    caches.match(e.request).then(response => {{
      return response || fetch(e.request);
    }})
  );
}});
"""


def render_service_worker(cache_name: str, assets: Iterable[str]) -> str:
    """Render the service worker script.

    The worker precaches ``assets`` under ``cache_name`` on install and answers every fetch from the cache,
    falling back to the network. Old caches are never cleaned up; a new cache name is the only way to refresh.
    """
    return _SERVICE_WORKER_TEMPLATE.format(
        cache_name=json.dumps(cache_name),
        assets=json.dumps(list(assets), indent=2),
    )


def service_worker_response(cache_name: str, assets: Iterable[str]) -> Response:
    return Response(
        content=render_service_worker(cache_name, assets),
        media_type=SERVICE_WORKER_MEDIA_TYPE,
        headers={"Cache-Control": "no-cache"},
    )


def resolve_static_path(static_dir: str | Path, request_path: str) -> Optional[Path]:
    """Map a URL path onto a regular file inside ``static_dir``.

    Returns None for directories, missing files and any path that escapes ``static_dir``.
    """
    root = Path(static_dir).resolve()
    relative = request_path.lstrip("/")
    if not relative:
        return None

    candidate = (root / relative).resolve()
    if not candidate.is_relative_to(root) or not candidate.is_file():
        return None
    return candidate


def is_api_path(request_path: str) -> bool:
    path = "/" + request_path.lstrip("/")
    return path == "/api" or path.startswith("/api/")


def page_response(static_dir: str | Path, page: str) -> FileResponse:
    return FileResponse(Path(static_dir) / page)
