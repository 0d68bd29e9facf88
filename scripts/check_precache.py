from __future__ import annotations

import argparse
import sys
from urllib.parse import urljoin

import httpx

from offline_gateway.core.config import settings
from offline_gateway.core.precache import get_precache_manifest


def _check(client: httpx.Client, url: str) -> str | None:
    try:
        response = client.get(url)
    except httpx.HTTPError as exc:
        return str(exc)
    if response.status_code < 200 or response.status_code >= 300:
        return f"HTTP {response.status_code}"
    return None


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Fetch every precache manifest URL and report the ones that would abort an install."
    )
    parser.add_argument("--origin", default=settings.upstream_origin, help="Origin relative entries resolve against")
    parser.add_argument("--manifest", default=None, help="Path to a precache YAML manifest")
    parser.add_argument("--timeout", type=float, default=settings.network_timeout_s, help="Per-request timeout")
    args = parser.parse_args()

    urls = get_precache_manifest(args.manifest)
    failures = []
    with httpx.Client(timeout=args.timeout, follow_redirects=True) as client:
        for entry in urls:
            url = urljoin(args.origin.rstrip("/") + "/", entry)
            error = _check(client, url)
            status = "ok" if error is None else f"FAIL ({error})"
            print(f"{status:>10}  {url}")
            if error is not None:
                failures.append(url)

    print(f"\n{len(urls) - len(failures)}/{len(urls)} assets reachable")
    if failures:
        sys.exit(1)


if __name__ == "__main__":
    main()
