#!/usr/bin/env python3
"""Post-deploy health checks for the credit ledger API."""

from __future__ import annotations

import json
import os
import time
from typing import Any, Callable
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen


def fail(message: str) -> None:
    print(f"ERROR: {message}")
    raise SystemExit(1)


def load_json(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        raise RuntimeError("Endpoint did not return valid JSON.")


def normalize_base_url(base_url: str) -> str:
    url = (base_url or "").strip().rstrip("/")
    # Accept accidental values like ".../api" or ".../api/v1" in secrets.
    for suffix in ("/api/v1", "/api"):
        if url.endswith(suffix):
            return url[: -len(suffix)]
    return url


def _request_json(url: str, timeout: int) -> tuple[int, Any]:
    request = Request(url, headers={"User-Agent": "creditledger-healthcheck/1.0"})
    with urlopen(request, timeout=timeout) as response:
        body_text = response.read().decode("utf-8", "replace")
        status_code = response.getcode()
    return status_code, load_json(body_text)


def expect_status(expected: str) -> Callable[[Any], str]:
    def _check(data: Any) -> str:
        actual = data.get("status") if isinstance(data, dict) else None
        if actual != expected:
            raise RuntimeError(f"status mismatch: expected '{expected}', got '{actual}'.")
        return f"status={actual}"

    return _check


def expect_package_list(data: Any) -> str:
    if not isinstance(data, list):
        raise RuntimeError("credit package catalogue is not a JSON list.")
    if not data:
        # An empty catalogue means companies cannot top up.
        raise RuntimeError("no active credit packages are configured.")
    return f"{len(data)} active package(s)"


def check_endpoint(
    base_url: str,
    path: str,
    expect: Callable[[Any], str],
    *,
    timeout: int,
    retries: int,
    retry_delay: float,
) -> None:
    url = f"{base_url}{path}"
    last_error = None

    for attempt in range(retries + 1):
        try:
            status_code, data = _request_json(url, timeout=timeout)
            if status_code != 200:
                raise RuntimeError(f"returned HTTP {status_code}, expected 200.")
            print(f"OK: {path} -> {expect(data)}")
            return
        except HTTPError as exc:
            payload = exc.read().decode("utf-8", "replace")
            last_error = f"{path} returned HTTP {exc.code}. Body: {payload}"
        except (URLError, TimeoutError) as exc:
            last_error = f"{path} request failed: {exc}"
        except RuntimeError as exc:
            last_error = f"{path} {exc}"

        if attempt < retries:
            wait = retry_delay * (attempt + 1)
            print(f"WARN: {last_error} (retry {attempt + 1}/{retries} in {wait:.1f}s)")
            time.sleep(wait)

    fail(last_error or f"{path} failed")


def main() -> None:
    base_url = normalize_base_url(os.getenv("CREDITLEDGER_BASE_URL", ""))
    if not base_url:
        fail("Missing CREDITLEDGER_BASE_URL environment variable.")

    api_prefix = os.getenv("CREDITLEDGER_API_PREFIX", "/api/v1").rstrip("/")
    timeout = int(os.getenv("HEALTHCHECK_TIMEOUT_SECONDS", "25"))
    retries = int(os.getenv("HEALTHCHECK_RETRIES", "4"))
    retry_delay = float(os.getenv("HEALTHCHECK_RETRY_DELAY_SECONDS", "4"))

    print(
        f"Healthcheck config: base_url={base_url} timeout={timeout}s retries={retries} "
        f"retry_delay={retry_delay}s"
    )

    checks = [
        ("/healthz", expect_status("ok")),
        ("/readyz", expect_status("ready")),
        (f"{api_prefix}/credits/packages", expect_package_list),
    ]
    for path, expect in checks:
        check_endpoint(
            base_url,
            path,
            expect,
            timeout=timeout,
            retries=retries,
            retry_delay=retry_delay,
        )
    print("SUCCESS: all health checks passed.")


if __name__ == "__main__":
    main()
