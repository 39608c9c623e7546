"""CLI utilities for developer workflows."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any, Mapping

from recall_sdk.operations import SDK_ENDPOINT_COVERAGE


HTTP_METHODS = {"get", "post", "put", "patch", "delete", "head", "options", "trace"}


def _unwrap(payload: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(payload, Mapping):
            return None
        payload = payload.get(key)
    return payload


def _load_openapi(path: Path) -> set[str]:
    payload = json.loads(path.read_text())
    if not isinstance(payload, Mapping):
        raise ValueError("OpenAPI document must be a JSON object")
    # Recall's reference pages wrap the schema under data.api.schema.
    if "paths" not in payload:
        payload = _unwrap(payload, "data", "api", "schema") or {}
    paths = payload.get("paths") if isinstance(payload, Mapping) else None
    if not isinstance(paths, Mapping):
        raise ValueError("OpenAPI document has no 'paths' object")
    discovered: set[str] = set()
    for path, operations in paths.items():
        if not isinstance(operations, Mapping):
            continue
        for method in operations:
            if not isinstance(method, str) or method.lower() not in HTTP_METHODS:
                continue
            discovered.add(f"{method.upper()} {path}")
    return discovered


def _diff_contracts(discovered: set[str], contract: dict[str, str]) -> tuple[list[str], list[str]]:
    expected = set(contract)
    missing = sorted(expected - discovered)
    extra = sorted(discovered - expected)
    return missing, extra


def _main() -> int:
    parser = argparse.ArgumentParser(
        description="Compare the SDK operation table with a Recall OpenAPI document.",
    )
    parser.add_argument("--openapi", required=True, type=Path)
    parser.add_argument(
        "--allow-extra",
        action="store_true",
        help="Do not fail when the document has endpoints the SDK does not cover.",
    )
    args = parser.parse_args()

    try:
        discovered = _load_openapi(args.openapi)
    except ValueError as exc:
        print(f"Cannot read {args.openapi}: {exc}")
        return 1
    missing, extra = _diff_contracts(discovered, SDK_ENDPOINT_COVERAGE)

    if missing:
        print("Missing endpoints in OpenAPI for covered SDK operations:")
        for endpoint in missing:
            operation_id = SDK_ENDPOINT_COVERAGE[endpoint]
            print(f"  - {endpoint} ({operation_id})")

    if extra:
        print("OpenAPI endpoints not represented in SDK operation table:")
        for endpoint in extra:
            print(f"  - {endpoint}")

    if missing or (extra and not args.allow_extra):
        print("Contract coverage check failed")
        return 1

    print("Contract coverage check passed")
    return 0


def main() -> None:
    raise SystemExit(_main())
