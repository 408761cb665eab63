"""Send a set of demo queries to a running Confidence Router and print how each was routed.

Usage:
    1. Start the server:   confidence-router   (or python -m confidence_router.main)
    2. Run the demo:       python scripts/run_demo.py [--base-url URL] [--output PATH]
"""

from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path

import httpx

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_TIMEOUT = 30.0

DEMO_QUERIES: list[dict] = [
    {"query": "What time is it?"},
    {"query": "How do I set up Azure AD authentication in Node.js?"},
    {"query": "URGENT: production database is down, how do I fail over to the replica?"},
    {
        "query": (
            "How should we configure the ingress controller and also optimize the "
            "autoscaler thresholds for a multi-region cluster?"
        )
    },
    {"query": "What time is it?"},  # served from cache
]


def print_header(title: str) -> None:
    print(f"\n{'=' * 64}")
    print(f"  {title}")
    print(f"{'=' * 64}")


def print_route(request: dict, data: dict) -> None:
    debug = data.get("debug") or {}
    print(f"\n  Q: {request['query']}")
    print(f"     strategy={debug.get('strategy', '?'):<28} source={data['source']}")
    print(f"     confidence={data['confidence']:<3} reasons={', '.join(data.get('reasons', []))}")
    for execution in debug.get("executions", []):
        print(
            f"       - {execution['source']:<8} {execution['status']:<9} "
            f"conf={execution.get('confidence')} {execution['latency_ms']:.0f}ms"
        )
    if data.get("warning"):
        print(f"     warning: {data['warning']}")
    for alt in data.get("alternatives", []):
        print(f"     alt: {alt['source']} ({alt['confidence']})")


def print_metrics(metrics: dict) -> None:
    print_header("ROUTER METRICS")
    print(f"  Total queries:        {metrics['total_queries']}")
    print(f"  Cache hit rate:       {metrics['cache_hit_rate']:.1%}")
    print(f"  Avg confidence:       {metrics['avg_confidence']:.1f}")
    print(f"  Avg latency:          {metrics['avg_latency_ms']:.0f} ms")
    print(f"  Strategy usage:       {metrics['strategy_usage']}")
    print(f"  Stopped at:           {metrics['stopped_at']}")
    print(f"  Conflicts:            {metrics['conflicts']}")


async def main(base_url: str, output_path: Path | None) -> None:
    print(f"Routing {len(DEMO_QUERIES)} demo queries through {base_url} ...")
    responses: list[dict] = []

    async with httpx.AsyncClient(base_url=base_url, timeout=DEFAULT_TIMEOUT) as client:
        print_header("ROUTED QUERIES")
        for request in DEMO_QUERIES:
            try:
                resp = await client.post("/route", json=request)
                resp.raise_for_status()
            except httpx.HTTPError as e:
                print(f"\n  Q: {request['query']}\n     ERROR: {e}")
                continue
            data = resp.json()
            responses.append(data)
            print_route(request, data)

        metrics_resp = await client.get("/metrics")
        metrics_resp.raise_for_status()
        metrics = metrics_resp.json()
        print_metrics(metrics)

    if output_path is not None:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w") as f:
            json.dump({"metrics": metrics, "responses": responses}, f, indent=2, default=str)
        print(f"\nRaw responses saved to {output_path}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run the confidence router demo")
    parser.add_argument(
        "--base-url",
        default=DEFAULT_BASE_URL,
        help=f"Base URL of the running server (default: {DEFAULT_BASE_URL})",
    )
    parser.add_argument("--output", default=None, help="Optional path to save raw responses")
    args = parser.parse_args()
    asyncio.run(main(args.base_url, Path(args.output) if args.output else None))
