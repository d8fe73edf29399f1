#!/usr/bin/env python3
"""
Script to trigger bulk reconciliation for one or more organizations
"""

import asyncio
import sys

import httpx

API_BASE = "http://localhost:8000/api/v1"


async def run_bulk_match(organization_ids):
    """Run bulk match for each organization and print throughput"""
    async with httpx.AsyncClient(timeout=None) as client:
        for organization_id in organization_ids:
            response = await client.post(
                f"{API_BASE}/matching/bulk-match", json={"organization_id": organization_id}
            )
            if response.status_code != 200:
                print(f"❌ {organization_id}: {response.status_code} {response.text}")
                continue

            result = response.json()
            print(
                f"✅ {organization_id}: {result['matches_created']} matches in "
                f"{result['duration_seconds']:.2f}s ({result['matches_per_second']:.2f}/s), "
                f"{result['purged_matches']} purged"
            )


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: run_bulk_match.py ORGANIZATION_ID [ORGANIZATION_ID ...]")
        sys.exit(1)
    asyncio.run(run_bulk_match(sys.argv[1:]))
