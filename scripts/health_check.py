#!/usr/bin/env python3
"""
Health check for a running CivicPulse API and the providers it depends on
"""

import argparse
import asyncio
import json
import os
import sys
import time
from datetime import datetime
from typing import Any, Dict, List

import httpx

from civicpulse.config import Settings


class HealthChecker:
    def __init__(self, api_url: str, settings: Settings):
        api_url = api_url.rstrip("/")
        self.services = {
            "api": {"url": f"{api_url}/health", "critical": True},
            "search-index": {"url": f"{api_url}/api/v1/search/index", "critical": True},
            "congress.gov": {"url": settings.congress_base_url, "critical": True},
            "fec": {"url": f"{settings.fec_base_url}/", "critical": False},
            "lda": {"url": f"{settings.lda_base_url}/", "critical": False},
            "openstates": {"url": settings.openstates_base_url, "critical": False},
            "newsdata": {"url": settings.newsdata_base_url, "critical": False},
        }

    async def check_http_service(self, client: httpx.AsyncClient, service_name: str, url: str) -> Dict[str, Any]:
        """Check health of an HTTP service.

        Upstream providers answer unauthenticated requests with 401/403, which
        still proves they are reachable.
        """
        start_time = time.time()
        try:
            response = await client.get(url)
        except httpx.HTTPError as e:
            return {
                "service": service_name,
                "status": "error",
                "response_time": time.time() - start_time,
                "error": str(e) or e.__class__.__name__,
                "url": url,
            }

        reachable = response.status_code < 500
        content = response.text
        if len(content) > 200:
            content = content[:200] + "..."
        return {
            "service": service_name,
            "status": "healthy" if reachable else "unhealthy",
            "response_time": time.time() - start_time,
            "status_code": response.status_code,
            "url": url,
            "content": content,
        }

    async def check_all_services(self) -> List[Dict[str, Any]]:
        async with httpx.AsyncClient(timeout=10.0, follow_redirects=True) as client:
            return await asyncio.gather(
                *(self.check_http_service(client, name, config["url"]) for name, config in self.services.items())
            )

    def print_results(self, results: List[Dict[str, Any]]) -> int:
        print("\n🏥 CivicPulse Health Check")
        print(f"📅 {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        print("=" * 70)

        healthy_count = 0
        critical_healthy = 0
        critical_total = 0

        for result in results:
            is_critical = self.services.get(result["service"], {}).get("critical", False)
            if is_critical:
                critical_total += 1

            status_emoji = "✅" if result["status"] == "healthy" else "❌" if result["status"] == "unhealthy" else "⚠️"
            critical_marker = " (CRITICAL)" if is_critical else ""
            print(
                f"{status_emoji} {result['service'].ljust(15)} {result['status'].upper().ljust(10)} "
                f"{result['response_time']:.2f}s{critical_marker}"
            )

            if result["status"] == "healthy":
                healthy_count += 1
                if is_critical:
                    critical_healthy += 1
            elif result["status"] == "error":
                error_msg = result.get("error", "Unknown error")
                if len(error_msg) > 60:
                    error_msg = error_msg[:60] + "..."
                print(f"   Error: {error_msg}")

        print("\n" + "=" * 70)
        print(f"   Services: {healthy_count}/{len(results)} healthy")
        print(f"   Critical: {critical_healthy}/{critical_total} healthy")

        if critical_healthy == critical_total:
            print("🎉 System is healthy!")
            return 0
        print("⚠️  System has issues that need attention")
        return 1


async def main():
    parser = argparse.ArgumentParser(description="Check CivicPulse and its upstream providers")
    parser.add_argument("--api-url", default="http://localhost:8000")
    parser.add_argument("--report", default="logs/health_check.json")
    args = parser.parse_args()

    checker = HealthChecker(args.api_url, Settings.from_env())
    results = await checker.check_all_services()
    exit_code = checker.print_results(results)

    os.makedirs(os.path.dirname(args.report) or ".", exist_ok=True)
    with open(args.report, "w") as f:
        json.dump(
            {
                "timestamp": datetime.now().isoformat(),
                "services": results,
                "overall_status": "healthy" if exit_code == 0 else "unhealthy",
            },
            f,
            indent=2,
        )

    sys.exit(exit_code)


if __name__ == "__main__":
    asyncio.run(main())
