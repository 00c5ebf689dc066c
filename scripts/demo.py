#!/usr/bin/env python3
"""
Quick demo of the CivicPulse API.

Runs without any API keys: bill search and polarization fall back to the
built-in sample bills and the dashboard statistics use their mock values.
"""

from fastapi.testclient import TestClient

from civicpulse.config import Settings, configure_logging
from civicpulse.main import create_app


def demo_api():
    """Demo the API endpoints"""
    print("🚀 CivicPulse Demo")
    print("=" * 50)

    configure_logging("WARNING")
    settings = Settings(embedding_provider="hashing")

    with TestClient(create_app(settings=settings)) as client:
        print("1. Testing health endpoint...")
        response = client.get("/health")
        print(f"   Status: {response.status_code}")
        print(f"   Response: {response.json()}")

        print("\n2. Searching bills for 'border security'...")
        response = client.post("/api/v1/search", json={"query": "border security", "maxResults": 5})
        print(f"   Status: {response.status_code}")
        if response.status_code == 200:
            data = response.json()
            print(f"   Source: {data['source']} ({data['searchTime']}ms)")
            for bill in data["bills"]:
                print(f"   - {bill['id']}: {bill['title']} [{bill['provenance']}]")
        else:
            print(f"   Error: {response.text}")

        print("\n3. Testing an empty query...")
        response = client.post("/api/v1/search", json={"query": ""})
        print(f"   Status: {response.status_code} (expected 400)")

        print("\n4. Ranking polarizing bills...")
        response = client.get("/api/v1/bills/polarizing", params={"limit": 3})
        print(f"   Status: {response.status_code}")
        if response.status_code == 200:
            for bill in response.json()["bills"]:
                polarization = bill["polarization"]
                print(
                    f"   - {bill['title']}: D {polarization['democrat_support']:.0f}% / "
                    f"R {polarization['republican_support']:.0f}% ({polarization['controversy_level']})"
                )

        print("\n5. Lobbying stats...")
        response = client.get("/api/v1/stats/lobbying")
        data = response.json()
        print(f"   {data['formatted']} {data['change']} {data['timeframe']} (source: {data['source']})")

        print("\n6. Vector index...")
        print(f"   {client.get('/api/v1/search/index').json()}")

    print("\n✅ Demo completed!")
    print("\n📋 Next Steps:")
    print("   1. Copy .env.example to .env and add your API keys")
    print("   2. Start the server with 'civicpulse --port 8000'")
    print("   3. Check upstream connectivity with 'python scripts/health_check.py'")


if __name__ == "__main__":
    demo_api()
