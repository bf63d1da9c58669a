# scripts/test/simulate_alert.py
"""
Send a portal-style emergency submission to the backend.
Resolves the emergency link first (as the portal page does), then posts.

Usage:
    python scripts/test/simulate_alert.py --token <emergency_link_id> --type danger
    python scripts/test/simulate_alert.py --token <id> --type contact --lat 5.34 --lng -4.02
    python scripts/test/simulate_alert.py --token <id> --type sos      # expect HTTP 400
"""

import argparse
import requests

BACKEND_URL = "http://127.0.0.1:8080/api/v1"


def main():
    parser = argparse.ArgumentParser(description="Simulate an emergency portal submission")
    parser.add_argument("--token", required=True, help="Site emergency link id")
    parser.add_argument("--type", default="danger", help="danger | contact (anything else is rejected)")
    parser.add_argument("--lat", type=float)
    parser.add_argument("--lng", type=float)
    parser.add_argument("--url", default=BACKEND_URL)
    parser.add_argument("--count", type=int, default=1, help="Number of submissions to send")
    args = parser.parse_args()

    resp = requests.get(f"{args.url}/emergency/sites/{args.token}", timeout=5)
    if resp.status_code != 200:
        print(f"❌ Invalid emergency link ({resp.status_code}): {resp.text}")
        return
    site = resp.json()
    print(f"🏢 {site['site_name']} (contact {site['contact_name']})")

    params = {"site_id": args.token, "type": args.type}
    if args.lat is not None and args.lng is not None:
        params.update(lat=args.lat, lng=args.lng)

    for i in range(args.count):
        try:
            r = requests.post(f"{args.url}/emergency", params=params, timeout=5)
            status = "✅" if r.ok else "❌"
            print(f"{status} [{i + 1}/{args.count}] {args.type} → HTTP {r.status_code}: {r.text}")
        except requests.exceptions.ConnectionError:
            print(f"❌ Cannot reach backend at {args.url}")
            return


if __name__ == "__main__":
    main()
