#!/usr/bin/env python3
"""Post a candidate payload to a running service's /webhook endpoint."""

import argparse
import json
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

from pathlib import Path

import httpx

from candidate_sync.config import settings

SAMPLE_PAYLOAD = {
    "full_name_uzbek": "Ali Valiyev",
    "phone_number_uzbek": "901234567",
    "age_uzbek": "27",
    "city_uzbek": "Toshkent",
    "degree": "Bakalavr",
    "position_uz": "HR Generalist",
    "username": '<a href="https://t.me/ali_valiyev">@ali_valiyev</a>',
    "resume": "AgACAgIAAxkBAAgoldoesnotexist1234567890",
    "phase2_q_1": "Men jamoada ishlashni yaxshi ko'raman",
}


def replay(url: str, payload: dict, secret: str | None) -> int:
    headers = {"X-Webhook-Secret": secret} if secret else {}
    resp = httpx.post(url, json=payload, headers=headers, timeout=60.0)
    print(f"HTTP {resp.status_code}")
    print(json.dumps(resp.json(), indent=2, ensure_ascii=False))
    return 0 if resp.status_code == 200 else 1


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--url", default=f"{settings.public_base_url.rstrip('/')}/webhook")
    parser.add_argument("--payload", type=Path, help="JSON file with the payload (default: built-in sample)")
    parser.add_argument("--secret", default=settings.webhook_secret or None)
    args = parser.parse_args()

    payload = json.loads(args.payload.read_text(encoding="utf-8")) if args.payload else SAMPLE_PAYLOAD
    return replay(args.url, payload, args.secret)


if __name__ == "__main__":
    sys.exit(main())
