# scripts/firebase_encoder.py
"""Print a service account JSON file base64-encoded, ready for TENANTRY_FIREBASE_KEY."""
import base64
import sys


def encode_service_account(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return base64.b64encode(f.read().encode("utf-8")).decode("utf-8")


if __name__ == "__main__":
    if len(sys.argv) != 2:
        sys.exit("usage: python -m tenantry.scripts.firebase_encoder <service-account.json>")
    print(encode_service_account(sys.argv[1]))
