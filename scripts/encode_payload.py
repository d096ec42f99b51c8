"""Build an encrypted Ecwid admin payload for local testing.

Reads the payload JSON from stdin and prints the URL-safe base64 string Ecwid
would append to the admin iframe URL, encrypted with ECWID_CLIENT_SECRET from
the environment (or .env file).

Usage:
    echo '{"store_id": 1003, "access_token": "tok", "lang": "en"}' \\
      | uv run python -m scripts.encode_payload

    # Decode it back through the API:
    PAYLOAD=$(echo -n '{"store_id": 1003}' | uv run python -m scripts.encode_payload)
    curl -X POST http://localhost:8000/api/ecwid/decode-payload \\
      -H "Content-Type: application/json" \\
      -d "{\\"payload\\": \\"$PAYLOAD\\"}"
"""

import json
import os
import sys

from recs_api.core.config import settings
from recs_api.integrations.ecwid.payload import encode_payload


def main() -> None:
    if len(settings.ecwid_client_secret) < 16:
        print("ERROR: ECWID_CLIENT_SECRET is missing or shorter than 16 chars", file=sys.stderr)
        sys.exit(1)

    body = sys.stdin.buffer.read()
    if not body:
        print("ERROR: No input received on stdin", file=sys.stderr)
        sys.exit(1)

    try:
        data = json.loads(body)
    except json.JSONDecodeError as e:
        print(f"ERROR: stdin is not valid JSON: {e}", file=sys.stderr)
        sys.exit(1)

    print(encode_payload(data, os.urandom(16)), end="")


if __name__ == "__main__":
    main()
