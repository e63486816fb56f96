#!/usr/bin/env python3
"""
Report the configured Gemini key pool and optionally test each key.

Usage:
    python scripts/check_gemini_keys.py
    python scripts/check_gemini_keys.py --try-model gemini-2.0-flash

Reads GEMINI_API_KEY, GEMINI_API_KEY1..15 from .env. Keys are shown by
pool index only.
"""
import sys
import logging
import argparse
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

load_dotenv()

from plotdesk.config import settings
from plotdesk.services.gemini_proxy import GeminiProxy, GenerationError

logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

TEST_PAYLOAD = {"contents": [{"parts": [{"text": "Reply with the single word: ok"}]}]}


def main():
    parser = argparse.ArgumentParser(description="Check the Gemini API key pool")
    parser.add_argument(
        "--try-model",
        metavar="MODEL",
        help="Send a tiny generateContent request through every key with this model",
    )
    args = parser.parse_args()

    keys = settings.gemini_key_list
    if not keys:
        logger.error("No Gemini keys configured (GEMINI_API_KEY, GEMINI_API_KEY1..15)")
        sys.exit(1)

    print(f"Gemini key pool: {len(keys)} key(s)")
    if not args.try_model:
        return

    failures = 0
    for index, key in enumerate(keys):
        proxy = GeminiProxy(
            [key],
            base_url=settings.gemini_api_url,
            timeout=settings.gemini_timeout_seconds,
        )
        try:
            proxy.generate(args.try_model, TEST_PAYLOAD)
            print(f"  key {index}: ok")
        except GenerationError as e:
            failures += 1
            print(f"  key {index}: FAILED ({e.status_code}) {e.error}")
        finally:
            proxy.close()

    print(f"{len(keys) - failures}/{len(keys)} key(s) working")
    if failures:
        sys.exit(2)


if __name__ == "__main__":
    main()
