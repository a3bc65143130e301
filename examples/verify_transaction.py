#!/usr/bin/env python3
"""
Verify a saved encode API response against an intent, offline.

Usage:
    python verify_transaction.py intent.json response.json

Without arguments, a built-in Optimism transfer is verified twice: once as
returned by the API and once with the recipient tampered in the summary.
"""
import argparse
import json
import logging
import sys

from txverify_sdk import VerificationEngine

RECIPIENT = "0x8bc6922eb94e4858efaf9f433c35bc241f69e8a6"

SAMPLE_INTENT = {
    "mode": "transfer",
    "recipientAddress": RECIPIENT,
    "amount": "4354153686633538",
}

SAMPLE_RESPONSE = {
    "chainId": "optimism",
    "transaction": {
        "data": {
            "mode": "transfer",
            "recipientAddress": RECIPIENT,
            "amount": "4354153686633538",
            "fees": "21131859000",
        },
        "encoded": [{
            "raw": {
                "format": "RLP",
                "value": "0x02ed0a818f830f4240830f5ac7825208948bc6922eb94e4858efaf9f433c35bc241f69e8a6"
                         "870f781467ca0c4280c0",
            },
        }],
    },
}


def print_result(title, result):
    print(f"== {title}: {'VALID' if result.is_valid else 'INVALID'}")
    for group in (result.critical_errors, result.errors, result.warnings):
        for error in group:
            print(f"   [{error.severity.value}] {error.code.value}: {error.message}")
            if error.recovery_strategy:
                print(f"      -> {error.recovery_strategy}")


def main():
    parser = argparse.ArgumentParser(description="Verify an encode API response against an intent.")
    parser.add_argument("intent", nargs="?", help="Path to the intent JSON")
    parser.add_argument("response", nargs="?", help="Path to the API response JSON")
    parser.add_argument("--json", action="store_true", help="Print the full result as JSON")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING)
    engine = VerificationEngine()

    if args.intent and args.response:
        with open(args.intent) as f:
            intent = json.load(f)
        with open(args.response) as f:
            response = json.load(f)
        result = engine.verify(intent, response)
        if args.json:
            print(json.dumps(result.model_dump(mode="json", by_alias=True), indent=2))
        else:
            print_result(args.response, result)
        return 0 if result.is_valid else 1

    print_result("honest response", engine.verify(SAMPLE_INTENT, SAMPLE_RESPONSE))

    # The API claims a different recipient than the user asked for
    tampered = json.loads(json.dumps(SAMPLE_RESPONSE))
    tampered["transaction"]["data"]["recipientAddress"] = "0xbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbb"
    print_result("tampered summary", engine.verify(SAMPLE_INTENT, tampered))
    return 0


if __name__ == "__main__":
    sys.exit(main())
