#!/usr/bin/env python3
"""
Request an encoded transaction from the encode API and verify it before signing.
"""
import os
import sys

from txverify_sdk import EncodeAPIClient
from txverify_sdk.exceptions import APIError


def main():
    """
    Encode a native transfer and refuse to continue if verification fails.

    Requires TXVERIFY_API_URL (and usually TXVERIFY_API_KEY) in the environment.
    """
    if not os.environ.get("TXVERIFY_API_URL"):
        print("ERROR: TXVERIFY_API_URL environment variable is required")
        return 1

    chain_id = os.environ.get("CHAIN_ID", "sepolia")
    intent = {
        "mode": "transfer",
        "senderAddress": os.environ.get("SENDER_ADDRESS", "0x2c7536e3605d9c16a7a3d7b1898e529396a65c23"),
        "recipientAddress": os.environ.get("RECIPIENT_ADDRESS", "0x8bc6922eb94e4858efaf9f433c35bc241f69e8a6"),
        "amount": os.environ.get("AMOUNT", "1000000000000000"),
    }

    client = EncodeAPIClient()
    reachable, message = client.test_connection()
    if not reachable:
        print(f"Encode API is not reachable: {message}")
        return 1

    try:
        result = client.encode_and_verify(chain_id, intent)
    except APIError as e:
        print(f"Encode API call failed: {e}")
        return 1

    if not result.is_valid:
        print("Verification FAILED, do not sign this transaction:")
        for error in result.critical_errors + result.errors:
            print(f"  {error.code.value}: {error.message}")
        return 2

    for warning in result.warnings:
        print(f"Warning: {warning.code.value}: {warning.message}")
    raw = result.decoded_data.raw
    if raw is not None:
        print(f"Verified {raw.mode.value} of {raw.amount} to {raw.recipient_address} (fee {raw.fee})")
    else:
        print("API data matches the intent (no decodable payload)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
