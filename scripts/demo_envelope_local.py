#!/usr/bin/env python3
"""Demo: one signed request/response exchange between two local agents.

Runs entirely offline. Nothing is sent to Agentverse.

Optional env:
     FETCHLINK_DEMO_SEED   – seed phrase for the requesting agent
                             (defaults to a random identity)

Usage:
    python scripts/demo_envelope_local.py [question]
"""

from __future__ import annotations

import os
import sys

from fetchlink import Identity
from fetchlink.envelope import (
    create_envelope,
    create_error,
    create_response,
    deserialize_envelope,
    open_payload,
    serialize_envelope,
    sign_envelope,
    validate_envelope,
    verify_envelope,
)
from fetchlink.manifest import create_simple_protocol, format_protocol_info, get_model


def main() -> None:
    question = sys.argv[1] if len(sys.argv) > 1 else "What is the weather in Cambridge?"
    seed = os.environ.get("FETCHLINK_DEMO_SEED")
    alice = Identity.from_seed(seed) if seed else Identity.generate()
    bob = Identity.generate()

    protocol = create_simple_protocol(
        "weather", "1.0", {"question": "string"}, {"answer": "string"}
    )
    request_model = get_model(protocol, "Request")
    response_model = get_model(protocol, "Response")

    print(format_protocol_info(protocol))
    print()
    print(f"Requester        = {alice.address}")
    print(f"Responder        = {bob.address}")
    print()

    # 1) request
    print("--- request ---")
    request = sign_envelope(
        create_envelope(
            alice.address,
            bob.address,
            {"question": question},
            request_model.digest,
            protocol_digest=protocol.digest,
        ),
        alice,
    )
    wire = serialize_envelope(request)
    print(f"  session: {request['session']}")
    print(f"  bytes:   {len(wire)}")
    print()

    # 2) responder checks and answers
    print("--- response ---")
    received = deserialize_envelope(wire)
    result = validate_envelope(received)
    print(f"  valid:    {result.valid}  errors: {result.errors}")
    print(f"  verified: {verify_envelope(received, alice.public_key_bytes)}")
    print(f"  payload:  {open_payload(received)}")
    reply = sign_envelope(
        create_response(received, bob.address, {"answer": "Overcast"}, response_model.digest),
        bob,
    )
    print(f"  same session: {reply['session'] == request['session']}")
    print(f"  verified:     {verify_envelope(reply, bob)}")
    print()

    # 3) tampered copy is rejected
    print("--- tampered ---")
    forged = dict(reply, target=alice.address.replace("agent1", "agent1x", 1))
    print(f"  verified: {verify_envelope(forged, bob)}")
    print()

    # 4) error reply
    print("--- error ---")
    failure = create_error(received, bob.address, "RATE_LIMITED", "Try again later")
    print(f"  schema:  {failure['schemaDigest']}")
    print(f"  payload: {open_payload(failure)}")


if __name__ == "__main__":
    main()
