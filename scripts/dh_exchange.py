"""Run a local two-party DH exchange and check both sides agree."""

import os
import sys
import logging
import argparse

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from handshake.common import utils
from handshake.common.config import load_settings
from handshake.crypto import dh


def run_exchange(backend: str, key_bits: int, show_key: bool = False) -> bool:
    """
    Simulate client and server contexts exchanging public values.

    Args:
        backend: big-integer engine name
        key_bits: declared key length
        show_key: also print the derived AES-128 session key

    Returns:
        True if both sides computed the same secret
    """
    with dh.dh_init(key_bits, backend) as client, dh.dh_init(key_bits, backend) as server:
        width = client.group.byte_length

        print(f"[*] Generating client key pair ({backend} backend)...")
        dh.dh_generate_key(client)
        print(f"[*] Generating server key pair ({backend} backend)...")
        dh.dh_generate_key(server)

        client_public = dh.dh_get_public_key(client, width)
        server_public = dh.dh_get_public_key(server, width)
        print(f"[*] Client public value ({width} bytes):\n{utils.hex_dump(client_public)}")
        print(f"[*] Server public value ({width} bytes):\n{utils.hex_dump(server_public)}")

        client_secret = dh.dh_compute_shared_secret(client, server_public)
        server_secret = dh.dh_compute_shared_secret(server, client_public)

    if not utils.constant_time_compare(client_secret, server_secret):
        print("[-] Shared secrets differ!")
        return False

    print(f"[+] Shared secrets match ({len(client_secret)} bytes)")
    if show_key:
        session_key = dh.derive_session_key(client_secret)
        print(f"    Session key: {session_key.hex()}")
    return True


if __name__ == "__main__":
    settings = load_settings()

    parser = argparse.ArgumentParser(
        description="Run a local Diffie-Hellman exchange over the fixed 1024-bit group"
    )
    parser.add_argument(
        "--backend",
        choices=["native", "pyca"],
        default=settings.backend,
        help=f"Big-integer backend (default: {settings.backend})"
    )
    parser.add_argument(
        "--bits",
        type=int,
        default=settings.key_bits,
        help=f"Declared key length in bits (default: {settings.key_bits})"
    )
    parser.add_argument(
        "--show-key",
        action="store_true",
        help="Print the derived AES-128 session key"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format='%(asctime)s [%(levelname)s] %(message)s'
    )

    try:
        ok = run_exchange(args.backend, args.bits, args.show_key)
    except Exception as e:
        print(f"[-] Error: {e}", file=sys.stderr)
        sys.exit(1)
    sys.exit(0 if ok else 1)
