#!/usr/bin/env python3
"""
envelope – versioned environment variables in a single local file

The store is one file (`.envelope` in the working directory, or $ENVELOPE_PATH).
While unlocked it is a plain SQLite database holding an append-only log of
(env, key, value, created_at) rows; a NULL value marks the key inactive. The
newest row of each (env, key) is its current value, so every change can be
listed with `history` and undone with `revert`.

Locked file layout (big-endian):
    magic     : 12 bytes  -> 4c 50 3c a6 "ENVELOPE"
    version   : 1 byte    -> 0x01
    salt      : 16 bytes
    nonce     : 24 bytes
    ciphertext: remaining bytes (XChaCha20-Poly1305 over the whole database,
                with magic || version as associated data)

Commands:
  init                     Create an empty envelope
  lock / unlock            Encrypt / decrypt the file in place
  add ENV KEY [VALUE]      Set a variable
  list [ENV]               Environments, or the variables of one (-p table, --shell FMT)
  delete [-e ENV] [-k KEY] Soft-delete a variable, a key everywhere or a whole environment
  drop ENV                 Remove an environment and its history
  duplicate SRC TGT        Copy an environment
  sync SRC TGT [-o]        Copy missing (or all, with -o) variables
  diff ENV1 ENV2           Compare two environments
  history ENV KEY          Every change of a variable
  revert ENV KEY           Undo the last change of a variable
  edit ENV                 Edit in $ENVELOPE_EDITOR / $GIT_EDITOR / vi
  import ENV FILE          Read a dotenv file
  export ENV [-o FILE]     Write a dotenv file
  run ENV [-i] -- CMD      Run CMD with the environment injected
  check                    Environments whose variables all match the current shell

Security choices:
  - AEAD: XChaCha20-Poly1305 (libsodium via PyNaCl)
  - Key: Argon2id via argon2-cffi low-level API, 32 bytes, fresh salt on every lock
"""
import logging
import sys

from typing import List, Optional

from envelope.errors import EnvelopeError
from envelope.ui.cli import build_parser
from envelope.utils.core import print_from_stdin


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.cmd is None:
        if sys.stdin.isatty():
            parser.print_help()
            return 1
        print_from_stdin()
        return 0

    try:
        status = args.func(args)
    except (EnvelopeError, OSError) as e:
        print(f"[!] {e}", file=sys.stderr)
        return 1
    return status or 0


if __name__ == "__main__":
    sys.exit(main())
