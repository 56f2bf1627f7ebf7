import argparse
import sys

from arcade_oracle import canonical
from arcade_oracle.attestation import AttestationSigner, verify
from arcade_oracle.errors import ArcadeError
from arcade_oracle.load_secrets import load_settings


def get_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Outcome attestation tools")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("address", help="Print the signer address derived from SIGNER_PRIVATE_KEY")

    verify_parser = subparsers.add_parser("verify", help="Check an attestation against its fields")
    verify_parser.add_argument("game", choices=["dice", "tower", "crash"])
    verify_parser.add_argument("--signer", type=str, help="Expected signer address", required=True)
    verify_parser.add_argument("--signature", type=str, help="0x-hex signature", required=True)
    verify_parser.add_argument("--player", type=str, help="Player address", required=True)
    verify_parser.add_argument("--nonce", type=int, help="Bet nonce", required=True)
    verify_parser.add_argument("--target", type=int, help="Dice target")
    verify_parser.add_argument("--bet-under", action="store_true", help="Dice bet was under")
    verify_parser.add_argument("--result", type=int, help="Dice result")
    verify_parser.add_argument("--row", type=int, help="Tower row")
    verify_parser.add_argument("--death-tile", type=int, help="Tower death tile")
    verify_parser.add_argument("--crash-point", type=int, help="Crash point in basis points")
    return parser


def build_message(args: argparse.Namespace) -> bytes:
    if args.game == "dice":
        return canonical.dice_message(args.player, args.nonce, args.target, args.bet_under, args.result)
    if args.game == "tower":
        return canonical.tower_message(args.player, args.nonce, args.row, args.death_tile)
    return canonical.crash_message(args.player, args.nonce, args.crash_point)


def main(argv=None) -> int:
    args = get_parser().parse_args(argv)
    try:
        if args.command == "address":
            print(AttestationSigner(load_settings().signer_private_key).address)
            return 0
        valid = verify(build_message(args), args.signature, args.signer)
    except ArcadeError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    print("valid" if valid else "invalid")
    return 0 if valid else 1


if __name__ == "__main__":
    sys.exit(main())
