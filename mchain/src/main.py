"""
MChain - Main Entry Point

Command-line miner for a single-node proof-of-work chain.

Usage:
    mchain mine -b 5 -l 4 -d "MChain data"
    mchain verify
    mchain list
    mchain reset --yes
"""

import argparse
import logging
import sys
from typing import List, Optional

from .blockchain.exceptions import ChainError, InvalidArgument, StorageError
from .config import ChainConfig, DEFAULT_BLOCKS, DEFAULT_DATA
from .integration.chain_service import ChainService, create_chain_service
from .platform_check import UnsupportedPlatform, require_supported_platform


logger = logging.getLogger("mchain.cli")

EXIT_OK = 0
EXIT_PLATFORM = 1
EXIT_INVALID_ARGUMENT = 2
EXIT_INTEGRITY = 3
EXIT_STORAGE = 4
EXIT_INTERRUPTED = 130


def configure_logging(level: str) -> None:
    """Install a single stream handler on the mchain logger."""
    root = logging.getLogger("mchain")
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root.addHandler(handler)


def build_parser(config: ChainConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mchain",
        description="Mine blocks on Apple Silicon with dynamic PoW",
    )
    parser.add_argument("--data-dir", default=config.data_dir,
                        help=f"Directory for block records (default: {config.data_dir})")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable debug logging")
    parser.add_argument("--skip-platform-check", action="store_true",
                        default=config.skip_platform_check,
                        help="Do not require Apple Silicon")

    sub = parser.add_subparsers(dest="command", required=True)

    mine = sub.add_parser("mine", help="Mine new blocks on top of the stored chain")
    mine.add_argument("-b", "--blocks", type=int, default=DEFAULT_BLOCKS,
                      help="Number of blocks to mine")
    mine.add_argument("-l", "--difficulty", type=int, default=config.difficulty,
                      help="Starting difficulty (leading zero hex characters)")
    mine.add_argument("-d", "--data", default=DEFAULT_DATA,
                      help="Custom data")
    mine.add_argument("--ramp-every", type=int, default=0,
                      help="Raise difficulty by one every N blocks (0 keeps it flat)")

    verify = sub.add_parser("verify", help="Verify the stored chain")
    verify.add_argument("--difficulty", type=int, default=None,
                        help="Check every block against this difficulty "
                             "instead of the one it was mined with")

    sub.add_parser("list", help="List stored blocks")

    reset = sub.add_parser("reset", help="Delete all stored blocks")
    reset.add_argument("--yes", action="store_true",
                       help="Do not ask for confirmation")

    return parser


# ============================================================================
# Commands
# ============================================================================

def _cmd_mine(service: ChainService, args: argparse.Namespace) -> int:
    mined = service.mine(args.blocks, args.difficulty, args.data, args.ramp_every)
    print(f"Mined {len(mined)} block(s).")
    print("\nFinal Blockchain Summary:")
    for line in service.summary(service.list()):
        print(line)
    return EXIT_OK


def _cmd_verify(service: ChainService, args: argparse.Namespace) -> int:
    result = service.verify(args.difficulty)
    print(result)
    return EXIT_OK if result.valid else EXIT_INTEGRITY


def _cmd_list(service: ChainService, args: argparse.Namespace) -> int:
    blocks = service.list()
    if not blocks:
        print("No blocks stored.")
    for line in service.summary(blocks):
        print(line)
    return EXIT_OK


def _cmd_reset(service: ChainService, args: argparse.Namespace) -> int:
    if not args.yes:
        answer = input(f"Delete all blocks in {service.store.data_dir}? [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            print("Aborted.")
            return EXIT_OK
    removed = service.reset()
    print(f"Removed {removed} block(s).")
    return EXIT_OK


COMMANDS = {
    "mine": _cmd_mine,
    "verify": _cmd_verify,
    "list": _cmd_list,
    "reset": _cmd_reset,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for MChain."""
    try:
        config = ChainConfig.from_env()
    except InvalidArgument as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_INVALID_ARGUMENT

    args = build_parser(config).parse_args(argv)
    configure_logging("DEBUG" if args.verbose else config.log_level)

    if not args.skip_platform_check:
        try:
            require_supported_platform()
        except UnsupportedPlatform as e:
            print(e, file=sys.stderr)
            return EXIT_PLATFORM

    logger.debug("Running %s with data dir %s", args.command, args.data_dir)
    service = create_chain_service(args.data_dir)
    try:
        return COMMANDS[args.command](service, args)
    except InvalidArgument as e:
        print(f"Invalid argument: {e}", file=sys.stderr)
        return EXIT_INVALID_ARGUMENT
    except StorageError as e:
        print(f"Storage error: {e}", file=sys.stderr)
        return EXIT_STORAGE
    except ChainError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_INTEGRITY
    except KeyboardInterrupt:
        print("Interrupted.", file=sys.stderr)
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
