"""
main.py

Replays recorded software banners through the tracker and prints the
resulting inventory.

Input is tab-separated, one banner per line:

    orig_h  resp_h  side  category  banner

``side`` is ``client`` or ``server`` and picks which endpoint runs the
software. Blank lines and lines starting with ``#`` are ignored.
"""

import argparse
import sys
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from tabulate import tabulate
from tqdm import tqdm
from colorama import Fore, Style, init as colorama_init

from analyzer.diff import ChangeDetector
from banner import (
    BannerParser,
    Connection,
    Observation,
    SoftwareCategory,
    format_version,
)
from logger.storage import StorageEngine
from tracker import ScopePolicy, SoftwareRegistry, SoftwareTracker
from utils import app_logger, config, LoggerSetup

colorama_init(autoreset=True)


class ReplayLineError(ValueError):
    """Raised when a replay line cannot be turned into an observation."""


def setup_argument_parser() -> argparse.ArgumentParser:
    """Configure command-line argument parser."""
    parser = argparse.ArgumentParser(
        description="BannerWatch - Passive Software Inventory and Version Change Tracking",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s -i banners.tsv                         # Replay banners, local hosts only
  %(prog)s -i banners.tsv --policy all_hosts      # Track every host
  %(prog)s -i banners.tsv --interesting SSH Apache
  %(prog)s --list-categories                      # Show software categories
        """
    )
    
    parser.add_argument(
        "-i", "--input",
        type=str,
        help="Tab-separated banner file to replay ('-' for stdin)"
    )
    
    parser.add_argument(
        "--db",
        type=str,
        default=config.get("paths.database", "software.db"),
        help="SQLite database for the software log and notices"
    )
    
    parser.add_argument(
        "--policy",
        type=str,
        default=config.get("tracking.asset_tracking", "local_hosts"),
        choices=[p.value for p in ScopePolicy],
        help="Which hosts to track (default from config.yaml)"
    )
    
    parser.add_argument(
        "--interesting",
        nargs="*",
        default=None,
        metavar="NAME",
        help="Software names whose version changes raise notices"
    )
    
    parser.add_argument(
        "--list-categories",
        action="store_true",
        help="List software categories and exit"
    )
    
    parser.add_argument(
        "--no-inventory",
        action="store_true",
        help="Skip the inventory table after replay"
    )
    
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )
    
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress non-essential output"
    )
    
    return parser


def print_header(title: str, quiet: bool = False) -> None:
    """Print a formatted section header with color."""
    if not quiet:
        print(f"\n{Fore.CYAN}{'=' * 60}")
        print(f"{title}")
        print(f"{'=' * 60}{Style.RESET_ALL}")


def list_categories() -> None:
    print(f"\n{Fore.CYAN}Software Categories:")
    print("=" * 60)
    
    for category in SoftwareCategory:
        print(f"  {Fore.YELLOW}{category.value}{Style.RESET_ALL}")
    
    print(f"{'=' * 60}{Style.RESET_ALL}")


def parse_replay_line(line: str, parser: BannerParser) -> Tuple[Connection, Observation]:
    """
    Turn one replay line into the connection and observation an analyzer would report.

    Raises:
        ReplayLineError: if the line has too few fields, an invalid address or side.
    """
    fields = line.rstrip("\r\n").split("\t", 4)
    if len(fields) != 5:
        raise ReplayLineError(f"expected 5 tab-separated fields, got {len(fields)}")

    orig_h, resp_h, side, category, banner = fields
    side = side.strip().lower()
    if side not in ("client", "server"):
        raise ReplayLineError(f"side must be 'client' or 'server', got {side!r}")

    try:
        connection = Connection.create(orig_h, resp_h)
    except ValueError as e:
        raise ReplayLineError(str(e))

    host = connection.orig_h if side == "client" else connection.resp_h
    observation = parser.parse(banner).with_host(
        host,
        software_category=SoftwareCategory.from_name(category),
    )
    return connection, observation


def iter_lines(source: str) -> Iterator[Tuple[int, str]]:
    """Yield (line number, text) for every non-comment line of ``source``."""
    if source == "-":
        handle = sys.stdin
    else:
        handle = open(source, "r", encoding="utf-8")
    
    try:
        for number, line in enumerate(handle, start=1):
            if not line.strip() or line.lstrip().startswith("#"):
                continue
            yield number, line
    finally:
        if handle is not sys.stdin:
            handle.close()


def replay(
    source: str,
    tracker: SoftwareTracker,
    quiet: bool = False,
) -> Tuple[int, int, int]:
    """
    Feed every line of ``source`` to ``tracker``.

    Returns:
        (accepted, out_of_scope, malformed) line counts.
    """
    parser = BannerParser()
    accepted = out_of_scope = malformed = 0

    for number, line in tqdm(
        iter_lines(source),
        desc=f"{Fore.CYAN}Replaying{Style.RESET_ALL}",
        unit="banner",
        disable=quiet,
    ):
        try:
            connection, observation = parse_replay_line(line, parser)
        except ReplayLineError as e:
            app_logger.warning(f"Skipping line {number}: {e}")
            malformed += 1
            continue

        if tracker.found(connection, observation):
            accepted += 1
        else:
            out_of_scope += 1

    return accepted, out_of_scope, malformed


def inventory_rows(registry: SoftwareRegistry) -> List[List[str]]:
    return [
        [
            str(obs.host),
            obs.name or "<unparsed>",
            format_version(obs.version),
            obs.software_category.value,
            obs.raw_unparsed_version,
        ]
        for obs in registry.inventory()
    ]


def main(argv: Optional[List[str]] = None) -> int:
    """Main execution function."""
    parser = setup_argument_parser()
    args = parser.parse_args(argv)
    
    if args.list_categories:
        list_categories()
        return 0
    
    if not args.input:
        parser.error("--input is required unless --list-categories is given")
    
    if args.verbose:
        LoggerSetup.set_level("DEBUG")
    elif args.quiet:
        LoggerSetup.set_level("WARNING")
    
    quiet = args.quiet
    
    if args.input != "-" and not Path(args.input).is_file():
        app_logger.error(f"Input file not found: {args.input}")
        if not quiet:
            print(f"\n{Fore.RED}[!] Input file not found:{Style.RESET_ALL} {args.input}")
        return 1
    
    try:
        app_logger.info("=== BannerWatch Started ===")
        
        storage = StorageEngine(args.db)
        registry = SoftwareRegistry(
            storage,
            detector=ChangeDetector(args.interesting) if args.interesting is not None else None,
        )
        tracker = SoftwareTracker(
            registry,
            policy=ScopePolicy.from_name(args.policy),
        )
        notices_before = len(storage.get_notices())
        
        print_header("Software Replay", quiet)
        
        with tracker:
            accepted, out_of_scope, malformed = replay(args.input, tracker, quiet)
        
        notices = storage.get_notices()[notices_before:]
        
        if not quiet:
            print(f"\n{Fore.GREEN}[+]{Style.RESET_ALL} Accepted      : {accepted}")
            print(f"{Fore.GREEN}[+]{Style.RESET_ALL} Out of scope  : {out_of_scope}")
            print(f"{Fore.GREEN}[+]{Style.RESET_ALL} Malformed     : {malformed}")
            print(f"{Fore.GREEN}[+]{Style.RESET_ALL} Hosts tracked : {len(registry)}")
        
        print_header("Version Change Notices", quiet)
        
        if not quiet:
            if not notices:
                print("No version changes detected.")
            for notice in notices:
                print(f"  {Fore.YELLOW}[!]{Style.RESET_ALL} {notice['msg']}")
        
        if not args.no_inventory and not quiet:
            print_header("Software Inventory", quiet)
            rows = inventory_rows(registry)
            if not rows:
                print("No software tracked.")
            else:
                print(tabulate(
                    rows,
                    headers=["Host", "Software", "Version", "Category", "Banner"],
                    tablefmt="grid",
                ))
        
        app_logger.info("=== BannerWatch Completed Successfully ===")
        return 0
    
    except KeyboardInterrupt:
        app_logger.warning("Replay interrupted by user")
        if not quiet:
            print(f"\n\n{Fore.YELLOW}[!] Replay interrupted by user{Style.RESET_ALL}")
        return 130
    
    except Exception as e:
        app_logger.error(f"Unexpected error: {e}", exc_info=True)
        if not quiet:
            print(f"\n{Fore.RED}[!] Error:{Style.RESET_ALL} {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
