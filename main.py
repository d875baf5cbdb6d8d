"""
Command line entry point for the booking engine.

Runs against the built-in fallback catalog by default, so it works with
no backend at all. Pass ``--live`` to read the catalog from the backend
configured in the environment.

Usage:
    python main.py catalog
    python main.py quote --service residential-fallback --frequency weekly-fallback --extra bedroom-residential-fallback=2
    python main.py check-postal 12345
    python main.py --live catalog
"""

import argparse
import asyncio
import sys
from typing import Optional

from booking_engine.config import settings
from booking_engine.engine import BookingEngine
from booking_engine.schemas.booking_schema import OTHER_OPTION_ID, BookingDraft, SelectedExtra
from booking_engine.tools.catalog import FALLBACK_CATALOG, CatalogSnapshot, describe_catalog
from booking_engine.tools.pricing import build_quote
from booking_engine.tools.service_areas import validate_postal_code
from booking_engine.utils import format_currency


async def _load_snapshot(live: bool) -> CatalogSnapshot:
    if not live:
        return FALLBACK_CATALOG
    async with BookingEngine.init(settings) as engine:
        snapshot = await engine.catalog.load()
        if engine.catalog.using_fallback:
            print("Warning: backend unavailable, showing the fallback catalog", file=sys.stderr)
        return snapshot


def _parse_extra(raw: str) -> SelectedExtra:
    option_id, _, quantity = raw.partition("=")
    try:
        return SelectedExtra(option_id=option_id.strip(), quantity=int(quantity or "1"))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid add-on {raw!r}, expected ID=QTY") from None


def _cmd_catalog(snapshot: CatalogSnapshot) -> int:
    currency = settings.pricing.currency
    for service in describe_catalog(snapshot):
        print(f"{service['name']} [{service['id']}]  {format_currency(service['base_price'], currency)}")
        for option in service["options"]:
            print(f"    + {option['name']} [{option['id']}]  "
                  f"{format_currency(option['price_per_unit'], currency)} each")
    print("\nFrequencies:")
    for frequency in snapshot.frequencies:
        print(f"    {frequency.label} [{frequency.id}]  {frequency.discount_percentage:g}% off")
    return 0


def _cmd_quote(snapshot: CatalogSnapshot, args: argparse.Namespace) -> int:
    if not any(st.id == args.service for st in snapshot.service_types):
        print(f"Unknown service type: {args.service}", file=sys.stderr)
        return 1
    offered = {o.id for o in snapshot.options if o.service_type_id == args.service}
    foreign = [
        e.option_id for e in args.extra or []
        if e.option_id != OTHER_OPTION_ID and e.option_id not in offered
    ]
    if foreign:
        print(f"Add-ons not offered for {args.service}: {', '.join(foreign)}", file=sys.stderr)
        return 1
    draft = BookingDraft(
        service_type_id=args.service,
        frequency_id=args.frequency or "",
        selected_extras=args.extra or [],
    )
    quote = build_quote(
        draft,
        snapshot.service_types,
        snapshot.frequencies,
        snapshot.options,
        tax_rate=settings.pricing.tax_rate,
        currency=settings.pricing.currency,
    )
    print("\n".join(quote.summary_lines()))
    return 0


def _cmd_check_postal(snapshot: CatalogSnapshot, args: argparse.Namespace) -> int:
    result = validate_postal_code(args.code, snapshot.service_areas)
    if not result.validated:
        print("No postal code entered")
        return 1
    if result.is_valid:
        print(f"{args.code.strip()} is served ({result.area_name})")
        return 0
    print(f"{args.code.strip()} is outside our service area")
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Cleaning booking engine")
    parser.add_argument(
        "--live",
        action="store_true",
        help="Read the catalog from the configured backend instead of the fallback data",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("catalog", help="List services, add-ons and frequencies")

    quote = sub.add_parser("quote", help="Price a booking")
    quote.add_argument("--service", required=True, help="Service type id")
    quote.add_argument("--frequency", default=None, help="Frequency id")
    quote.add_argument(
        "--extra", action="append", type=_parse_extra, metavar="ID=QTY",
        help="Add-on with quantity; may be repeated",
    )

    postal = sub.add_parser("check-postal", help="Check whether a postal code is served")
    postal.add_argument("code")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    snapshot = asyncio.run(_load_snapshot(args.live))
    if args.command == "catalog":
        return _cmd_catalog(snapshot)
    if args.command == "quote":
        return _cmd_quote(snapshot, args)
    return _cmd_check_postal(snapshot, args)


if __name__ == "__main__":
    sys.exit(main())
