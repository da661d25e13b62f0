#!/usr/bin/env python3
"""
Operator commands for the seatshare database.

Usage:
  seatshare init-db
  seatshare add-provider --name Netflix [--country <country-id> ...]
  seatshare add-country --name Portugal --code PT
  seatshare set-country --id <country-id> [--inactive]
  seatshare set-provider --id <provider-id> [--inactive]
  seatshare list-providers
  seatshare add-subscription --provider <id> --name "Family 1" --email a@b.c --password secret --slots 5 [--country <id>]
  seatshare process-pending [--limit 50]

process-pending is what the external scheduler runs once new capacity has
been added: one FIFO pass over queued requests.
"""
from __future__ import annotations

import argparse
import sys
from datetime import datetime
from typing import Sequence

from seatshare.container import build_container
from seatshare.core.errors import SeatshareError
from seatshare.core.logger import configure_logging
from seatshare.db.create_tables import create_all


def _parse_datetime(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid ISO datetime: {value}") from exc


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="seatshare", description="Seatshare operator commands")
    sub = ap.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create database tables")

    provider = sub.add_parser("add-provider", help="Register a service provider")
    provider.add_argument("--name", required=True)
    provider.add_argument("--country", action="append", default=[], help="Supported country id (repeatable)")

    country = sub.add_parser("add-country", help="Register a country")
    country.add_argument("--name", required=True)
    country.add_argument("--code", required=True, help="ISO alpha-2 code")
    country.add_argument("--inactive", action="store_true")

    for kind in ("country", "provider"):
        toggle = sub.add_parser(f"set-{kind}", help=f"Activate or deactivate a {kind}")
        toggle.add_argument("--id", required=True)
        toggle.add_argument("--inactive", action="store_true")

    sub.add_parser("list-providers", help="Show providers and their supported countries")

    account = sub.add_parser("add-subscription", help="Register a shared subscription account")
    account.add_argument("--provider", required=True)
    account.add_argument("--name", required=True)
    account.add_argument("--email", required=True)
    account.add_argument("--password", required=True)
    account.add_argument("--slots", type=int, required=True)
    account.add_argument("--country")
    account.add_argument("--expires-at", type=_parse_datetime)
    account.add_argument("--price")
    account.add_argument("--currency")

    pending = sub.add_parser("process-pending", help="Assign queued requests, oldest first")
    pending.add_argument("--limit", type=int)
    return ap


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    container = build_container()
    configure_logging(container.settings.log_level)

    if args.command == "init-db":
        create_all()
        print("Database tables created successfully.")
    elif args.command == "add-provider":
        provider = container.catalog.create_provider(args.name)
        for country_id in args.country:
            container.catalog.add_supported_country(provider.id, country_id)
        print(f"OK: provider {provider.id}")
    elif args.command == "add-country":
        country = container.catalog.create_country(args.name, args.code, is_active=not args.inactive)
        print(f"OK: country {country.id}")
    elif args.command == "set-country":
        container.catalog.set_country_active(args.id, not args.inactive)
        print(f"OK: country {args.id} {'inactive' if args.inactive else 'active'}")
    elif args.command == "set-provider":
        container.catalog.set_provider_active(args.id, not args.inactive)
        print(f"OK: provider {args.id} {'inactive' if args.inactive else 'active'}")
    elif args.command == "list-providers":
        for provider in container.catalog.list_providers():
            codes = ",".join(c.code for c in provider.supported_countries) or "-"
            state = "" if provider.is_active else " (inactive)"
            print(f"{provider.id}\t{provider.name}{state}\t{codes}")
    elif args.command == "add-subscription":
        account = container.subscription_service.create_account(
            args.provider,
            args.name,
            args.email,
            args.password,
            args.slots,
            country_id=args.country,
            expires_at=args.expires_at,
            user_price=args.price,
            currency_code=args.currency,
        )
        print(f"OK: subscription {account.id} ({account.available_slots} slots)")
    elif args.command == "process-pending":
        assigned = container.request_service.process_pending(args.limit)
        print(f"OK: {len(assigned)} request(s) assigned")
    return 0


def run() -> None:
    try:
        raise SystemExit(main())
    except SeatshareError as exc:  # pragma: no cover - CLI usage
        sys.stderr.write(f"Error: {exc.message}\n")
        raise SystemExit(1)


if __name__ == "__main__":
    run()
