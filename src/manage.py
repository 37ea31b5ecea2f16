"""Stockguard management CLI.

Creates and drops database schemas for the ordering and inventory
domains, and runs a single expiry sweep on demand.

Usage:
    python src/manage.py setup-db             # Create all tables
    python src/manage.py drop-db              # Drop all tables
    python src/manage.py sweep                # Expire overdue reservations once
"""

import argparse
import sys

DOMAIN_NAMES = ["ordering", "inventory"]


def _domains(names=None):
    from inventory.domain import inventory
    from ordering.domain import ordering

    all_domains = {"ordering": ordering, "inventory": inventory}
    return {name: all_domains[name] for name in (names or all_domains)}


def setup_databases(domains=None):
    """Create database schemas for the specified (or all) domains."""
    from shared.db import setup_db

    for name, domain in _domains(domains).items():
        print(f"Initializing {name} domain...")
        domain.init()
        print(f"Creating {name} database schema...")
        setup_db(domain)
        print(f"  {name} schema ready.")

    print("Done.")


def drop_databases(domains=None):
    """Drop database schemas for the specified (or all) domains."""
    from shared.db import drop_db

    for name, domain in _domains(domains).items():
        print(f"Initializing {name} domain...")
        domain.init()
        print(f"Dropping {name} database schema...")
        drop_db(domain)
        print(f"  {name} schema dropped.")

    print("Done.")


def sweep():
    """Run one expiry sweep and report what it did."""
    from shared.logging import configure_logging

    from checkout.container import build_services

    configure_logging(service="cli")
    domains = _domains()
    for domain in domains.values():
        domain.init()

    services = build_services(domains["ordering"], domains["inventory"])
    result = services.sweeper.sweep_once()
    print(
        f"Expired {len(result.expired)} reservation(s), "
        f"cancelled {len(result.cancelled_orders)} order(s), "
        f"{len(result.failures)} failure(s)."
    )
    return result


def main():
    parser = argparse.ArgumentParser(description="Stockguard management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    setup_parser = subparsers.add_parser("setup-db", help="Create all database tables")
    setup_parser.add_argument(
        "--domain",
        choices=DOMAIN_NAMES,
        nargs="*",
        help="Specific domain(s) to set up (default: all)",
    )

    drop_parser = subparsers.add_parser("drop-db", help="Drop all database tables")
    drop_parser.add_argument(
        "--domain",
        choices=DOMAIN_NAMES,
        nargs="*",
        help="Specific domain(s) to drop (default: all)",
    )

    subparsers.add_parser("sweep", help="Expire overdue reservations once")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_databases(args.domain)
    elif args.command == "drop-db":
        drop_databases(args.domain)
    elif args.command == "sweep":
        result = sweep()
        if result.failures:
            sys.exit(1)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
