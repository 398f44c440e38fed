# FundingScreener/main.py
"""
Command-line entry point: builds one ``ScreenerFilters`` from flags (falling
back to the defaults in ``config``), runs the screener once and prints the
result as JSON or as a table, optionally writing a CSV export as well.
"""
import argparse
import json
import logging
import sys
from dataclasses import replace

from . import config
from .models import Direction, ExchangeId, ScreenerFilters
from .report import format_table, write_csv
from .screener import ScreenerEngine


def clamp(n, lo, hi):
    return max(lo, min(hi, n))


def build_filters(args) -> ScreenerFilters:
    direction = Direction(args.direction)
    negative = direction == Direction.NEGATIVE

    funding_cut = args.funding_cut
    if funding_cut is None:
        funding_cut = config.FUNDING_CUT_NEG if negative else config.FUNDING_CUT_POS
    alert_cut = args.alert_funding_cut
    if alert_cut is None:
        alert_cut = config.ALERT_FUNDING_CUT_NEG if negative else config.ALERT_FUNDING_CUT_POS

    return ScreenerFilters(
        exchange=ExchangeId(args.exchange),
        direction=direction,
        funding_cut=funding_cut,
        min_market_cap_usd=max(0.0, args.min_market_cap),
        min_turnover_24h_usd=max(0.0, args.min_turnover),
        limit=clamp(int(args.limit), 1, config.MAX_LIMIT),
        alert_funding_cut=alert_cut,
        alert_turnover_24h_usd=max(0.0, args.alert_turnover),
    )


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Screen perpetual futures for extreme funding rates.")
    p.add_argument('--exchange', choices=[e.value for e in ExchangeId], default=ExchangeId.BYBIT.value)
    p.add_argument('--direction', choices=[d.value for d in Direction], default=Direction.NEGATIVE.value)
    p.add_argument('--funding-cut', type=float, default=None,
                   help="signed threshold (default depends on direction)")
    p.add_argument('--min-market-cap', type=float, default=config.MIN_MARKET_CAP_USD)
    p.add_argument('--min-turnover', type=float, default=config.MIN_TURNOVER_24H_USD)
    p.add_argument('--limit', type=int, default=config.LIMIT)
    p.add_argument('--alert-funding-cut', type=float, default=None)
    p.add_argument('--alert-turnover', type=float, default=config.ALERT_TURNOVER_24H_USD)
    p.add_argument('--allow-unknown-market-cap', action='store_true',
                   help="keep symbols CoinGecko has no market cap for")
    p.add_argument('--format', choices=['json', 'table'], default='json')
    p.add_argument('--csv', metavar='PATH', help="also write the rows as CSV")
    p.add_argument('--log-file', metavar='PATH')
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    config.configure_logging(logfile=args.log_file)

    settings = config.Settings()
    if args.allow_unknown_market_cap:
        settings = replace(settings, allow_unknown_market_cap=True)

    filters = build_filters(args)
    logging.info(f"Screening {filters.exchange.value} for {filters.direction.value} funding "
                 f"(cut={filters.funding_cut}, limit={filters.limit})")
    response = ScreenerEngine(settings).run(filters)

    if args.csv:
        write_csv(response, args.csv)
        logging.info(f"CSV written to {args.csv}")

    if args.format == 'table':
        print(format_table(response))
    else:
        json.dump(response.to_dict(), sys.stdout, indent=2)
        print()
    return 0


if __name__ == '__main__':
    sys.exit(main())
