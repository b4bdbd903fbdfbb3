"""tradecore: command-line entry point.

Runs a strategy backtest or the advanced TA scorer over a candle file, or
looks up current USDT prices from the exchange ticker endpoint.
"""

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict

from tradecore.backtest.engine import BacktestEngine
from tradecore.config import load_config
from tradecore.data.loader import load_candles
from tradecore.errors import SourceFetchFailure
from tradecore.market.prices import PriceService
from tradecore.strategy.registry import STRATEGY_REGISTRY, get_strategy
from tradecore.ta.advanced import AdvancedTA
from tradecore.utils.cache import TTLCache

logger = logging.getLogger("tradecore")


def _parse_option(raw: str) -> tuple[str, object]:
    """``key=value`` → (key, value); numbers are converted when possible."""
    if "=" not in raw:
        raise argparse.ArgumentTypeError(f"Expected key=value, got {raw!r}")
    key, value = raw.split("=", 1)
    for cast in (int, float):
        try:
            return key, cast(value)
        except ValueError:
            continue
    return key, value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="tradecore signal engine")
    parser.add_argument("--env", help="Path to a .env file")
    sub = parser.add_subparsers(dest="command", required=True)

    def _add_series_args(p: argparse.ArgumentParser) -> None:
        p.add_argument("file", help="Candle file (.csv or .json)")
        p.add_argument("--exchange", default="binance")
        p.add_argument("--symbol", required=True, help="e.g. BTC/USDT")
        p.add_argument("--period", required=True, help="e.g. 15m, 1h, 1d")
        p.add_argument(
            "--order",
            choices=["ascending", "descending"],
            default="ascending",
            help="Row order of the file (default: ascending)",
        )

    bt = sub.add_parser("backtest", help="Replay a strategy over a candle file")
    _add_series_args(bt)
    bt.add_argument("--strategy", required=True, choices=sorted(STRATEGY_REGISTRY))
    bt.add_argument(
        "--option", "-o",
        action="append",
        type=_parse_option,
        default=[],
        help="Strategy option override, key=value (repeatable)",
    )
    bt.add_argument("--capital", type=float, help="Initial capital")
    bt.add_argument("--trades", action="store_true", help="Print every trade")

    an = sub.add_parser("analyze", help="Advanced TA score for a candle file")
    _add_series_args(an)

    pr = sub.add_parser("price", help="Current USDT prices")
    pr.add_argument("coins", nargs="*", help="Coins to look up, e.g. BTC ETH (default: all)")

    return parser


def _run_backtest(args, config) -> int:
    candles = load_candles(args.file, args.exchange, args.symbol, args.period, args.order)
    strategy = get_strategy(args.strategy, dict(args.option))
    engine = BacktestEngine(config=config)
    result = engine.run_with_candles(strategy, candles, args.capital)

    output = {
        "strategy": result.strategy_name,
        "pair": f"{result.exchange}:{result.symbol}:{result.period}",
        "start": result.start_time.isoformat(),
        "end": result.end_time.isoformat(),
        "summary": asdict(result.summary),
    }
    if args.trades:
        output["trades"] = [asdict(t) for t in result.trades]
    print(json.dumps(output, indent=2))
    return 0


def _run_analyze(args) -> int:
    candles = load_candles(args.file, args.exchange, args.symbol, args.period, args.order)
    result = AdvancedTA().analyze(candles)
    print(json.dumps(asdict(result), indent=2))
    return 0


def _run_price(args, config) -> int:
    service = PriceService(TTLCache(), config)
    prices = asyncio.run(service.get_usdt_prices())
    if args.coins:
        prices = {coin.upper(): prices.get(coin.upper()) for coin in args.coins}
    print(json.dumps(prices, indent=2, sort_keys=True))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Parse CLI arguments and dispatch to the requested command."""
    args = build_parser().parse_args(argv)
    config = load_config(args.env)

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        if args.command == "backtest":
            return _run_backtest(args, config)
        if args.command == "price":
            return _run_price(args, config)
        return _run_analyze(args)
    except (ValueError, KeyError, SourceFetchFailure) as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
