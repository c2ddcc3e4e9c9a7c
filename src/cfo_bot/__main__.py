"""Ask the bot a question from the command line.

Usage:
    python -m cfo_bot "cash balance"
    python -m cfo_bot "overdue invoices pt as of 2024-01-10"
"""

import argparse
import asyncio
import sys

from cfo_bot.config import configure_logging
from cfo_bot.service import FinanceService


async def run(question: str) -> int:
    async with FinanceService() as service:
        reply = await service.handle_query(question)
    if reply is None:
        print("Try: cash balance, invoices, overdue invoices or P&L (optionally KK / PT).")
        return 1
    print(reply)
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Answer a finance question for the KK and PT entities",
    )
    parser.add_argument("question", nargs="+", help="Free-text question, e.g. 'cash balance kk'")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Override LOG_LEVEL",
    )
    args = parser.parse_args()

    configure_logging(level=args.log_level)
    sys.exit(asyncio.run(run(" ".join(args.question))))


if __name__ == "__main__":
    main()
