"""Command that prints the cost report of the billing server."""

from __future__ import annotations

import sys
from typing import Sequence

from .billing import CarbonBilling, CarbonBillingError
from .config import ConfigError, load_config
from .logger import new_logger


def main(argv: Sequence[str] | None = None) -> int:
    """Load the configuration, query the billing server and print the report."""
    logger = new_logger(True)
    try:
        config = load_config()
        CarbonBilling(config.carbon, logger).run()
    except (ConfigError, CarbonBillingError) as exc:
        print(f"carbonstats: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())