"""Render one calendar view from the backend and print it as JSON."""

import argparse
import asyncio
import dataclasses
import json
import logging
import os
from datetime import date
from typing import Optional

from group_scheduler.config import load_config
from group_scheduler.models import Granularity
from group_scheduler.session import SchedulerSession

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("group_scheduler")


async def render_once(
    config_path: Optional[str], granularity: Granularity, anchor: Optional[date]
) -> dict:
    config = load_config(config_path)
    session = SchedulerSession(config, today=anchor, granularity=granularity)
    async with session:
        await session.settle()
        logger.info(f"Rendering {granularity.value} view for {session.view.state.anchor_date}")
        return dataclasses.asdict(session.render())


def main() -> None:
    parser = argparse.ArgumentParser(description="Group scheduler calendar view")
    parser.add_argument(
        "--config",
        help="Path to configuration file",
    )
    parser.add_argument(
        "--view",
        default="month",
        choices=[g.value for g in Granularity],
        help="Calendar granularity to render",
    )
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        help="Anchor date (YYYY-MM-DD), defaults to today in the display timezone",
    )
    args = parser.parse_args()

    rendered = asyncio.run(
        render_once(args.config, Granularity.from_string(args.view), args.date)
    )
    print(json.dumps(rendered, indent=2, default=str))


if __name__ == "__main__":
    main()
