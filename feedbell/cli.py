import asyncio
import argparse
import logging
import sys
from feedbell.orchestration.service import main as service_main

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

async def _check():
    from feedbell.core.errors import SourceError
    from feedbell.orchestration.service import ConfigError, run_once
    try:
        results = await run_once()
    except (ConfigError, SourceError) as e:
        print(e)
        return 1
    for r in results:
        if r is None:
            print("check failed, see log")
        else:
            print(f"{len(r)} new item(s)")
    return 0


async def _cursors():
    from feedbell.config.settings import settings
    from feedbell.storage.cursor_store import JsonFileCursorStore
    store = JsonFileCursorStore(settings.state_path)
    data = await store.snapshot()
    if not data:
        print(f"No cursors stored in {settings.state_path}")
    for key in sorted(data):
        print(f"{key} = {data[key]}")
    return 0


def main():
    parser = argparse.ArgumentParser(description="Feed and live-room watcher with Telegram notifications")
    parser.add_argument("command", nargs="?", default="run", choices=["run", "check", "cursors"], help="run the service, run a single round, or print stored cursors")
    args = parser.parse_args()

    if args.command == "check":
        sys.exit(asyncio.run(_check()))
    elif args.command == "cursors":
        sys.exit(asyncio.run(_cursors()))
    else:
        # Start the long-running service (poller + API server)
        asyncio.run(service_main())
if __name__ == "__main__":
    main()
