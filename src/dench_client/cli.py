"""CLI: follow a workspace tree through the change stream."""
import argparse
import asyncio

import loguru

from .stream_client import ChangeStreamClient


def _count_nodes(nodes: list[dict]) -> int:
    return sum(1 + _count_nodes(node.get("children") or []) for node in nodes)


async def _watch(base_url: str | None) -> None:
    def on_tree(client: ChangeStreamClient) -> None:
        change = client.last_change or {}
        loguru.logger.info(
            f"tree refreshed exists={client.exists} entries={_count_nodes(client.tree)} "
            f"state={client.state.value} last_change={change.get('type')}:{change.get('path')}"
        )

    async with ChangeStreamClient(base_url, on_tree=on_tree):
        await asyncio.Event().wait()


def run_watch():
    """Run the change-stream follower until interrupted."""
    parser = argparse.ArgumentParser(description="Follow Dench workspace tree changes")
    parser.add_argument("--base-url", default=None, help="Dench API base URL")
    args = parser.parse_args()
    try:
        asyncio.run(_watch(args.base_url))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run_watch()
