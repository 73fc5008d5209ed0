"""FastMCP server exposing inheritance data and the realm scoring table.

Tools:
  - score_realm(realm)    — inheritance points a realm name would earn
  - read_inheritance()    — current bonus points, scripture and record texts

The progress store is replaced via set_progress_store() in tests, or opened
on data/progress.json when run as __main__.

Usage:
    uv run python -m otherworld.mcp_server
"""

from mcp.server.fastmcp import FastMCP

from otherworld.game.scoring import score_for_realm
from otherworld.storage import MemoryProgressStore, ProgressStore, load_progress

mcp = FastMCP("otherworld-inheritance")

_progress: ProgressStore = MemoryProgressStore()


def set_progress_store(store: ProgressStore) -> None:
    """Replace the active progress store (used in tests)."""
    global _progress
    _progress = store


@mcp.tool()
def score_realm(realm: str) -> int:
    """Return the inheritance points earned by dying at the given realm."""
    return score_for_realm(realm)


@mcp.tool()
def read_inheritance() -> dict:
    """Return the carried-over bonus points and knowledge texts."""
    return load_progress(_progress).model_dump(by_alias=True)


if __name__ == "__main__":
    import os
    from pathlib import Path

    from otherworld import storage

    storage.init_storage(Path(os.getenv("DATA_DIR", "data")))
    set_progress_store(storage.default_progress_store())
    mcp.run()
