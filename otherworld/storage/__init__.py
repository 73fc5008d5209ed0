"""File-based JSON storage.

Data layout:
  data/
    config.json     App settings (LLM connection, pacing)
    progress.json   Cross-life inheritance (bonusPoints, scriptureText, recordText)

Config: get_config() returns defaults merged with stored values.
update_config() applies partial updates — llm_connection merged key-by-key,
scalars overwritten.

Progress: a plain string key/value store behind the ProgressStore protocol.
Missing keys read as "no prior progress" (0 bonus, empty texts).
"""

# Re-export all public symbols so `from otherworld import storage` works.

from .core import (  # noqa: F401
    data_dir,
    init_storage,
)

from .config import (  # noqa: F401
    get_config,
    update_config,
)

from .progress import (  # noqa: F401
    KEY_BONUS_POINTS,
    KEY_RECORD,
    KEY_SCRIPTURE,
    JsonProgressStore,
    MemoryProgressStore,
    ProgressStore,
    default_progress_store,
    load_progress,
    read_bonus_points,
)
