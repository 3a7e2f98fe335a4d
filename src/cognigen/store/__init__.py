"""Generation store backends.

Example:
    ```python
    from cognigen.store import InMemoryGenerationStore

    store = InMemoryGenerationStore(max_entries=128)
    ```
"""

from cognigen.store.base import GenerationStore
from cognigen.store.memory import InMemoryGenerationStore
from cognigen.store.sql import SqlGenerationStore

__all__ = ["GenerationStore", "InMemoryGenerationStore", "SqlGenerationStore"]
