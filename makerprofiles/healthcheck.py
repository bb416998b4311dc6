from __future__ import annotations

import logging
import sys

from .config import get_log_level, preferred_data_dir
from .store import ProfileStore, resolve_data_dir


def main() -> None:
    logging.basicConfig(
        level=get_log_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    store = ProfileStore.in_dir(resolve_data_dir(preferred_data_dir()))
    if store.path.exists() and not store.load():
        print(f"FAIL: unreadable snapshot {store.path}")
        sys.exit(1)
    print(f"OK ({len(store)} profiles in {store.path})")


if __name__ == "__main__":
    main()
