"""Simple entrypoint to inspect the local wardrobe store."""

import json

from wardrobe_app.app import WardrobeApp


def main() -> None:
    app = WardrobeApp()
    stats = app.closet_stats()
    print(json.dumps({"stats": stats.to_dict(), "sync": app.sync_state()}, indent=2))


if __name__ == "__main__":
    main()
