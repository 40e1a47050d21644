import os
import sys

import anyio
from dotenv import load_dotenv

from repositories import github_data
from repositories.analytics import set_analytics
from repositories.datastore import JsonDatastore, default_analytics
from services.data_sync import build_mock_data


def load_db_path() -> str:
    load_dotenv()
    return os.getenv("DB_PATH") or os.path.join("data", "portfolio.json")


async def seed_mock_data(store: JsonDatastore, force: bool = False) -> bool:
    """Writes the development mock profile. Existing user data is kept unless ``force``."""
    existing = await github_data.get_user(store)
    if existing and not force:
        print(f"Skipping: datastore already holds data for {existing.get('login')!r} (use --force to overwrite).")
        return False

    mock = build_mock_data()
    await github_data.set_user(store, mock["user"])
    await github_data.set_repositories(store, mock["repositories"])
    await github_data.set_languages(store, mock["languages"])
    await github_data.set_activity(store, mock["activity"])
    await github_data.set_workflows(store, mock["workflows"])
    await github_data.set_stats(store, mock["stats"])
    print(f"Seeded mock data into {store.path}")
    return True


async def reset_analytics(store: JsonDatastore) -> None:
    await set_analytics(store, default_analytics())
    print("Analytics counters reset")


async def main(argv: list[str]) -> None:
    store = JsonDatastore(load_db_path())
    await store.initialize()
    await seed_mock_data(store, force="--force" in argv)
    if "--reset-analytics" in argv:
        await reset_analytics(store)


if __name__ == "__main__":
    anyio.run(main, sys.argv[1:])
