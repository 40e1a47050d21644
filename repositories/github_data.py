from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from repositories.datastore import JsonDatastore


PORTFOLIO_SECTIONS = ("user", "repositories", "languages", "activity", "workflows", "stats", "lastUpdated")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _setter(key: str, value: Any):
    def apply(data: Dict[str, Any]) -> Any:
        data[key] = value
        data["lastUpdated"] = utc_now_iso()
        return value

    return apply


async def get_user(store: JsonDatastore) -> Optional[Dict[str, Any]]:
    return await store.read("user")


async def set_user(store: JsonDatastore, user: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    return await store.update(_setter("user", user))


async def get_repositories(store: JsonDatastore) -> List[Dict[str, Any]]:
    return await store.read("repositories") or []


async def set_repositories(store: JsonDatastore, repositories: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return await store.update(_setter("repositories", repositories))


async def get_languages(store: JsonDatastore) -> Dict[str, Any]:
    return await store.read("languages") or {}


async def set_languages(store: JsonDatastore, languages: Dict[str, Any]) -> Dict[str, Any]:
    return await store.update(_setter("languages", languages))


async def get_activity(store: JsonDatastore) -> List[Dict[str, Any]]:
    return await store.read("activity") or []


async def set_activity(store: JsonDatastore, activity: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return await store.update(_setter("activity", activity))


async def get_workflows(store: JsonDatastore) -> List[Dict[str, Any]]:
    return await store.read("workflows") or []


async def set_workflows(store: JsonDatastore, workflows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return await store.update(_setter("workflows", workflows))


async def get_stats(store: JsonDatastore) -> Dict[str, Any]:
    return await store.read("stats") or {}


async def set_stats(store: JsonDatastore, stats: Dict[str, Any]) -> Dict[str, Any]:
    """Merges ``stats`` into the stored stats and returns the merged result."""

    def apply(data: Dict[str, Any]) -> Dict[str, Any]:
        merged = {**(data.get("stats") or {}), **stats}
        data["stats"] = merged
        data["lastUpdated"] = utc_now_iso()
        return merged

    return await store.update(apply)


async def get_last_updated(store: JsonDatastore) -> Optional[str]:
    return await store.read("lastUpdated")


async def get_all_data(store: JsonDatastore) -> Dict[str, Any]:
    return await store.read()


async def get_portfolio_data(store: JsonDatastore) -> Dict[str, Any]:
    data = await store.read()
    return {key: data.get(key) for key in PORTFOLIO_SECTIONS}
