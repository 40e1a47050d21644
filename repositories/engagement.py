from typing import Any, Dict, List, Tuple

from repositories.datastore import MAX_CONTACT_SUBMISSIONS, JsonDatastore


async def add_contact_submission(store: JsonDatastore, submission: Dict[str, Any]) -> int:
    def apply(data):
        submissions = data.setdefault("contactSubmissions", [])
        submissions.append(submission)
        if len(submissions) > MAX_CONTACT_SUBMISSIONS:
            del submissions[: len(submissions) - MAX_CONTACT_SUBMISSIONS]
        return len(submissions)

    return await store.update(apply)


async def get_contact_submissions(store: JsonDatastore) -> List[Dict[str, Any]]:
    return await store.read("contactSubmissions") or []


async def toggle_like(store: JsonDatastore, post_id: str, fingerprint: str) -> Tuple[bool, int]:
    """Adds or removes ``fingerprint`` from a post's likes; returns (liked, count)."""

    def apply(data):
        likes = data.setdefault("likes", {})
        fingerprints = likes.setdefault(post_id, [])
        if fingerprint in fingerprints:
            fingerprints.remove(fingerprint)
            liked = False
        else:
            fingerprints.append(fingerprint)
            liked = True
        if not fingerprints:
            likes.pop(post_id, None)
        return liked, len(fingerprints)

    return await store.update(apply)


async def get_likes(store: JsonDatastore, post_id: str) -> List[str]:
    likes = await store.read("likes") or {}
    return likes.get(post_id, [])
