"""@handle extraction and resolution scoped to a thread's membership."""
import re
from typing import Awaitable, Callable, Dict, Iterable, List

MAX_MENTIONS = 25
MAX_HANDLE_LENGTH = 50

# "@" must not follow a word character, so "bob@example.com" is not a mention
MENTION_PATTERN = re.compile(r"(?<!\w)@([A-Za-z0-9_.\-]{1,%d})" % MAX_HANDLE_LENGTH)

HandleLookup = Callable[[List[str]], Awaitable[Dict[str, str]]]


def extract_handles(text: str, limit: int = MAX_MENTIONS) -> List[str]:
    """Return distinct handles in first-seen order, at most ``limit`` of them."""
    if not text:
        return []
    handles: List[str] = []
    seen = set()
    for match in MENTION_PATTERN.finditer(text):
        handle = match.group(1)
        if handle in seen:
            continue
        seen.add(handle)
        handles.append(handle)
        if len(handles) >= limit:
            break
    return handles


async def resolve_mentions(text: str, allowed_user_ids: Iterable[str], lookup: HandleLookup) -> List[str]:
    """
    Map @handles in ``text`` to user ids, keeping only ids in ``allowed_user_ids``.

    ``lookup`` receives every handle in one batch and returns ``{handle: user_id}``
    for the handles it knows. Unknown handles and non-members are dropped
    silently.
    """
    handles = extract_handles(text)
    if not handles:
        return []

    allowed = set(allowed_user_ids)
    resolved = await lookup(handles)

    mentioned: List[str] = []
    for handle in handles:
        user_id = resolved.get(handle)
        if user_id and user_id in allowed and user_id not in mentioned:
            mentioned.append(user_id)
    return mentioned
