"""Reaction bookkeeping and emoji <-> GitHub reaction mapping."""

# GitHub supports exactly eight reaction kinds
EMOJI_TO_GITHUB: dict[str, str] = {
    "\U0001F44D": "+1",
    "\U0001F44E": "-1",
    "\U0001F604": "laugh",
    "\U0001F615": "confused",
    "❤️": "heart",
    "❤": "heart",  # without variation selector
    "\U0001F389": "hooray",
    "\U0001F680": "rocket",
    "\U0001F440": "eyes",
}

GITHUB_TO_EMOJI: dict[str, str] = {
    "+1": "\U0001F44D",
    "-1": "\U0001F44E",
    "laugh": "\U0001F604",
    "confused": "\U0001F615",
    "heart": "❤️",
    "hooray": "\U0001F389",
    "rocket": "\U0001F680",
    "eyes": "\U0001F440",
}


def emoji_to_github_reaction(emoji: str) -> str | None:
    """GitHub reaction kind for an emoji, or None if GitHub has no equivalent."""
    return EMOJI_TO_GITHUB.get(emoji)


def github_reaction_to_emoji(reaction: str) -> str | None:
    return GITHUB_TO_EMOJI.get(reaction)


def toggle_reaction(
    reactions: dict[str, list[str]],
    emoji: str,
    user_id: str,
) -> tuple[dict[str, list[str]], bool]:
    """
    Toggle ``user_id``'s membership in the ``emoji`` reaction.

    Returns the full new reaction map (the input is not modified) and whether
    the reaction was removed. A reaction left with no users is dropped from
    the map entirely.
    """
    updated = {key: list(users) for key, users in reactions.items() if users}
    users = updated.get(emoji, [])

    removed = user_id in users
    if removed:
        users = [u for u in users if u != user_id]
    else:
        users = [*users, user_id]

    if users:
        updated[emoji] = users
    else:
        updated.pop(emoji, None)
    return updated, removed


def prune_reactions(reactions: dict[str, list[str]] | None) -> dict[str, list[str]]:
    """Drop reactions with no users; empty lists are never persisted."""
    return {key: list(users) for key, users in (reactions or {}).items() if users}
