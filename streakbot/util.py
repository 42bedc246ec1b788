import os
import logging
import discord


def build_db_url() -> str | None:
    """Return a Postgres DSN built from env vars."""
    url = os.getenv("PG_DSN") or os.getenv("DATABASE_URL")
    if url:
        return url
    user = os.getenv("PG_USER")
    pwd = os.getenv("PG_PASSWORD")
    db = os.getenv("PG_DB")
    if user and pwd and db:
        return f"postgresql+asyncpg://{user}:{pwd}@db:5432/{db}"
    return None


def user_name(user: discord.abc.Snowflake | int | None) -> str:
    """Return a user's display name or fallback to their ID."""
    if user is None:
        return "unknown"
    if isinstance(user, int):
        return str(user)
    name = getattr(user, "display_name", None) or getattr(user, "name", None)
    if name:
        return name
    uid = getattr(user, "id", None)
    return str(uid) if uid is not None else "unknown"


def chan_name(channel: discord.abc.Connectable | None) -> str:
    """Return a readable channel name or fallback to ID."""
    if channel is None:
        return "unknown"
    name = getattr(channel, "name", None)
    if name:
        return f"#{name}"
    recipient = getattr(channel, "recipient", None)
    if recipient:
        return f"DM with {user_name(recipient)}"
    channel_id = getattr(channel, "id", None)
    return str(channel_id) if channel_id is not None else "unknown"


def int_env(var: str, default: int = 0) -> int:
    """Return int value from ENV or default if unset or invalid."""
    value = os.getenv(var)
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        logging.getLogger(__name__).warning(
            "Invalid integer for %s: %s; using %s", var, value, default
        )
        return default


def list_env(var: str, default: tuple[str, ...] = ()) -> tuple[str, ...]:
    """Return a comma separated ENV value as a tuple, keeping order.

    Blank items are dropped and duplicates keep their first position. A value
    with no items at all yields *default*.
    """
    value = os.getenv(var)
    if value is None:
        return default
    items: list[str] = []
    for part in value.split(","):
        part = part.strip()
        if part and part not in items:
            items.append(part)
    if not items:
        logging.getLogger(__name__).warning(
            "Empty list for %s; using %s", var, ", ".join(default) or "nothing"
        )
        return default
    return tuple(items)


def plural(count: int, word: str) -> str:
    """Return ``"1 day"`` / ``"2 days"`` style text."""
    return f"{count} {word}{'' if count == 1 else 's'}"
