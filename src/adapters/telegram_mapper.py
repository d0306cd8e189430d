"""Telegram-to-core message mapping adapter.

This keeps Telethon-specific details out of the core engine.
"""

from __future__ import annotations

import logging
from typing import List, Mapping, Optional, Tuple

from telethon.tl.custom import Message as TelegramMessage
from telethon.tl.types import MessageEntityMention, MessageEntityMentionName, PeerChannel

from core.channel_keys import TOPIC_SUFFIX, build_channel_key
from core.dedup import compute_delivery_fingerprint
from core.models import Identity, MentionSignals, Message, Origin

LOGGER = logging.getLogger(__name__)

PLATFORM = "telegram"


def _topic_id_from_message(message: TelegramMessage) -> Optional[int]:
    reply_to = getattr(message, "reply_to", None)
    if not reply_to or not getattr(reply_to, "forum_topic", False):
        return None
    top_id = getattr(reply_to, "reply_to_top_id", None)
    if top_id:
        return top_id
    return getattr(reply_to, "reply_to_msg_id", None)


def _is_real_reply(message: TelegramMessage) -> bool:
    reply_to = getattr(message, "reply_to", None)
    if not reply_to or not getattr(reply_to, "reply_to_msg_id", None):
        return False
    # Inside a forum topic every message points at the topic root; only a
    # separate top id marks an actual reply.
    if getattr(reply_to, "forum_topic", False):
        return bool(getattr(reply_to, "reply_to_top_id", None))
    return True


def parse_command(text: str) -> Tuple[Optional[str], Optional[str]]:
    """Return (command name, addressed bot username) for ``/name@bot args``."""

    if not text.startswith("/"):
        return None, None
    head = text[1:].split(maxsplit=1)[0] if len(text) > 1 else ""
    name, _, target = head.partition("@")
    if not name:
        return None, None
    return name, (target.lower() or None)


def _inline_mention_ids(message: TelegramMessage, bot_usernames: Mapping[str, str]) -> List[str]:
    ids: List[str] = []
    entities = getattr(message, "entities", None)
    if not entities:
        return ids
    for entity, entity_text in message.get_entities_text():
        if isinstance(entity, MessageEntityMentionName):
            ids.append(str(entity.user_id))
        elif isinstance(entity, MessageEntityMention):
            # Plain @username mentions carry no id; only known bots resolve.
            self_id = bot_usernames.get(entity_text.lstrip("@").lower())
            if self_id:
                ids.append(self_id)
    return ids


async def _reply_target_id(message: TelegramMessage) -> Optional[str]:
    if not _is_real_reply(message):
        return None
    try:
        replied = await message.get_reply_message()
    except Exception:
        LOGGER.debug("Could not fetch replied message for %s", message.id, exc_info=True)
        return None
    sender_id = getattr(replied, "sender_id", None)
    return str(sender_id) if sender_id is not None else None


def channel_key_from_message(message: TelegramMessage) -> str:
    return build_channel_key(PLATFORM, str(message.chat_id), _topic_id_from_message(message))


async def build_message(
    message: TelegramMessage,
    receiver: Identity,
    bot_usernames: Mapping[str, str],
) -> Message:
    """Build the core Message view of a Telethon message for one bot.

    ``bot_usernames`` maps lower-cased bot usernames to their self ids so
    textual mentions of co-installed bots become addressed ids.
    """

    text = message.raw_text or ""
    topic_id = _topic_id_from_message(message)
    is_direct = bool(getattr(message, "is_private", False))
    chat_id = str(message.chat_id)
    channel_id = chat_id if topic_id is None else f"{chat_id}{TOPIC_SUFFIX}{topic_id}"
    sender_id = getattr(message, "sender_id", None)

    command, command_target = parse_command(text)
    inline_ids = _inline_mention_ids(message, bot_usernames)
    if command_target:
        target_id = bot_usernames.get(command_target)
        if target_id and target_id not in inline_ids:
            inline_ids.append(target_id)

    signals = MentionSignals(
        structural_self_flag=bool(getattr(message, "mentioned", False)),
        inline_mention_ids=tuple(inline_ids),
        reply_target_id=await _reply_target_id(message),
        raw_markup_text=getattr(message, "text", None) or text,
    )

    LOGGER.debug("Mapped message %s in %s for %s", message.id, chat_id, receiver)
    return Message(
        channel_key=build_channel_key(PLATFORM, chat_id, topic_id),
        content=text,
        origin=Origin(
            guild_id=None if is_direct else chat_id,
            user_id=str(sender_id) if sender_id is not None else None,
            channel_id=channel_id,
            is_direct=is_direct,
        ),
        command=command,
        mention_signals=signals,
    )


def delivery_fingerprint(message: TelegramMessage) -> str:
    """Fingerprint shared by every bot account receiving this message."""

    sender_id = getattr(message, "sender_id", None)
    # Supergroups and channels number messages once for every member.
    shared_id = str(message.id) if isinstance(getattr(message, "peer_id", None), PeerChannel) else None
    return compute_delivery_fingerprint(
        channel_key_from_message(message),
        str(sender_id) if sender_id is not None else None,
        message.date.isoformat(),
        message.raw_text or "",
        shared_id,
    )
