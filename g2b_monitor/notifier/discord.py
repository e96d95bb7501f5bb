"""
Discord webhook notifier.

Posts newly found announcements as embeds, split into messages that fit
Discord's per-message embed limit.
"""

from typing import List, Dict, Any, Optional
import logging

import requests

from ..models import Announcement

logger = logging.getLogger(__name__)

EMBED_COLOR = 0x00FF00
MAX_EMBEDS_PER_MESSAGE = 10


def chunked(items: List[Any], size: int) -> List[List[Any]]:
    """Split ``items`` into consecutive lists of at most ``size`` elements."""
    if size < 1:
        raise ValueError(f"Chunk size must be positive, got {size}")
    return [items[i:i + size] for i in range(0, len(items), size)]


class DiscordNotifier:
    """Fire-and-forget sender for batches of new announcements."""

    def __init__(self, config: Dict[str, Any], session: Optional[requests.Session] = None):
        """
        Initialize notifier.

        Args:
            config: ``notifier`` configuration section
            session: Optional pre-built session (used in tests)
        """
        self.webhook_url = config.get('webhook_url')
        self.timeout = config.get('timeout', 15)
        self.chunk_size = min(config.get('chunk_size', MAX_EMBEDS_PER_MESSAGE), MAX_EMBEDS_PER_MESSAGE)
        self.session = session or requests.Session()

    @property
    def is_configured(self) -> bool:
        return bool(self.webhook_url)

    @staticmethod
    def build_embed(item: Announcement) -> Dict[str, Any]:
        """Render one announcement as a Discord embed."""
        return {
            'title': f"[신규 공고] {item.title}",
            'url': item.link,
            'color': EMBED_COLOR,
            'fields': [
                # Discord rejects empty field values
                {'name': '진행일자', 'value': item.date or '-', 'inline': True},
                {'name': '수요기관', 'value': item.agency or '-', 'inline': True},
            ],
            'footer': {'text': f"ID: {item.id}"},
        }

    def build_payloads(self, items: List[Announcement]) -> List[Dict[str, Any]]:
        """
        Build one webhook payload per chunk.

        Only the first payload carries the summary header.
        """
        embeds = [self.build_embed(item) for item in items]
        payloads = []
        for index, chunk in enumerate(chunked(embeds, self.chunk_size)):
            payload: Dict[str, Any] = {'embeds': chunk}
            if index == 0:
                payload['content'] = f"🔔 **{len(items)}건의 새로운 발주 공고가 발견되었습니다!**"
            payloads.append(payload)
        return payloads

    def send(self, items: List[Announcement]) -> bool:
        """
        Post all items to the webhook.

        A failed chunk is logged and does not stop the remaining chunks.

        Returns:
            True only if the webhook is configured and every chunk was accepted
        """
        if not self.is_configured:
            logger.info("DISCORD_WEBHOOK_URL is not set. Skipping notification.")
            return False

        if not items:
            return True

        failures = 0
        payloads = self.build_payloads(items)
        for index, payload in enumerate(payloads, start=1):
            try:
                response = self.session.post(self.webhook_url, json=payload, timeout=self.timeout)
            except requests.RequestException as e:
                logger.error(f"Error sending Discord notification {index}/{len(payloads)}: {e}")
                failures += 1
                continue

            if not response.ok:
                logger.error(
                    f"Failed to send Discord notification {index}/{len(payloads)}: "
                    f"{response.status_code} {response.reason}"
                )
                failures += 1
            else:
                logger.info(f"Discord notification {index}/{len(payloads)} sent successfully.")

        return failures == 0
