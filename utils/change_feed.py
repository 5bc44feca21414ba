"""
Модуль: `utils/change_feed.py`.
Назначение: Канал уведомлений об изменениях комментариев в пределах процесса.

Подписчик получает очередь событий по конкретной работе; по каждому событию
клиент заново запрашивает полный список комментариев.
"""

import json
import queue
from collections import defaultdict
from threading import Lock


class ChangeFeed:
    """Простой in-memory pub/sub с подписками по artwork_id."""

    def __init__(self, max_queue_size: int = 100):
        self._subscribers = defaultdict(set)
        self._lock = Lock()
        self._max_queue_size = max_queue_size

    def subscribe(self, artwork_id: int) -> queue.Queue:
        channel = queue.Queue(maxsize=self._max_queue_size)
        with self._lock:
            self._subscribers[artwork_id].add(channel)
        return channel

    def unsubscribe(self, artwork_id: int, channel: queue.Queue) -> None:
        with self._lock:
            channels = self._subscribers.get(artwork_id)
            if not channels:
                return
            channels.discard(channel)
            if not channels:
                del self._subscribers[artwork_id]

    def subscriber_count(self, artwork_id: int) -> int:
        with self._lock:
            return len(self._subscribers.get(artwork_id, ()))

    def publish(self, artwork_id: int, event_type: str, payload: dict | None = None) -> int:
        """Рассылает событие подписчикам работы. Возвращает число доставок."""
        event = {"type": event_type, "artwork_id": artwork_id, "record": payload or {}}
        with self._lock:
            channels = list(self._subscribers.get(artwork_id, ()))

        delivered = 0
        for channel in channels:
            try:
                channel.put_nowait(event)
                delivered += 1
            except queue.Full:
                # Медленный клиент пропускает событие; следующий refetch всё равно вернёт полный список
                continue
        return delivered


def format_sse(event: dict) -> str:
    """Сериализует событие в формат Server-Sent Events."""
    return f"event: {event['type']}\ndata: {json.dumps(event, ensure_ascii=False)}\n\n"
