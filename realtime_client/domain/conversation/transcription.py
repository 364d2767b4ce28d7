"""
Ordered conversation item store.

The transcript mirrors the server's conversation order. Every insertion
names the item it follows (`previous_item_id`), so the order is kept as a
doubly linked chain of ids stored beside the item payloads:

    HEAD <-> item_a <-> item_b <-> ... <-> TAIL

Insertion, lookup and removal are O(1); traversal walks the chain from
HEAD to TAIL. Items handed to callers are copies.
"""

from dataclasses import dataclass
from typing import Any, Dict, Hashable, Iterator, List, Mapping, Optional, Union

from realtime_client.config.logging_config import get_logger
from realtime_client.domain.conversation.items import ConversationItem

logger = get_logger(__name__)

ItemLike = Union[ConversationItem, Mapping[str, Any]]


class _Sentinel:
    def __init__(self, name: str):
        self.name = name

    def __repr__(self) -> str:
        return f"<{self.name}>"


HEAD = _Sentinel("HEAD")
TAIL = _Sentinel("TAIL")


@dataclass
class _Link:
    prev: Hashable
    next: Hashable


def _as_item(item: ItemLike) -> ConversationItem:
    if isinstance(item, ConversationItem):
        return item.copy()
    return ConversationItem.from_dict(dict(item))


class Transcription:
    """Ordered, mutable collection of conversation items keyed by id."""

    def __init__(self) -> None:
        self._items: Dict[str, ConversationItem] = {}
        self._links: Dict[Hashable, _Link] = {}
        self.clear()

    def clear(self) -> None:
        """Drop every item."""
        self._items = {}
        self._links = {HEAD: _Link(prev=None, next=TAIL), TAIL: _Link(prev=HEAD, next=None)}

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def __iter__(self) -> Iterator[ConversationItem]:
        return iter(self.get_ordered_items())

    @property
    def last_item_id(self) -> Optional[str]:
        """Id of the item at the end of the conversation, if any."""
        last = self._links[TAIL].prev
        return None if last is HEAD else last

    def add_item(self, item: ItemLike, previous_item_id: Optional[str] = None) -> None:
        """
        Insert an item directly after `previous_item_id`.

        A missing `previous_item_id` places the item at the head. A
        reference this store has never seen appends the item at the tail.
        Adding an id that is already present replaces its payload and moves
        it to the requested position.
        """
        new_item = _as_item(item)
        item_id = new_item.id

        if item_id in self._items:
            if previous_item_id == item_id:
                self._items[item_id] = new_item
                return
            self._unlink(item_id)

        if not previous_item_id:
            anchor: Hashable = HEAD
        elif previous_item_id in self._items:
            anchor = previous_item_id
        else:
            logger.debug(
                f"Previous item {previous_item_id} unknown, appending {item_id} at the end"
            )
            anchor = self._links[TAIL].prev

        following = self._links[anchor].next
        self._links[item_id] = _Link(prev=anchor, next=following)
        self._links[anchor].next = item_id
        self._links[following].prev = item_id
        self._items[item_id] = new_item

    def update_item(self, item_id: str, fields: ItemLike) -> None:
        """
        Replace every stored field of an item, keeping its id and position.

        Updating an id that is not in the store does nothing.
        """
        if item_id not in self._items:
            logger.debug(f"Ignoring update for unknown item {item_id}")
            return

        if isinstance(fields, ConversationItem):
            data = fields.to_dict()
        else:
            data = dict(fields)
        data["id"] = item_id
        self._items[item_id] = ConversationItem.from_dict(data)

    def add_transcript_to_item(self, item_id: str, transcript: str) -> None:
        """
        Attach a transcript to the first content part that has no text yet.

        Transcripts can arrive before the item they belong to, so an unknown
        id is ignored.
        """
        item = self._items.get(item_id)
        if item is None:
            logger.debug(f"Transcript for unknown item {item_id} dropped")
            return

        for part in item.content:
            if part.is_empty:
                part.attach_transcript(transcript)
                return

        logger.debug(f"Item {item_id} has no content part awaiting a transcript")

    def remove_item(self, item_id: str) -> None:
        """Remove an item; its neighbours are linked to each other."""
        if item_id not in self._items:
            return
        self._unlink(item_id)
        del self._items[item_id]

    def get_item(self, item_id: str) -> Optional[ConversationItem]:
        """Return a copy of the item with `item_id`, or None."""
        item = self._items.get(item_id)
        return item.copy() if item is not None else None

    def get_ordered_items(self) -> List[ConversationItem]:
        """Return copies of all live items in conversation order."""
        ordered = []
        cursor = self._links[HEAD].next
        while cursor is not TAIL:
            ordered.append(self._items[cursor].copy())
            cursor = self._links[cursor].next
        return ordered

    def _unlink(self, item_id: str) -> None:
        link = self._links.pop(item_id)
        self._links[link.prev].next = link.next
        self._links[link.next].prev = link.prev
