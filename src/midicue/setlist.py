# src/midicue/setlist.py
from __future__ import annotations
import logging
from pathlib import Path
from typing import Any, Collection, Dict, Iterator, List, Optional, Union

import yaml

from .identity import item_fingerprint
from .models import SetlistItem
from .protocol import ItemType

logger = logging.getLogger(__name__)


class Setlist:
    """The live, ordered show list. Writes are appends or whole-item replacements."""

    def __init__(self, items: Optional[List[SetlistItem]] = None):
        self.items: List[SetlistItem] = list(items or [])
        self.selected_id: Optional[str] = None

    def __iter__(self) -> Iterator[SetlistItem]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    @property
    def selected(self) -> Optional[SetlistItem]:
        return self.find(self.selected_id) if self.selected_id else None

    def find(self, item_id: str) -> Optional[SetlistItem]:
        for it in self.items:
            if it.id == item_id:
                return it
        return None

    def append(self, item: SetlistItem) -> None:
        self.items.append(item)

    def replace(self, item: SetlistItem) -> bool:
        for i, it in enumerate(self.items):
            if it.id == item.id:
                self.items[i] = item
                return True
        return False

    def select(self, item_id: str) -> Optional[SetlistItem]:
        item = self.find(item_id)
        if item is not None:
            self.selected_id = item_id
        return item

    def find_by_fingerprint(
        self,
        fp: int,
        types: Optional[Collection[ItemType]] = None,
        exclude: Collection[ItemType] = (),
    ) -> Optional[SetlistItem]:
        """First item, in setlist order, whose recomputed fingerprint equals ``fp``."""
        for it in self.items:
            if types is not None and it.type not in types:
                continue
            if it.type in exclude:
                continue
            if item_fingerprint(it) == fp:
                return it
        return None

    def fingerprints(self) -> Dict[int, str]:
        """``{fingerprint: item id}``, first item wins on collisions."""
        out: Dict[int, str] = {}
        for it in self.items:
            out.setdefault(item_fingerprint(it), it.id)
        return out


# ---------- persistence ----------

class SetlistStore:
    def load(self) -> Setlist:
        raise NotImplementedError

    def save(self, setlist: Setlist) -> None:
        raise NotImplementedError


class MemorySetlistStore(SetlistStore):
    def __init__(self, setlist: Optional[Setlist] = None):
        self.setlist = setlist or Setlist()
        self.saves = 0

    def load(self) -> Setlist:
        return self.setlist

    def save(self, setlist: Setlist) -> None:
        self.setlist = setlist
        self.saves += 1


def setlist_to_dict(setlist: Setlist) -> Dict[str, Any]:
    return {"items": [it.to_dict() for it in setlist.items]}


def setlist_from_dict(data: Dict[str, Any]) -> Setlist:
    return Setlist([SetlistItem.from_dict(d) for d in (data.get("items") or [])])


class YamlSetlistStore(SetlistStore):
    """Setlist kept in a YAML document; a missing file is an empty setlist."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> Setlist:
        if not self.path.exists():
            return Setlist()
        data = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}
        return setlist_from_dict(data)

    def save(self, setlist: Setlist) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(yaml.safe_dump(setlist_to_dict(setlist), sort_keys=False, allow_unicode=True), encoding="utf-8")
        tmp.replace(self.path)
        logger.debug("saved %d setlist item(s) to %s", len(setlist), self.path)
