"""
Wolf's Journey Home - Tweet Source

Read-only access to the tweet collection the sentiment mini-game is played on.
The file is provisioned out of band and never written by the server.
"""

import json
import logging
import os
from dataclasses import dataclass
from typing import Dict, List, Optional

from config import BATCH_SIZE
from errors import StoreReadError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Author:
    handle: str
    name: str
    title: Optional[str] = None

    def to_dict(self) -> Dict:
        data = {"handle": self.handle, "name": self.name}
        if self.title:
            data["title"] = self.title
        return data


@dataclass(frozen=True)
class Tweet:
    id: int
    content: str
    author: Optional[Author] = None

    def to_dict(self) -> Dict:
        data = {"id": self.id, "content": self.content}
        if self.author:
            data["author"] = self.author.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> "Tweet":
        author = data.get("author")
        return cls(
            id=data.get("id"),
            content=data.get("content", ""),
            author=Author(
                handle=author.get("handle", ""),
                name=author.get("name", ""),
                title=author.get("title"),
            ) if author else None,
        )


class TweetSource:
    """Loads tweets from a JSON document of the form {"tweets": [...]}"""

    def __init__(self, filepath: str):
        self.filepath = filepath

    def load_raw(self) -> Dict:
        """Return the document exactly as stored"""
        try:
            with open(self.filepath, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error reading tweets from {self.filepath}: {e}")
            raise StoreReadError("Failed to load tweets") from e

    def all(self) -> List[Tweet]:
        return [Tweet.from_dict(t) for t in self.load_raw().get("tweets", [])]

    def batch(self, batch_number: int, size: int = BATCH_SIZE) -> List[Tweet]:
        """
        Tweets in the window [batch_number * size, batch_number * size + size).

        The window may come back short when the collection runs out; callers
        decide what a partial batch means.
        """
        start = batch_number * size
        return self.all()[start:start + size]

    def count(self) -> int:
        return len(self.load_raw().get("tweets", []))

    @property
    def exists(self) -> bool:
        return os.path.exists(self.filepath)
