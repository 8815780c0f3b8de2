from dataclasses import dataclass, field
from typing import Optional, Tuple

MISSING_DESCRIPTION = "None"


@dataclass(frozen=True)
class CanonicalUpdate:
    """One post normalized from any feed source. Feeds yield these newest first."""

    id: int
    timestamp: int
    permalink: str
    author: Optional[str] = None
    description: Optional[str] = None
    pictures: Tuple[str, ...] = ()

    def display_author(self, identity) -> str:
        return self.author if self.author else str(identity)

    def display_description(self) -> str:
        return self.description if self.description else MISSING_DESCRIPTION


@dataclass(frozen=True)
class LiveSignal:
    room_id: int
    is_live: bool
    title: str
    start_time: str
    cover_image_url: str
    streamer_name: str
    uid: Optional[int] = None


@dataclass(frozen=True)
class ComposedMessage:
    text: str
    photos: Tuple[str, ...] = ()
    single_photo: Optional[str] = None


@dataclass
class DeliveryOutcome:
    channel: str
    delivered: bool
    tier: Optional[str] = None
    error: Optional[str] = None
    attempts: list = field(default_factory=list)
