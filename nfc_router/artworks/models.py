"""Artwork record model."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ArtworkRecord:
    slug: str
    title: str = ""
    image_url: str = ""
    description: str = ""
    exclusive: bool = False
    display_duration: int = 0  # milliseconds
    owner_auth: bool = False  # internal flag, never exposed to callers

    @classmethod
    def from_mapping(cls, slug: str, data: dict) -> "ArtworkRecord":
        """Build a record from a store item, tolerating missing fields."""
        return cls(
            slug=slug,
            title=str(data.get("title", "")),
            image_url=str(data.get("image_url", "")),
            description=str(data.get("description", "")),
            exclusive=bool(data.get("exclusive", False)),
            display_duration=int(data.get("display_duration", 0)),
            owner_auth=bool(data.get("owner_auth", False)),
        )

    def public_fields(self) -> dict:
        return {
            "title": self.title,
            "image_url": self.image_url,
            "description": self.description,
            "exclusive": self.exclusive,
            "display_duration": self.display_duration,
        }
