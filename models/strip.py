"""Panel script and strip (generated asset) data models."""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class DialogueLine:
    character: str
    text: str

    def to_dict(self) -> dict:
        return {"character": self.character, "text": self.text}


@dataclass
class Panel:
    """One panel of a strip script."""
    panel_number: int
    visual_description: str
    dialogue: list[DialogueLine] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "panelNumber": self.panel_number,
            "visualDescription": self.visual_description,
            "dialogue": [d.to_dict() for d in self.dialogue],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Panel":
        return cls(
            panel_number=data["panelNumber"],
            visual_description=data["visualDescription"],
            dialogue=[DialogueLine(d["character"], d["text"]) for d in data.get("dialogue", [])],
        )


@dataclass
class Strip:
    """A saved unit of artwork plus the script it was rendered from.

    Immutable once stored, except that an export image may be attached later.
    """
    id: str
    ar_target_id: str
    series_id: str
    prompt: str
    panel_script: list[Panel]
    master_image: str                     # data URL
    export_image: Optional[str] = None    # data URL, set by the bake stage
    name: str = "New Episode"
    panel_count: int = 0
    created_at: int = 0                   # epoch ms

    def image_for(self, prefer_export: bool) -> str:
        """Export image when requested and available, else the master image."""
        if prefer_export and self.export_image:
            return self.export_image
        return self.master_image

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "arTargetId": self.ar_target_id,
            "seriesId": self.series_id,
            "name": self.name,
            "prompt": self.prompt,
            "panelScript": [p.to_dict() for p in self.panel_script],
            "masterImage": self.master_image,
            "panelCount": self.panel_count,
            "createdAt": self.created_at,
        }
        if self.export_image is not None:
            data["exportImage"] = self.export_image
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Strip":
        return cls(
            id=data["id"],
            ar_target_id=data["arTargetId"],
            series_id=data["seriesId"],
            name=data.get("name", "New Episode"),
            prompt=data.get("prompt", ""),
            panel_script=[Panel.from_dict(p) for p in data.get("panelScript", [])],
            master_image=data["masterImage"],
            export_image=data.get("exportImage"),
            panel_count=data.get("panelCount", 0),
            created_at=data.get("createdAt", 0),
        )
