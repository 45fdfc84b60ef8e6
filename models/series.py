"""Series profile data model."""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class CharacterRef:
    """A recurring character, optionally with a visual reference image."""
    id: str
    name: str
    description: str = ""
    reference_image: Optional[str] = None  # data URL

    def to_dict(self) -> dict:
        data = {"id": self.id, "name": self.name, "description": self.description}
        if self.reference_image is not None:
            data["referenceImage"] = self.reference_image
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "CharacterRef":
        return cls(
            id=data["id"],
            name=data["name"],
            description=data.get("description", ""),
            reference_image=data.get("referenceImage"),
        )


@dataclass
class EnvironmentRef(CharacterRef):
    """A recurring location. Same shape as a character reference."""

    @classmethod
    def from_dict(cls, data: dict) -> "EnvironmentRef":
        return cls(
            id=data["id"],
            name=data["name"],
            description=data.get("description", ""),
            reference_image=data.get("referenceImage"),
        )


@dataclass
class SeriesProfile:
    """Style and cast configuration driving all generation for one comic line."""
    id: str
    name: str
    art_style_directive: str = ""
    background_color: str = "#dbdac8"
    characters: list[CharacterRef] = field(default_factory=list)
    environments: list[EnvironmentRef] = field(default_factory=list)
    style_reference_image: Optional[str] = None
    default_panel_count: int = 3

    def character_context(self) -> str:
        return "\n".join(f"{c.name}: {c.description}" for c in self.characters)

    def environment_context(self) -> str:
        return "\n".join(f"{e.name}: {e.description}" for e in self.environments)

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "artStyleDirective": self.art_style_directive,
            "backgroundColor": self.background_color,
            "characters": [c.to_dict() for c in self.characters],
            "environments": [e.to_dict() for e in self.environments],
            "defaultPanelCount": self.default_panel_count,
        }
        if self.style_reference_image is not None:
            data["styleReferenceImage"] = self.style_reference_image
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "SeriesProfile":
        return cls(
            id=data["id"],
            name=data["name"],
            art_style_directive=data.get("artStyleDirective", ""),
            background_color=data.get("backgroundColor", "#dbdac8"),
            characters=[CharacterRef.from_dict(c) for c in data.get("characters", [])],
            environments=[EnvironmentRef.from_dict(e) for e in data.get("environments", [])],
            style_reference_image=data.get("styleReferenceImage"),
            default_panel_count=data.get("defaultPanelCount", 3),
        )
