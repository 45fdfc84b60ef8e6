"""Schema for workspace documents crossing the import boundary.

Imported documents are validated in full before anything is stored.
Unknown keys, wrong types and missing fields reject the whole document.
"""

import json
from typing import Annotated, Any, Literal, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from config.exceptions import DocumentError
from models.project import Session


def _reject_null(value):
    if value is None:
        raise ValueError("omit the key instead of setting it to null")
    return value


# Optional images are absent when unset; an explicit null would not survive re-export.
OptionalImage = Annotated[Optional[str], BeforeValidator(_reject_null)]


class _Document(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        strict=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class CharacterDocument(_Document):
    id: str
    name: str
    description: str
    reference_image: OptionalImage = None


class SeriesDocument(_Document):
    id: str
    name: str
    art_style_directive: str
    background_color: str
    characters: list[CharacterDocument]
    environments: list[CharacterDocument]
    default_panel_count: int = Field(ge=1)
    style_reference_image: OptionalImage = None


class DialogueDocument(_Document):
    character: str
    text: str


class PanelDocument(_Document):
    panel_number: int = Field(ge=1)
    visual_description: str
    dialogue: list[DialogueDocument]


class StripDocument(_Document):
    id: str
    ar_target_id: str
    series_id: str
    name: str
    prompt: str
    panel_script: list[PanelDocument]
    master_image: str
    panel_count: int = Field(ge=0)
    created_at: int
    export_image: OptionalImage = None


class VolumeDocument(_Document):
    id: str
    title: str
    description: str
    page_order: list[str]
    external_pages: list[str]
    width: int = Field(ge=1)
    height: int = Field(ge=1)
    show_page_numbers: bool
    page_number_position: Literal["top", "bottom"]
    created_at: int
    cover_image: OptionalImage = None
    logo_image: OptionalImage = None

    @model_validator(mode="after")
    def unique_pages(self):
        if len(set(self.page_order)) != len(self.page_order):
            raise ValueError(f"volume {self.id} lists a page more than once")
        return self


class SnapshotDocument(_Document):
    version: str
    series_profiles: list[SeriesDocument]
    strips: list[StripDocument]
    volumes: list[VolumeDocument]
    active_series_id: Optional[str]
    global_background_color: str
    timestamp: int

    @model_validator(mode="after")
    def unique_ids(self):
        for label, ids in (
            ("series", [p.id for p in self.series_profiles]),
            ("strip", [s.id for s in self.strips]),
            ("volume", [v.id for v in self.volumes]),
        ):
            if len(set(ids)) != len(ids):
                raise ValueError(f"duplicate {label} ids")
        return self


class SessionDocument(_Document):
    id: str
    owner_id: str
    name: str
    last_modified: int
    snapshot: SnapshotDocument


def parse_session_document(document: Any) -> dict:
    """Validate a session document and return it as a plain dict.

    Accepts a JSON string/bytes or an already-decoded dict.

    Raises:
        DocumentError: If the document is not valid JSON or fails the schema.
    """
    if isinstance(document, (str, bytes)):
        try:
            document = json.loads(document)
        except json.JSONDecodeError as e:
            raise DocumentError(f"Workspace document is not valid JSON: {e}") from e
    if not isinstance(document, dict):
        raise DocumentError("Workspace document must be a JSON object")
    try:
        SessionDocument.model_validate(document)
    except PydanticValidationError as e:
        errors = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in e.errors()
        ]
        raise DocumentError("Malformed workspace document", errors) from e
    return document


def session_document(session: Session) -> str:
    """Serialize a session as an exportable JSON document."""
    return json.dumps(session.to_dict(), ensure_ascii=False, indent=2)
