"""Enumerations for pipeline, volume and export state."""

from enum import Enum


class PipelineStage(str, Enum):
    IDLE = "idle"
    SCRIPTING = "scripting"
    SCRIPTED = "scripted"
    RENDERING = "rendering"
    FINISHED = "finished"
    BAKING = "baking"
    EXPORTED = "exported"

    @property
    def is_transient(self) -> bool:
        return self in (PipelineStage.SCRIPTING, PipelineStage.RENDERING, PipelineStage.BAKING)


class RenderMode(str, Enum):
    MASTER = "master"
    EXPORT = "export"


class PageNumberPosition(str, Enum):
    TOP = "top"
    BOTTOM = "bottom"


class Orientation(str, Enum):
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"


class PageKind(str, Enum):
    COVER = "cover"
    STRIP = "strip"
    EXTERNAL = "external"
