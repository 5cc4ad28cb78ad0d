"""Pydantic data models for segcut."""

from segcut.models.config import ExportSettings
from segcut.models.export import (
    Chapter,
    ConcatResult,
    CutStatus,
    FileStreams,
    ParamsByStreamId,
    Segment,
    SmartCutParams,
    StreamParams,
)
from segcut.models.job import ExportJob, MergeOptions
from segcut.models.media import FileMeta, ProbeFormat, ProbeStream

__all__ = [
    "Chapter",
    "ConcatResult",
    "CutStatus",
    "ExportJob",
    "ExportSettings",
    "FileMeta",
    "FileStreams",
    "MergeOptions",
    "ParamsByStreamId",
    "ProbeFormat",
    "ProbeStream",
    "Segment",
    "SmartCutParams",
    "StreamParams",
]
